from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import uvicorn

from textoverlay.server.app import create_app
from textoverlay.server.state import ServerState, load_config

logger = logging.getLogger("textoverlay")


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(description="Text overlay HTTP service")
  parser.add_argument("--config", type=Path, default=None, help="YAML config (default: TEXTOVERLAY_CONFIG or the bundled config.yaml)")
  parser.add_argument("--host", default=None, help="Bind address (overrides server.host)")
  parser.add_argument("--port", type=int, default=None, help="Port (overrides PORT and server.port)")
  parser.add_argument("--uploads-dir", default=None, help="Directory served under the public uploads URL")
  parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
  return parser


def main(argv: Optional[List[str]] = None) -> int:
  args = build_parser().parse_args(argv)

  overrides = {}
  if args.host:
    overrides.setdefault("server", {})["host"] = args.host
  if args.port:
    overrides.setdefault("server", {})["port"] = args.port
  if args.uploads_dir:
    overrides["uploads"] = {"dir": args.uploads_dir}
  if args.log_level:
    overrides["logging"] = {"level": args.log_level}

  cfg = load_config(args.config, overrides)
  state = ServerState(cfg)
  app = create_app(state)

  host = str(cfg["server"]["host"])
  port = int(cfg["server"]["port"])
  logger.info("Text overlay API running on %s:%d", host, port)
  logger.info("API documentation: http://localhost:%d/api/docs", port)
  logger.info("Public uploads: %s -> %s", state.uploads_url_prefix, state.uploads_dir)
  uvicorn.run(app, host=host, port=port, log_level=str(cfg["logging"]["level"]).lower())
  return 0


if __name__ == "__main__":
  raise SystemExit(main())
