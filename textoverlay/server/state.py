from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger("textoverlay.server")

PACKAGE_ROOT = Path(__file__).resolve().parent.parent

_DEFAULTS: Dict[str, Any] = {
  "server": {"host": "0.0.0.0", "port": 3000, "cors_origins": ["*"]},
  "uploads": {"dir": "public_uploads", "url_prefix": "/uploads", "max_bytes": 10 * 1024 * 1024},
  "output": {"default_format": "png", "jpeg_quality": 90, "webp_quality": 90},
  "logging": {"level": "INFO", "file": None},
  "fonts": {"paths": {}},
}


def _load_yaml_config(path: Path) -> Dict[str, Any]:
  if not path.exists():
    return {}
  with path.open("r", encoding="utf-8") as f:
    data = yaml.safe_load(f) or {}
  if not isinstance(data, dict):
    raise ValueError(f"{path}: top level must be a mapping")
  return data


def _merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
  out = copy.deepcopy(base)
  for k, v in (patch or {}).items():
    if isinstance(out.get(k), dict) and isinstance(v, dict):
      out[k] = _merge(out[k], v)
    else:
      out[k] = v
  return out


def load_config(config_path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
  """
  Built-in defaults <- YAML file <- environment <- explicit overrides.

  The YAML file is `TEXTOVERLAY_CONFIG` when set, otherwise the package's
  config.yaml.
  """
  if config_path is None:
    env_cfg = (os.environ.get("TEXTOVERLAY_CONFIG") or "").strip()
    config_path = Path(env_cfg) if env_cfg else PACKAGE_ROOT / "config.yaml"

  cfg = _merge(_DEFAULTS, _load_yaml_config(Path(config_path)))

  port = (os.environ.get("PORT") or "").strip()
  if port:
    cfg["server"]["port"] = int(port)
  uploads_dir = (os.environ.get("TEXTOVERLAY_UPLOADS_DIR") or "").strip()
  if uploads_dir:
    cfg["uploads"]["dir"] = uploads_dir
  log_level = (os.environ.get("TEXTOVERLAY_LOG_LEVEL") or "").strip()
  if log_level:
    cfg["logging"]["level"] = log_level

  if overrides:
    cfg = _merge(cfg, overrides)
  return cfg


class ServerState:
  """Resolved configuration plus the resources shared by all requests."""

  def __init__(self, config: Optional[Dict[str, Any]] = None):
    self.config = config if config is not None else load_config()

    up = self.config.get("uploads") or {}
    uploads_dir = Path(str(up.get("dir") or "public_uploads"))
    if not uploads_dir.is_absolute():
      uploads_dir = Path.cwd() / uploads_dir
    self.uploads_dir = uploads_dir.resolve()
    self.uploads_dir.mkdir(parents=True, exist_ok=True)

    prefix = "/" + str(up.get("url_prefix") or "/uploads").strip("/")
    self.uploads_url_prefix = prefix
    self.max_upload_bytes = int(up.get("max_bytes") or _DEFAULTS["uploads"]["max_bytes"])

    out = self.config.get("output") or {}
    self.default_format = str(out.get("default_format") or "png")
    self.jpeg_quality = int(out.get("jpeg_quality", 90))
    self.webp_quality = int(out.get("webp_quality", 90))

    fonts = (self.config.get("fonts") or {}).get("paths") or {}
    self.font_paths: Dict[str, str] = {str(k).lower(): str(v) for k, v in fonts.items() if v}

    self.cors_origins = list((self.config.get("server") or {}).get("cors_origins") or ["*"])
