from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union


def setup_logger(level: Union[str, int] = "INFO", log_file: Optional[str] = None) -> logging.Logger:
  """Console logging for the service, plus an optional timestamped file log."""
  logger = logging.getLogger("textoverlay")
  logger.setLevel(logging.DEBUG)
  logger.propagate = False

  # Re-running (tests, reloads) must not stack handlers.
  logger.handlers.clear()

  if isinstance(level, str):
    level = logging.getLevelName(level.strip().upper())
    if not isinstance(level, int):
      level = logging.INFO

  console_handler = logging.StreamHandler()
  console_handler.setLevel(level)
  console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
  logger.addHandler(console_handler)

  if log_file:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(file_handler)

  return logger
