from __future__ import annotations

import os
import random
import re
import tempfile
import time
from pathlib import Path
from typing import Optional

_SAFE_EXT_RE = re.compile(r"^\.[A-Za-z0-9]{1,8}$")


def unique_suffix() -> str:
  """Epoch milliseconds plus a random component; unique enough for concurrent writers."""
  return f"{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}"


def safe_extension(filename: Optional[str]) -> str:
  ext = Path(str(filename or "")).suffix
  return ext.lower() if _SAFE_EXT_RE.match(ext) else ""


def public_filename(prefix: str, ext: str) -> str:
  ext = ext if (not ext or ext.startswith(".")) else "." + ext
  return f"{prefix}-{unique_suffix()}{ext}"


def write_public_file(uploads_dir: Path, filename: str, data: bytes) -> Path:
  """Write atomically so a half-written file is never served."""
  uploads_dir.mkdir(parents=True, exist_ok=True)
  dst = uploads_dir / filename
  fd, tmp = tempfile.mkstemp(prefix=filename + ".", suffix=".part", dir=str(uploads_dir))
  try:
    with os.fdopen(fd, "wb") as f:
      f.write(data)
    Path(tmp).replace(dst)
  finally:
    if Path(tmp).exists():
      Path(tmp).unlink()
  return dst


def public_url(base_url: str, url_prefix: str, filename: str) -> str:
  return f"{str(base_url).rstrip('/')}/{url_prefix.strip('/')}/{filename}"
