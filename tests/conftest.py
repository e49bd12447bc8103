from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

from textoverlay.server.state import ServerState, load_config  # noqa: E402


def make_image_bytes(fmt: str = "PNG", size=(800, 600), color=(30, 60, 120)) -> bytes:
  mode = "RGBA" if fmt.upper() in ("PNG", "WEBP") else "RGB"
  img = Image.new(mode, size, color)
  buf = io.BytesIO()
  img.save(buf, format=fmt)
  return buf.getvalue()


@pytest.fixture
def server_state(tmp_path: Path) -> ServerState:
  cfg = load_config(overrides={
    "uploads": {"dir": str(tmp_path / "uploads")},
    "logging": {"level": "WARNING", "file": None},
  })
  return ServerState(cfg)


@pytest.fixture
def client(server_state: ServerState):
  from fastapi.testclient import TestClient

  from textoverlay.server.app import create_app

  with TestClient(create_app(server_state)) as c:
    yield c
