from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger("textoverlay.codec")

DEFAULT_FORMAT = "png"

# Formats Pillow can write without optional plugins.
WRITABLE_FORMATS = {"jpeg", "png", "webp", "gif", "tiff", "bmp"}

_FORMAT_ALIASES = {
  "jpg": "jpeg",
  "jpe": "jpeg",
  "jfif": "jpeg",
  "tif": "tiff",
  "heic": "heif",
  "svg+xml": "svg",
  "x-ms-bmp": "bmp",
  "mpo": "jpeg",
}

_KNOWN_FORMATS = WRITABLE_FORMATS | {"avif", "heif", "svg"}

# Pillow save() format names.
_PIL_SAVE_NAMES = {
  "jpeg": "JPEG",
  "png": "PNG",
  "webp": "WEBP",
  "gif": "GIF",
  "tiff": "TIFF",
  "bmp": "BMP",
}


class DecodeError(ValueError):
  pass


class EncodeError(RuntimeError):
  pass


@dataclass
class DecodedImage:
  image: Image.Image
  width: int
  height: int
  format: Optional[str]


def normalize_format(name: Optional[str], default: str = DEFAULT_FORMAT) -> str:
  """'JPG' -> 'jpeg', 'image/tif' -> 'tiff'; anything unknown maps to `default`."""
  fmt = str(name or "").strip().lower()
  if fmt.startswith("image/"):
    fmt = fmt[len("image/"):]
  fmt = _FORMAT_ALIASES.get(fmt, fmt)
  if fmt in _KNOWN_FORMATS:
    return fmt
  return default


def detect_image_format(data: bytes) -> Optional[str]:
  """Sniff the container format from magic bytes."""
  if not data or len(data) < 4:
    return None
  head = bytes(data[:16])
  if head.startswith(b"\xff\xd8\xff"):
    return "jpeg"
  if head.startswith(b"\x89PNG\r\n\x1a\n"):
    return "png"
  if head.startswith(b"GIF87a") or head.startswith(b"GIF89a"):
    return "gif"
  if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
    return "webp"
  if head.startswith(b"II*\x00") or head.startswith(b"MM\x00*"):
    return "tiff"
  if head.startswith(b"BM"):
    return "bmp"
  if head[4:8] == b"ftyp":
    brand = head[8:12]
    if brand in (b"avif", b"avis"):
      return "avif"
    if brand in (b"heic", b"heix", b"hevc", b"hevx", b"mif1", b"msf1"):
      return "heif"
  return None


def decode(data: bytes) -> DecodedImage:
  if not data:
    raise DecodeError("Empty image data")
  try:
    img = Image.open(io.BytesIO(data))
    img.load()
  except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
    raise DecodeError(f"Unsupported or corrupt image: {e}") from e
  fmt = normalize_format(img.format, default="") or None
  return DecodedImage(image=img, width=int(img.width), height=int(img.height), format=fmt)


def decode_base64_image(value: str) -> bytes:
  """Accepts a data URI (`data:image/png;base64,...`) or a raw base64 string."""
  payload = str(value or "").strip()
  if "," in payload and payload.lower().startswith("data:"):
    payload = payload.split(",", 1)[1]
  payload = "".join(payload.split())
  try:
    return base64.b64decode(payload, validate=False)
  except (binascii.Error, ValueError) as e:
    raise DecodeError(f"Invalid base64 image data: {e}") from e


def resolve_output_format(
  requested: Optional[str],
  decoded: Optional[DecodedImage],
  data: bytes,
  default: str = DEFAULT_FORMAT,
) -> str:
  """
  "auto" keeps the source format (falling back to magic bytes, then the
  default). Formats Pillow cannot write degrade to the default.
  """
  default = normalize_format(default)
  if default not in WRITABLE_FORMATS:
    default = DEFAULT_FORMAT
  req = str(requested or "auto").strip().lower()
  if req == "auto":
    fmt = (decoded.format if decoded else None) or detect_image_format(data) or default
  else:
    fmt = req
  fmt = normalize_format(fmt, default=default)
  if fmt not in WRITABLE_FORMATS:
    logger.warning("Output format %r is not writable; using %s", fmt, default)
    return default
  return fmt


def mime_type(fmt: str) -> str:
  return f"image/{normalize_format(fmt)}"


def composite(base: Image.Image, overlay: Image.Image, x: int = 0, y: int = 0) -> Image.Image:
  """Alpha-composite `overlay` onto a copy of `base` at (x, y)."""
  canvas = base.convert("RGBA")
  layer = overlay if overlay.mode == "RGBA" else overlay.convert("RGBA")
  canvas.alpha_composite(layer, dest=(int(x), int(y)))
  return canvas


def _flatten(img: Image.Image, background=(0, 0, 0)) -> Image.Image:
  if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
    rgba = img.convert("RGBA")
    bg = Image.new("RGB", rgba.size, background)
    bg.paste(rgba, mask=rgba.getchannel("A"))
    return bg
  return img.convert("RGB")


def encode(
  img: Image.Image,
  fmt: str,
  *,
  jpeg_quality: int = 90,
  webp_quality: int = 90,
) -> bytes:
  fmt = normalize_format(fmt, default="")
  save_name = _PIL_SAVE_NAMES.get(fmt)
  if not save_name:
    raise EncodeError(f"Unsupported output format: {fmt or 'unknown'}")

  opts = {}
  out_img = img
  if fmt == "jpeg":
    out_img = _flatten(img)
    opts = {"quality": int(jpeg_quality), "optimize": True}
  elif fmt == "webp":
    opts = {"quality": int(webp_quality)}
  elif fmt == "png":
    opts = {"optimize": True}
  elif fmt in ("bmp", "gif"):
    out_img = _flatten(img)

  buf = io.BytesIO()
  try:
    out_img.save(buf, format=save_name, **opts)
  except (OSError, ValueError, KeyError) as e:
    raise EncodeError(f"Failed to encode {fmt}: {e}") from e
  return buf.getvalue()
