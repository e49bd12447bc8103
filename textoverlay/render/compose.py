from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageFont

from textoverlay.autofit.fontfit import LayoutResult
from textoverlay.imaging.codec import composite

logger = logging.getLogger("textoverlay.render")

# Vertical zone thresholds (percent of image height).
TOP_ZONE_MAX = 25.0
BOTTOM_ZONE_MIN = 75.0

_ANCHOR_BY_ALIGN = {"left": "lm", "center": "mm", "right": "rm"}

_RGBA_CSS_RE = re.compile(
  r"^rgba\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*([0-9]*\.?[0-9]+)\s*\)$",
  re.IGNORECASE,
)

_FALLBACK_FONT_FILES = {
  "normal": [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
  ],
  "bold": [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Bold.ttf",
  ],
}


@dataclass(frozen=True)
class LineAnchor:
  text: str
  x: float
  y: float  # vertical middle of the line box
  anchor: str  # PIL text anchor


@dataclass(frozen=True)
class TextStyle:
  color: str = "#ffffff"
  font_family: str = "Arial"
  font_weight: str = "normal"
  shadow_enabled: bool = True
  shadow_color: str = "rgba(0,0,0,0.7)"
  shadow_blur: int = 4
  shadow_offset: int = 2
  stroke_enabled: bool = False
  stroke_color: str = "#000000"
  stroke_width: int = 1


def parse_color(value: str, default: Tuple[int, int, int, int] = (255, 255, 255, 255)) -> Tuple[int, int, int, int]:
  """Hex, CSS names, rgb()/hsl() via Pillow, plus CSS rgba() with a 0..1 alpha."""
  raw = str(value or "").strip()
  m = _RGBA_CSS_RE.match(raw)
  if m:
    r, g, b = (max(0, min(255, int(m.group(i)))) for i in (1, 2, 3))
    a = float(m.group(4))
    alpha = int(round(a * 255)) if a <= 1.0 else int(a)
    return r, g, b, max(0, min(255, alpha))
  try:
    return tuple(ImageColor.getcolor(raw, "RGBA"))  # type: ignore[return-value]
  except ValueError:
    logger.warning("Could not parse colour %r; using %s", raw, default)
    return default


def compute_line_anchors(
  layout: LayoutResult,
  image_width: int,
  image_height: int,
  text_align: str = "center",
  position_x: float = 50.0,
  position_y: float = 50.0,
) -> List[LineAnchor]:
  align = text_align if text_align in _ANCHOR_BY_ALIGN else "center"
  pad = float(layout.padding)

  if align == "left":
    x = pad
  elif align == "right":
    x = float(image_width) - pad
  else:
    x = float(image_width) * float(position_x) / 100.0

  block_h = layout.block_height
  if position_y <= TOP_ZONE_MAX:
    top = pad
  elif position_y >= BOTTOM_ZONE_MIN:
    top = float(image_height) - pad - block_h
  else:
    top = float(image_height) * float(position_y) / 100.0 - block_h / 2.0

  anchors: List[LineAnchor] = []
  for i, line in enumerate(layout.lines):
    y = top + i * layout.line_height + layout.line_height / 2.0
    anchors.append(LineAnchor(text=line, x=x, y=y, anchor=_ANCHOR_BY_ALIGN[align]))
  return anchors


def _fc_match_file(pattern: str) -> Optional[str]:
  try:
    res = subprocess.run(
      ["fc-match", "-f", "%{file}\n", str(pattern)],
      capture_output=True,
      text=True,
      check=False,
    )
  except OSError:
    return None
  out = (res.stdout or "").strip().splitlines()
  if not out:
    return None
  path = out[0].strip()
  if path and Path(path).exists():
    return path
  return None


@lru_cache(maxsize=64)
def resolve_font_path(font_family: str, font_weight: str = "normal", configured: Tuple[Tuple[str, str], ...] = ()) -> Optional[str]:
  """
  Map a family/weight to a font file: configured paths first, then
  fontconfig, then well-known Linux locations.
  """
  bold = str(font_weight or "").lower() == "bold"
  family = str(font_family or "").split(",", 1)[0].strip().strip("'\"")

  cfg = dict(configured)
  for key in (f"{family.lower()}:{'bold' if bold else 'normal'}", family.lower()):
    p = cfg.get(key)
    if p and Path(p).exists():
      return p

  if family:
    resolved = _fc_match_file(f"{family}:weight=bold" if bold else family)
    if resolved:
      return resolved

  for p in _FALLBACK_FONT_FILES["bold" if bold else "normal"]:
    if Path(p).exists():
      return p
  return None


def load_font(
  font_family: str,
  font_weight: str,
  size: int,
  font_paths: Optional[Mapping[str, str]] = None,
) -> ImageFont.FreeTypeFont:
  configured = tuple(sorted((str(k).lower(), str(v)) for k, v in (font_paths or {}).items()))
  path = resolve_font_path(font_family, font_weight, configured)
  if path:
    try:
      return ImageFont.truetype(path, size=max(1, int(size)))
    except OSError as e:
      logger.warning("Failed to load font %s: %s", path, e)
  else:
    logger.warning("No font file for %r (%s); using Pillow default", font_family, font_weight)
  return ImageFont.load_default(size=max(1, int(size)))


def render_text_layer(
  size: Tuple[int, int],
  layout: LayoutResult,
  anchors: List[LineAnchor],
  style: TextStyle,
  font_paths: Optional[Mapping[str, str]] = None,
) -> Image.Image:
  """Rasterize the laid-out lines onto a transparent RGBA layer of `size`."""
  layer = Image.new("RGBA", size, (0, 0, 0, 0))
  if not anchors:
    return layer

  font = load_font(style.font_family, style.font_weight, layout.font_size, font_paths)
  stroke_w = max(0, int(style.stroke_width)) if style.stroke_enabled else 0

  if style.shadow_enabled:
    shadow = Image.new("RGBA", size, (0, 0, 0, 0))
    sdraw = ImageDraw.Draw(shadow)
    shadow_rgba = parse_color(style.shadow_color, default=(0, 0, 0, 178))
    off = int(style.shadow_offset)
    for a in anchors:
      if a.text:
        sdraw.text((a.x + off, a.y + off), a.text, font=font, fill=shadow_rgba, anchor=a.anchor, stroke_width=stroke_w)
    blur = max(0, int(style.shadow_blur))
    if blur:
      shadow = shadow.filter(ImageFilter.GaussianBlur(radius=blur / 2.0))
    layer.alpha_composite(shadow)

  draw = ImageDraw.Draw(layer)
  fill = parse_color(style.color)
  stroke_fill = parse_color(style.stroke_color, default=(0, 0, 0, 255)) if stroke_w else None
  for a in anchors:
    if not a.text:
      continue
    draw.text(
      (a.x, a.y),
      a.text,
      font=font,
      fill=fill,
      anchor=a.anchor,
      stroke_width=stroke_w,
      stroke_fill=stroke_fill,
    )
  return layer


def compose_overlay(
  image: Image.Image,
  layout: LayoutResult,
  style: TextStyle,
  *,
  text_align: str = "center",
  position_x: float = 50.0,
  position_y: float = 50.0,
  font_paths: Optional[Mapping[str, str]] = None,
) -> Tuple[Image.Image, List[LineAnchor]]:
  anchors = compute_line_anchors(layout, image.width, image.height, text_align, position_x, position_y)
  layer = render_text_layer((image.width, image.height), layout, anchors, style, font_paths)
  return composite(image, layer, 0, 0), anchors
