from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from textoverlay.autofit.metrics import estimate_text_width

logger = logging.getLogger("textoverlay.autofit")

DEFAULT_FONT_SIZE = 32
DEFAULT_PADDING_PERCENT = 10.0
DEFAULT_LINE_HEIGHT = 1.3
DEFAULT_MAX_LINES = 10
MIN_FONT_FLOOR = 12

_WS_RE = re.compile(r"\s+")


def default_font_bounds(box_w: int, box_h: int) -> Tuple[int, int]:
  """(min, max) font size when the caller leaves them unset."""
  shorter = max(0, min(int(box_w), int(box_h)))
  max_pt = shorter * 15 // 100
  min_pt = max(MIN_FONT_FLOOR, shorter * 2 // 100)
  return min_pt, max_pt


@dataclass(frozen=True)
class LayoutRequest:
  text: str
  box_width: int
  box_height: int
  font_family: str = "Arial"
  font_weight: str = "normal"
  font_size: int = DEFAULT_FONT_SIZE
  padding_percent: float = DEFAULT_PADDING_PERCENT
  line_height_multiplier: float = DEFAULT_LINE_HEIGHT
  auto_resize: bool = True
  min_font_size: Optional[int] = None
  max_font_size: Optional[int] = None
  max_lines: int = DEFAULT_MAX_LINES

  @property
  def padding(self) -> float:
    return min(self.box_width, self.box_height) * (float(self.padding_percent) / 100.0)

  @property
  def usable_width(self) -> float:
    return self.box_width - 2.0 * self.padding

  @property
  def usable_height(self) -> float:
    return self.box_height - 2.0 * self.padding

  def font_bounds(self) -> Tuple[int, int]:
    default_min, default_max = default_font_bounds(self.box_width, self.box_height)
    min_pt = self.min_font_size if self.min_font_size else default_min
    max_pt = self.max_font_size if self.max_font_size else default_max
    return max(1, int(min_pt)), int(max_pt)


@dataclass(frozen=True)
class LayoutResult:
  font_size: int
  lines: List[str] = field(default_factory=list)
  line_height: float = 0.0
  fits: bool = True
  padding: float = 0.0
  usable_width: float = 0.0
  usable_height: float = 0.0

  @property
  def block_height(self) -> float:
    return len(self.lines) * self.line_height

  def as_dict(self) -> dict:
    return {
      "fontSize": int(self.font_size),
      "lines": list(self.lines),
      "lineHeight": float(self.line_height),
      "fits": bool(self.fits),
    }


def break_long_word(
  word: str,
  max_width: float,
  font_size: float,
  font_family: str = "Arial",
  font_weight: str = "normal",
) -> List[str]:
  """
  Split a token wider than `max_width` into hyphenated fragments.

  A character that does not fit even alone is kept as its own fragment, so
  very large fonts in narrow boxes can still overflow.
  """
  if not word:
    return [""]

  parts: List[str] = []
  frag = ""
  for ch in word:
    cand = frag + ch
    if estimate_text_width(cand + "-", font_size, font_family, font_weight) <= max_width:
      frag = cand
      continue
    if frag:
      parts.append(frag + "-")
      frag = ch
    else:
      frag = ch
  parts.append(frag)
  return parts


def _wrap_paragraph(
  para: str,
  max_width: float,
  font_size: float,
  font_family: str,
  font_weight: str,
) -> List[str]:
  words = [w for w in _WS_RE.split(para) if w]
  if not words:
    return [""]

  out: List[str] = []
  line = ""
  for word in words:
    cand = word if not line else (line + " " + word)
    if estimate_text_width(cand, font_size, font_family, font_weight) <= max_width:
      line = cand
      continue

    if line:
      out.append(line)
      line = ""

    if estimate_text_width(word, font_size, font_family, font_weight) <= max_width:
      line = word
      continue

    chunks = break_long_word(word, max_width, font_size, font_family, font_weight)
    out.extend(chunks[:-1])
    line = chunks[-1]

  if line:
    out.append(line)
  return out


def wrap_text(
  text: str,
  max_width: float,
  font_size: float,
  font_family: str = "Arial",
  font_weight: str = "normal",
) -> List[str]:
  """Greedy word wrap; explicit newlines are hard breaks and blank paragraphs stay blank."""
  paras = (text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
  out_lines: List[str] = []
  for para in paras:
    out_lines.extend(_wrap_paragraph(para, max_width, font_size, font_family, font_weight))
  return out_lines


def _fit_at_size(req: LayoutRequest, size: int) -> Tuple[bool, List[str]]:
  lines = wrap_text(req.text, req.usable_width, size, req.font_family, req.font_weight)
  block_h = len(lines) * (size * float(req.line_height_multiplier))
  ok = block_h <= req.usable_height and len(lines) <= int(req.max_lines)
  return ok, lines


def _result(req: LayoutRequest, size: int, lines: List[str], fits: bool) -> LayoutResult:
  return LayoutResult(
    font_size=int(size),
    lines=lines,
    line_height=float(size) * float(req.line_height_multiplier),
    fits=fits,
    padding=req.padding,
    usable_width=req.usable_width,
    usable_height=req.usable_height,
  )


def calculate_optimal_font_size(req: LayoutRequest) -> LayoutResult:
  """
  Largest integer size in [min, max] whose wrapped text fits the padded box
  and the line limit. Falls back to the minimum size (with `fits=False`)
  when no size fits, including inverted bounds.
  """
  min_pt, max_pt = req.font_bounds()

  lo = min_pt
  hi = max_pt
  best: Optional[int] = None
  best_lines: List[str] = []
  while lo <= hi:
    mid = (lo + hi) // 2
    ok, lines = _fit_at_size(req, mid)
    if ok:
      best = mid
      best_lines = lines
      lo = mid + 1
    else:
      hi = mid - 1

  if best is None:
    _ok, lines = _fit_at_size(req, min_pt)
    logger.warning(
      "Text does not fit %dx%d box at any size in [%d, %d]; using %d",
      req.box_width, req.box_height, min_pt, max_pt, min_pt,
    )
    return _result(req, min_pt, lines, False)

  return _result(req, best, best_lines, True)


def layout_text(req: LayoutRequest) -> LayoutResult:
  if req.auto_resize:
    return calculate_optimal_font_size(req)
  size = max(1, int(req.font_size))
  ok, lines = _fit_at_size(req, size)
  return _result(req, size, lines, ok)
