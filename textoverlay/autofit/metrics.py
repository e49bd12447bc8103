from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, NamedTuple


class FontMetrics(NamedTuple):
  """Average glyph advance as a fraction of the font size, per weight."""

  normal: float
  bold: float

  def for_weight(self, font_weight: str) -> float:
    return self.bold if _is_bold(font_weight) else self.normal


DEFAULT_METRICS = FontMetrics(0.6, 0.65)

FONT_METRICS: Mapping[str, FontMetrics] = MappingProxyType({
  "arial": FontMetrics(0.55, 0.6),
  "helvetica": FontMetrics(0.55, 0.6),
  "liberation sans": FontMetrics(0.55, 0.6),
  "dejavu sans": FontMetrics(0.6, 0.66),
  "verdana": FontMetrics(0.62, 0.68),
  "tahoma": FontMetrics(0.56, 0.61),
  "trebuchet ms": FontMetrics(0.54, 0.59),
  "open sans": FontMetrics(0.57, 0.62),
  "roboto": FontMetrics(0.55, 0.59),
  "inter": FontMetrics(0.57, 0.61),
  "times new roman": FontMetrics(0.5, 0.55),
  "times": FontMetrics(0.5, 0.55),
  "georgia": FontMetrics(0.55, 0.6),
  "courier new": FontMetrics(0.6, 0.6),
  "courier": FontMetrics(0.6, 0.6),
  "monospace": FontMetrics(0.6, 0.6),
  "impact": FontMetrics(0.5, 0.52),
  "comic sans ms": FontMetrics(0.58, 0.63),
  "sans-serif": FontMetrics(0.55, 0.6),
  "serif": FontMetrics(0.5, 0.55),
})

# Per-glyph corrections applied on top of the family multiplier.
_CHAR_CLASS_FACTORS = (
  (frozenset("iIl1"), 0.4),
  (frozenset("fjtJ"), 0.5),
  (frozenset("rF"), 0.65),
  (frozenset("mwMW"), 1.5),
  (frozenset(" "), 0.3),
  (frozenset(".,;:!|"), 0.35),
)


def _is_bold(font_weight: str) -> bool:
  return str(font_weight or "").strip().lower() == "bold"


def normalize_family(font_family: str) -> str:
  """'"Open Sans", Arial, sans-serif' -> 'open sans'."""
  first = str(font_family or "").split(",", 1)[0]
  return first.strip().strip("'\"").strip().lower()


def metrics_for(font_family: str) -> FontMetrics:
  return FONT_METRICS.get(normalize_family(font_family), DEFAULT_METRICS)


def char_factor(ch: str) -> float:
  for chars, factor in _CHAR_CLASS_FACTORS:
    if ch in chars:
      return factor
  return 1.0


def estimate_text_width(
  text: str,
  font_size: float,
  font_family: str = "Arial",
  font_weight: str = "normal",
) -> float:
  """
  Approximate rendered width in pixels without loading a font.

  The estimate is linear in `font_size`, which keeps it monotonic for the
  font-size search in `fontfit`.
  """
  if not text:
    return 0.0
  base = metrics_for(font_family).for_weight(font_weight)
  units = 0.0
  for ch in text:
    units += base * char_factor(ch)
  return float(font_size) * units
