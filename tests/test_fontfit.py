# tests/test_fontfit.py
"""
Line wrapping, long-word breaking and the font-size search.
"""

from __future__ import annotations

import random

import pytest

from textoverlay.autofit.fontfit import (
  LayoutRequest,
  break_long_word,
  calculate_optimal_font_size,
  default_font_bounds,
  layout_text,
  wrap_text,
)
from textoverlay.autofit.metrics import estimate_text_width

_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789.,;:!|"


def _random_text(rng: random.Random) -> str:
  words = []
  for _ in range(rng.randint(1, 30)):
    words.append("".join(rng.choice(_ALPHABET) for _ in range(rng.randint(1, 25))))
  text = " ".join(words)
  if rng.random() < 0.3:
    text = text.replace(" ", "\n", 2)
  return text


def _is_atomic(line: str) -> bool:
  return " " not in line and len(line.rstrip("-")) <= 1


def test_default_font_bounds() -> None:
  assert default_font_bounds(800, 600) == (12, 90)
  assert default_font_bounds(2000, 3000) == (40, 300)
  assert default_font_bounds(100, 100) == (12, 15)


def test_wrap_short_text_single_line() -> None:
  assert wrap_text("Hello World", 680, 32) == ["Hello World"]


def test_wrap_splits_on_overflow() -> None:
  lines = wrap_text("one two three four five six", 120, 20)
  assert len(lines) > 1
  assert " ".join(lines) == "one two three four five six"
  for line in lines:
    assert estimate_text_width(line, 20) <= 120


def test_wrap_preserves_blank_line_between_paragraphs() -> None:
  assert wrap_text("Line one\n\nLine three", 600, 32) == ["Line one", "", "Line three"]


def test_wrap_normalizes_carriage_returns() -> None:
  assert wrap_text("a\r\nb\rc", 600, 20) == ["a", "b", "c"]


def test_wrap_collapses_whitespace_inside_paragraph() -> None:
  assert wrap_text("  spaced    out\twords  ", 800, 20) == ["spaced out words"]


def test_wrap_empty_text_is_one_empty_line() -> None:
  assert wrap_text("", 100, 20) == [""]


def test_break_long_word_scenario() -> None:
  word = "a" * 50
  parts = break_long_word(word, 100, 32)
  assert len(parts) >= 2
  assert all(p.endswith("-") for p in parts[:-1])
  assert not parts[-1].endswith("-")
  assert "".join(p[:-1] for p in parts[:-1]) + parts[-1] == word
  for p in parts:
    assert estimate_text_width(p, 32) <= 100


def test_break_long_word_single_char_overflow_is_kept() -> None:
  parts = break_long_word("WW", 10, 100)
  assert parts == ["W-", "W"]


def test_break_long_word_empty() -> None:
  assert break_long_word("", 100, 20) == [""]


def test_wrap_breaks_long_word_and_continues_line() -> None:
  lines = wrap_text("x" * 40 + " end", 200, 20)
  assert len(lines) >= 2
  assert all(line.endswith("-") for line in lines[:-1])
  assert lines[-1].endswith("end")


@pytest.mark.parametrize("seed", range(40))
def test_every_line_fits_or_is_atomic(seed: int) -> None:
  rng = random.Random(seed)
  text = _random_text(rng)
  width = rng.uniform(5, 500)
  size = rng.randint(6, 64)
  for line in wrap_text(text, width, size):
    assert estimate_text_width(line, size) <= width or _is_atomic(line), line


@pytest.mark.parametrize("seed", range(20))
def test_rewrapping_a_fitting_line_is_identity(seed: int) -> None:
  rng = random.Random(1000 + seed)
  text = _random_text(rng).replace("\n", " ")
  width = rng.uniform(80, 600)
  size = rng.randint(8, 40)
  for line in wrap_text(text, width, size):
    if estimate_text_width(line, size) <= width:
      assert wrap_text(line, width, size) == [line]


def test_wrap_is_deterministic() -> None:
  text = "The quick brown fox jumps over the lazy dog " * 5
  assert wrap_text(text, 300, 24, "Georgia", "bold") == wrap_text(text, 300, 24, "Georgia", "bold")


def test_hello_world_without_auto_resize() -> None:
  res = layout_text(LayoutRequest(text="Hello World", box_width=800, box_height=600, auto_resize=False))
  assert res.font_size == 32
  assert res.lines == ["Hello World"]
  assert res.fits is True
  assert res.line_height == pytest.approx(32 * 1.3)


def test_hello_world_with_auto_resize() -> None:
  res = layout_text(LayoutRequest(text="Hello World", box_width=800, box_height=600))
  assert res.font_size == 90
  assert res.lines == ["Hello World"]
  assert estimate_text_width(res.lines[0], res.font_size) <= 800 * 0.9


def test_solver_prefers_largest_fitting_size() -> None:
  req = LayoutRequest(text="a fairly long caption that needs to wrap onto lines", box_width=400, box_height=300)
  res = calculate_optimal_font_size(req)
  assert res.fits
  _min_pt, max_pt = req.font_bounds()
  if res.font_size < max_pt:
    bigger = wrap_text(req.text, req.usable_width, res.font_size + 1)
    too_tall = len(bigger) * (res.font_size + 1) * req.line_height_multiplier > req.usable_height
    assert too_tall or len(bigger) > req.max_lines


@pytest.mark.parametrize("seed", range(25))
def test_solver_stays_within_bounds(seed: int) -> None:
  rng = random.Random(5000 + seed)
  w = rng.randint(50, 2000)
  h = rng.randint(50, 2000)
  lo = rng.randint(1, 40)
  hi = lo + rng.randint(0, 120)
  req = LayoutRequest(text=_random_text(rng), box_width=w, box_height=h, min_font_size=lo, max_font_size=hi)
  res = calculate_optimal_font_size(req)
  assert lo <= res.font_size <= hi


def test_solver_falls_back_to_min_size_when_nothing_fits() -> None:
  req = LayoutRequest(text="word " * 300, box_width=100, box_height=100)
  res = calculate_optimal_font_size(req)
  assert res.fits is False
  assert res.font_size == 12
  assert res.lines


def test_solver_respects_max_lines() -> None:
  req = LayoutRequest(text="a\nb\nc\nd\ne", box_width=1000, box_height=1000, max_lines=3)
  res = calculate_optimal_font_size(req)
  assert res.fits is False
  assert len(res.lines) == 5


def test_inverted_bounds_do_not_raise() -> None:
  req = LayoutRequest(text="Hello", box_width=500, box_height=500, min_font_size=50, max_font_size=20)
  res = calculate_optimal_font_size(req)
  assert res.font_size == 50
  assert res.fits is False


def test_zero_size_box_does_not_raise() -> None:
  res = calculate_optimal_font_size(LayoutRequest(text="Hi there", box_width=0, box_height=0))
  assert res.font_size == 12
  assert res.fits is False
  assert len(res.lines) >= 1


def test_padding_shrinks_usable_area() -> None:
  req = LayoutRequest(text="x", box_width=1000, box_height=500, padding_percent=10)
  assert req.padding == pytest.approx(50)
  assert req.usable_width == pytest.approx(900)
  assert req.usable_height == pytest.approx(400)


def test_result_as_dict() -> None:
  res = layout_text(LayoutRequest(text="Line one\n\nLine three", box_width=640, box_height=480, auto_resize=False))
  d = res.as_dict()
  assert d["lines"] == ["Line one", "", "Line three"]
  assert d["fontSize"] == 32
  assert d["fits"] is True
