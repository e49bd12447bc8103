# tests/test_compose.py
"""
Line anchors (alignment, vertical zones), colour parsing and rasterizing the
text layer onto an image.
"""

from __future__ import annotations

import pytest
from PIL import Image

from textoverlay.autofit.fontfit import LayoutRequest, LayoutResult, layout_text
from textoverlay.render.compose import (
  TextStyle,
  compose_overlay,
  compute_line_anchors,
  parse_color,
  render_text_layer,
)


def _two_lines() -> LayoutResult:
  return LayoutResult(font_size=20, lines=["a", "b"], line_height=26.0, padding=10.0)


def test_top_zone_starts_at_padding() -> None:
  anchors = compute_line_anchors(_two_lines(), 300, 200, position_y=10)
  assert [a.y for a in anchors] == pytest.approx([23.0, 49.0])


def test_top_zone_boundary_is_inclusive() -> None:
  top = compute_line_anchors(_two_lines(), 300, 200, position_y=25)
  assert top[0].y == pytest.approx(23.0)


def test_bottom_zone_ends_at_padding() -> None:
  anchors = compute_line_anchors(_two_lines(), 300, 200, position_y=90)
  assert [a.y for a in anchors] == pytest.approx([151.0, 177.0])
  assert compute_line_anchors(_two_lines(), 300, 200, position_y=75)[0].y == pytest.approx(151.0)


def test_middle_zone_centres_block_on_position() -> None:
  anchors = compute_line_anchors(_two_lines(), 300, 200, position_y=50)
  assert [a.y for a in anchors] == pytest.approx([87.0, 113.0])
  assert (anchors[0].y + anchors[1].y) / 2 == pytest.approx(100.0)


def test_horizontal_alignment() -> None:
  left = compute_line_anchors(_two_lines(), 300, 200, text_align="left")
  right = compute_line_anchors(_two_lines(), 300, 200, text_align="right")
  center = compute_line_anchors(_two_lines(), 300, 200, text_align="center", position_x=25)
  assert left[0].x == pytest.approx(10.0) and left[0].anchor == "lm"
  assert right[0].x == pytest.approx(290.0) and right[0].anchor == "rm"
  assert center[0].x == pytest.approx(75.0) and center[0].anchor == "mm"


def test_unknown_alignment_falls_back_to_center() -> None:
  anchors = compute_line_anchors(_two_lines(), 300, 200, text_align="justify")
  assert anchors[0].anchor == "mm"


def test_anchors_keep_line_order_and_text() -> None:
  anchors = compute_line_anchors(_two_lines(), 300, 200)
  assert [a.text for a in anchors] == ["a", "b"]


def test_parse_color() -> None:
  assert parse_color("#ff0000") == (255, 0, 0, 255)
  assert parse_color("red") == (255, 0, 0, 255)
  assert parse_color("rgba(0, 0, 0, 0.5)") == (0, 0, 0, 128)
  assert parse_color("rgba(10,20,30,1)") == (10, 20, 30, 255)
  assert parse_color("not-a-colour", default=(1, 2, 3, 4)) == (1, 2, 3, 4)


def test_render_text_layer_draws_pixels() -> None:
  layout = LayoutResult(font_size=40, lines=["Hi"], line_height=52.0, padding=10.0)
  anchors = compute_line_anchors(layout, 200, 100)
  layer = render_text_layer((200, 100), layout, anchors, TextStyle(shadow_enabled=False))
  assert layer.mode == "RGBA"
  assert layer.size == (200, 100)
  assert layer.getchannel("A").getbbox() is not None


def test_render_text_layer_with_shadow_and_stroke() -> None:
  layout = LayoutResult(font_size=40, lines=["Hi"], line_height=52.0, padding=10.0)
  anchors = compute_line_anchors(layout, 200, 100)
  style = TextStyle(shadow_enabled=True, shadow_blur=6, stroke_enabled=True, stroke_width=2)
  layer = render_text_layer((200, 100), layout, anchors, style)
  assert layer.getchannel("A").getbbox() is not None


def test_empty_lines_leave_layer_transparent() -> None:
  layout = LayoutResult(font_size=40, lines=[""], line_height=52.0, padding=10.0)
  anchors = compute_line_anchors(layout, 200, 100)
  layer = render_text_layer((200, 100), layout, anchors, TextStyle())
  assert layer.getchannel("A").getbbox() is None


def test_compose_overlay_keeps_size_and_changes_pixels() -> None:
  base = Image.new("RGB", (400, 300), (0, 0, 255))
  layout = layout_text(LayoutRequest(text="Hello World", box_width=400, box_height=300))
  out, anchors = compose_overlay(base, layout, TextStyle(color="#ffffff", shadow_enabled=False))
  assert out.size == (400, 300)
  assert len(anchors) == len(layout.lines)
  colours = out.convert("RGB").getcolors(maxcolors=400 * 300)
  assert colours is not None and len(colours) > 1
