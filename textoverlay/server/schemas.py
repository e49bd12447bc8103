from __future__ import annotations

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from textoverlay.autofit.fontfit import (
  DEFAULT_FONT_SIZE,
  DEFAULT_LINE_HEIGHT,
  DEFAULT_MAX_LINES,
  DEFAULT_PADDING_PERCENT,
  LayoutRequest,
)
from textoverlay.render.compose import TextStyle

_NUM_PREFIX_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+))")
_FALSE_STRINGS = {"false", "0", "no", "off"}
_TRUE_STRINGS = {"true", "1", "yes", "on"}


def _parse_number(value: Any) -> Optional[float]:
  """Leading number of a form value ("42px" -> 42.0); None when there is none."""
  if value is None or isinstance(value, bool):
    return None
  if isinstance(value, (int, float)):
    return float(value)
  m = _NUM_PREFIX_RE.match(str(value))
  if not m:
    return None
  return float(m.group(1))


def _lenient_int(value: Any, default: int) -> int:
  num = _parse_number(value)
  return default if num is None else int(num)


def _lenient_float(value: Any, default: float) -> float:
  num = _parse_number(value)
  return default if num is None else float(num)


def _true_unless_false(value: Any, default: bool = True) -> bool:
  if value is None or value == "":
    return default
  if isinstance(value, bool):
    return value
  return str(value).strip().lower() not in _FALSE_STRINGS


def _only_if_true(value: Any) -> bool:
  if isinstance(value, bool):
    return value
  return str(value or "").strip().lower() in _TRUE_STRINGS


class OverlayParams(BaseModel):
  """
  Typed overlay parameters. Accepts multipart form strings or JSON values and
  coerces them leniently: unparseable numbers fall back to defaults, and
  `autoResize`/`shadowEnabled` are only off for explicit false-like values
  while `strokeEnabled`/`savePublicly` are only on for explicit true-like ones.
  """

  model_config = ConfigDict(populate_by_name=True, extra="ignore")

  text: str = ""
  font_size: int = Field(DEFAULT_FONT_SIZE, alias="fontSize")
  font_family: str = Field("Arial", alias="fontFamily")
  font_weight: str = Field("normal", alias="fontWeight")
  color: str = "#ffffff"
  text_align: str = Field("center", alias="textAlign")
  position_x: float = Field(50.0, alias="positionX")
  position_y: float = Field(50.0, alias="positionY")
  output_format: str = Field("auto", alias="outputFormat")
  auto_resize: bool = Field(True, alias="autoResize")
  max_font_size: Optional[int] = Field(None, alias="maxFontSize")
  min_font_size: Optional[int] = Field(None, alias="minFontSize")
  padding_percent: float = Field(DEFAULT_PADDING_PERCENT, alias="paddingPercent")
  line_height_multiplier: float = Field(DEFAULT_LINE_HEIGHT, alias="lineHeightMultiplier")
  max_lines: int = Field(DEFAULT_MAX_LINES, alias="maxLines")
  shadow_enabled: bool = Field(True, alias="shadowEnabled")
  shadow_color: str = Field("rgba(0,0,0,0.7)", alias="shadowColor")
  shadow_blur: int = Field(4, alias="shadowBlur")
  shadow_offset: int = Field(2, alias="shadowOffset")
  stroke_enabled: bool = Field(False, alias="strokeEnabled")
  stroke_color: str = Field("#000000", alias="strokeColor")
  stroke_width: int = Field(1, alias="strokeWidth")
  save_publicly: bool = Field(False, alias="savePublicly")

  @field_validator("text", mode="before")
  @classmethod
  def _text(cls, v: Any) -> str:
    return "" if v is None else str(v)

  @field_validator("font_family", "color", "shadow_color", "stroke_color", "output_format", mode="before")
  @classmethod
  def _strings(cls, v: Any, info) -> str:
    s = "" if v is None else str(v).strip()
    if s:
      return s
    return cls.model_fields[info.field_name].default

  @field_validator("font_weight", mode="before")
  @classmethod
  def _weight(cls, v: Any) -> str:
    s = str(v or "").strip().lower()
    if s in ("bold", "bolder") or s in ("600", "700", "800", "900"):
      return "bold"
    return "normal"

  @field_validator("text_align", mode="before")
  @classmethod
  def _align(cls, v: Any) -> str:
    s = str(v or "").strip().lower()
    return s if s in ("left", "center", "right") else "center"

  @field_validator("font_size", mode="before")
  @classmethod
  def _font_size(cls, v: Any) -> int:
    n = _lenient_int(v, DEFAULT_FONT_SIZE)
    return n if n > 0 else DEFAULT_FONT_SIZE

  @field_validator("position_x", "position_y", mode="before")
  @classmethod
  def _position(cls, v: Any) -> float:
    return max(0.0, min(100.0, _lenient_float(v, 50.0)))

  @field_validator("max_font_size", "min_font_size", mode="before")
  @classmethod
  def _font_bound(cls, v: Any) -> Optional[int]:
    # Zero or unparseable means "derive from the image size".
    n = _lenient_int(v, 0)
    return n if n > 0 else None

  @field_validator("padding_percent", mode="before")
  @classmethod
  def _padding(cls, v: Any) -> float:
    return max(0.0, min(50.0, _lenient_float(v, DEFAULT_PADDING_PERCENT)))

  @field_validator("line_height_multiplier", mode="before")
  @classmethod
  def _line_height(cls, v: Any) -> float:
    f = _lenient_float(v, DEFAULT_LINE_HEIGHT)
    return f if f > 0 else DEFAULT_LINE_HEIGHT

  @field_validator("max_lines", mode="before")
  @classmethod
  def _max_lines(cls, v: Any) -> int:
    n = _lenient_int(v, DEFAULT_MAX_LINES)
    return n if n > 0 else DEFAULT_MAX_LINES

  @field_validator("shadow_blur", "shadow_offset", mode="before")
  @classmethod
  def _shadow_ints(cls, v: Any, info) -> int:
    return _lenient_int(v, cls.model_fields[info.field_name].default)

  @field_validator("stroke_width", mode="before")
  @classmethod
  def _stroke_width(cls, v: Any) -> int:
    return max(0, _lenient_int(v, 1))

  @field_validator("auto_resize", "shadow_enabled", mode="before")
  @classmethod
  def _default_on(cls, v: Any) -> bool:
    return _true_unless_false(v)

  @field_validator("stroke_enabled", "save_publicly", mode="before")
  @classmethod
  def _default_off(cls, v: Any) -> bool:
    return _only_if_true(v)

  @classmethod
  def from_raw(cls, raw: Dict[str, Any]) -> "OverlayParams":
    return cls.model_validate(dict(raw or {}))

  def layout_request(self, width: int, height: int) -> LayoutRequest:
    return LayoutRequest(
      text=self.text,
      box_width=int(width),
      box_height=int(height),
      font_family=self.font_family,
      font_weight=self.font_weight,
      font_size=self.font_size,
      padding_percent=self.padding_percent,
      line_height_multiplier=self.line_height_multiplier,
      auto_resize=self.auto_resize,
      min_font_size=self.min_font_size,
      max_font_size=self.max_font_size,
      max_lines=self.max_lines,
    )

  def text_style(self) -> TextStyle:
    return TextStyle(
      color=self.color,
      font_family=self.font_family,
      font_weight=self.font_weight,
      shadow_enabled=self.shadow_enabled,
      shadow_color=self.shadow_color,
      shadow_blur=self.shadow_blur,
      shadow_offset=self.shadow_offset,
      stroke_enabled=self.stroke_enabled,
      stroke_color=self.stroke_color,
      stroke_width=self.stroke_width,
    )


class OverlayBase64Request(OverlayParams):
  image_base64: Optional[str] = Field(None, alias="imageBase64")
  return_base64: bool = Field(True, alias="returnBase64")

  @field_validator("return_base64", mode="before")
  @classmethod
  def _return_base64(cls, v: Any) -> bool:
    return _true_unless_false(v)
