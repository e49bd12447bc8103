from __future__ import annotations

from typing import Any, Dict

API_VERSION = "1.0"

_LAYOUT_PARAMS: Dict[str, str] = {
  "text": "string, required. Newlines are hard line breaks.",
  "fontSize": "number, default 32. Used when autoResize is false.",
  "fontFamily": "string, default Arial.",
  "fontWeight": "normal | bold, default normal.",
  "color": "CSS colour, default #ffffff.",
  "textAlign": "left | center | right, default center.",
  "positionX": "0-100 (% of width), default 50. Anchor for centred text.",
  "positionY": "0-100 (% of height), default 50. <=25 pins to top, >=75 to bottom, otherwise centred here.",
  "outputFormat": "auto | jpeg | png | webp | gif | tiff | bmp, default auto (keep source format).",
  "autoResize": "boolean, default true. Pick the largest font that fits.",
  "maxFontSize": "number, default 15% of the shorter image side.",
  "minFontSize": "number, default max(12, 2% of the shorter image side).",
  "paddingPercent": "number, default 10 (% of the shorter image side).",
  "lineHeightMultiplier": "number, default 1.3.",
  "maxLines": "number, default 10.",
  "shadowEnabled": "boolean, default true.",
  "shadowColor": "CSS colour, default rgba(0,0,0,0.7).",
  "shadowBlur": "number, default 4.",
  "shadowOffset": "number, default 2.",
  "strokeEnabled": "boolean, default false.",
  "strokeColor": "CSS colour, default #000000.",
  "strokeWidth": "number, default 1.",
  "savePublicly": "boolean, default false. Save the result and return its public URL.",
}


def api_docs(uploads_url_prefix: str = "/uploads", max_upload_bytes: int = 10 * 1024 * 1024) -> Dict[str, Any]:
  return {
    "name": "Text Overlay API",
    "version": API_VERSION,
    "endpoints": {
      "POST /api/overlay": {
        "description": "Overlay text on an uploaded image.",
        "contentType": "multipart/form-data",
        "fields": {"image": "file, required", **_LAYOUT_PARAMS},
        "returns": "Binary image, or JSON with fileUrl when savePublicly is true.",
      },
      "POST /api/overlay-base64": {
        "description": "Overlay text on a base64-encoded image.",
        "contentType": "application/json",
        "fields": {
          "imageBase64": "data URI or raw base64 string, required",
          "returnBase64": "boolean, default true. JSON with a data URI instead of binary.",
          **_LAYOUT_PARAMS,
        },
        "returns": "JSON {success, image, format, size, width, height, layout}, or binary image.",
      },
      "POST /api/upload_public": {
        "description": "Store an image and return its public URL.",
        "contentType": "multipart/form-data",
        "fields": {"image": f"image file, required, at most {int(max_upload_bytes)} bytes"},
        "returns": "JSON {success, message, filename, fileUrl, size}.",
      },
      f"GET {uploads_url_prefix}/<filename>": {"description": "Publicly stored images."},
      "GET /health": {"description": "Liveness probe."},
      "GET /api/docs": {"description": "This document."},
    },
    "errors": {
      "400": "Missing image or text, or a malformed request body. JSON {error}.",
      "413": "Upload larger than the configured limit. JSON {error, details}.",
      "500": "Image decode/encode failure. JSON {error, details}.",
    },
  }
