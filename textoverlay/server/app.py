from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from textoverlay.autofit.fontfit import LayoutResult, layout_text
from textoverlay.imaging.codec import decode, decode_base64_image, encode, mime_type, resolve_output_format
from textoverlay.render.compose import compose_overlay
from textoverlay.server.docs import API_VERSION, api_docs
from textoverlay.server.logs import setup_logger
from textoverlay.server.paths import public_filename, public_url, safe_extension, write_public_file
from textoverlay.server.schemas import OverlayBase64Request, OverlayParams
from textoverlay.server.state import ServerState

logger = logging.getLogger("textoverlay.server")


@dataclass
class RenderedOverlay:
  data: bytes
  format: str
  width: int
  height: int
  layout: LayoutResult


def _utc_now_iso() -> str:
  return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _bad_request(message: str) -> HTTPException:
  return HTTPException(status_code=400, detail={"error": message})


def _parse_params(model, raw: Dict[str, Any]):
  try:
    return model.model_validate(raw)
  except ValidationError as e:
    raise HTTPException(status_code=400, detail={"error": "Invalid parameters", "details": jsonable_encoder(e.errors())}) from e


def render_overlay(state: ServerState, data: bytes, params: OverlayParams) -> RenderedOverlay:
  decoded = decode(data)
  fmt = resolve_output_format(params.output_format, decoded, data, default=state.default_format)
  layout = layout_text(params.layout_request(decoded.width, decoded.height))
  composed, _anchors = compose_overlay(
    decoded.image,
    layout,
    params.text_style(),
    text_align=params.text_align,
    position_x=params.position_x,
    position_y=params.position_y,
    font_paths=state.font_paths,
  )
  out = encode(composed, fmt, jpeg_quality=state.jpeg_quality, webp_quality=state.webp_quality)
  logger.info(
    "Overlay %dx%d -> %s (%d bytes), font %dpx, %d line(s)%s",
    decoded.width, decoded.height, fmt, len(out), layout.font_size, len(layout.lines),
    "" if layout.fits else ", overflow",
  )
  return RenderedOverlay(data=out, format=fmt, width=decoded.width, height=decoded.height, layout=layout)


def create_app(state: Optional[ServerState] = None) -> FastAPI:
  state = state or ServerState()
  log_cfg = state.config.get("logging") or {}
  setup_logger(log_cfg.get("level") or "INFO", log_cfg.get("file"))

  app = FastAPI(title="Text Overlay API", version=API_VERSION, docs_url=None, redoc_url=None)
  app.state.overlay = state
  app.add_middleware(
    CORSMiddleware,
    allow_origins=state.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
  )
  app.mount(state.uploads_url_prefix, StaticFiles(directory=str(state.uploads_dir)), name="uploads")

  @app.exception_handler(StarletteHTTPException)
  async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

  @app.exception_handler(RequestValidationError)
  async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())})

  def _save_public(request: Request, prefix: str, ext: str, data: bytes) -> Dict[str, Any]:
    filename = public_filename(prefix, ext)
    write_public_file(state.uploads_dir, filename, data)
    return {
      "filename": filename,
      "fileUrl": public_url(str(request.base_url), state.uploads_url_prefix, filename),
      "size": len(data),
    }

  async def _overlay_response(request: Request, data: bytes, params: OverlayParams, as_base64: bool) -> Response:
    try:
      result = await run_in_threadpool(render_overlay, state, data, params)
    except Exception as e:
      logger.exception("Error processing image")
      raise HTTPException(status_code=500, detail={"error": "Failed to process image", "details": str(e)}) from e

    if params.save_publicly:
      try:
        saved = await run_in_threadpool(_save_public, request, "overlayed-image", "." + result.format, result.data)
      except OSError as e:
        logger.exception("Error saving processed image")
        raise HTTPException(status_code=500, detail={"error": "Failed to process image", "details": str(e)}) from e
      return JSONResponse({
        "success": True,
        "message": "Image processed and saved publicly",
        **saved,
        "format": result.format,
      })

    if as_base64:
      encoded = base64.b64encode(result.data).decode("ascii")
      return JSONResponse({
        "success": True,
        "image": f"data:{mime_type(result.format)};base64,{encoded}",
        "format": result.format,
        "size": len(result.data),
        "width": result.width,
        "height": result.height,
        "layout": result.layout.as_dict(),
      })

    return Response(
      content=result.data,
      media_type=mime_type(result.format),
      headers={"Content-Disposition": f'attachment; filename="image-with-overlay.{result.format}"'},
    )

  @app.get("/health")
  def health() -> Dict[str, Any]:
    return {"status": "OK", "timestamp": _utc_now_iso(), "version": API_VERSION}

  @app.get("/api/docs")
  def docs() -> Dict[str, Any]:
    return api_docs(state.uploads_url_prefix, state.max_upload_bytes)

  @app.post("/api/overlay")
  async def overlay(request: Request) -> Response:
    form = await request.form()
    image = form.get("image")
    if not isinstance(image, UploadFile):
      raise _bad_request("No image file provided")

    raw = {k: v for k, v in form.items() if not isinstance(v, UploadFile)}
    params = _parse_params(OverlayParams, raw)
    if not params.text:
      raise _bad_request("Text is required")

    data = await image.read()
    return await _overlay_response(request, data, params, as_base64=False)

  @app.post("/api/overlay-base64")
  async def overlay_base64(request: Request, payload: Dict[str, Any] = Body(default_factory=dict)) -> Response:
    req = _parse_params(OverlayBase64Request, payload)
    if not req.image_base64:
      raise _bad_request("No image data provided")
    if not req.text:
      raise _bad_request("Text is required")

    try:
      data = decode_base64_image(req.image_base64)
    except ValueError as e:
      logger.exception("Error decoding base64 image")
      raise HTTPException(status_code=500, detail={"error": "Failed to process image", "details": str(e)}) from e
    return await _overlay_response(request, data, req, as_base64=req.return_base64)

  @app.post("/api/upload_public")
  async def upload_public(request: Request) -> Dict[str, Any]:
    form = await request.form()
    image = form.get("image")
    if not isinstance(image, UploadFile):
      raise _bad_request("No image file provided")

    content_type = str(image.content_type or "").lower()
    if not content_type.startswith("image/"):
      raise _bad_request("Only image files are allowed")

    data = await image.read(state.max_upload_bytes + 1)
    if len(data) > state.max_upload_bytes:
      raise HTTPException(
        status_code=413,
        detail={"error": "File too large", "details": f"Maximum size is {state.max_upload_bytes} bytes"},
      )

    try:
      saved = await run_in_threadpool(_save_public, request, "image", safe_extension(image.filename), data)
    except OSError as e:
      logger.exception("Error uploading image publicly")
      raise HTTPException(status_code=500, detail={"error": "Failed to upload image publicly", "details": str(e)}) from e

    logger.info("Stored public upload %s (%d bytes)", saved["filename"], saved["size"])
    return {"success": True, "message": "Image uploaded publicly", **saved}

  return app
