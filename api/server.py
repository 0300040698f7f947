"""FastAPI server for Virtual Try-On.

Receives requests from the mobile app with:
- personImageUrl: URL (or uploaded data URL) of the user's photo
- garmentImageUrl: URL of the garment image
- garmentType / category: optional hints forwarded to fal.ai

and keeps the try-on history in Supabase.
"""

import base64
import io
import logging
import time
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from vto_backend.config import AppConfig, load_config
from vto_backend.exceptions import ConfigurationError, HistoryUnavailableError
from vto_backend.logging_config import setup_logging
from vto_backend.models import (
    FavoriteUpdate,
    HealthResponse,
    SaveHistoryRequest,
    TryOnRequest,
    TryOnResponse,
    UploadResponse,
)
from vto_backend.samples import SAMPLE_GARMENT_IMAGES, SAMPLE_PERSON_IMAGES
from vto_backend.services import FalAiService, HistoryService, create_history_service

from .middleware import (
    FixedWindowRateLimiter,
    RateLimitMiddleware,
    RequestLoggerMiddleware,
    validate_try_on_payload,
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
ALLOWED_UPLOAD_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

router = APIRouter()


def get_fal_service(request: Request) -> FalAiService:
    """Get or create the fal.ai service for this app."""
    state = request.app.state
    if getattr(state, "fal_service", None) is None:
        state.fal_service = FalAiService(state.config.fal)
    return state.fal_service


def get_history_service(request: Request) -> HistoryService:
    """Get or create the history service for this app."""
    state = request.app.state
    if getattr(state, "history_service", None) is None:
        try:
            state.history_service = create_history_service(state.config.supabase)
        except ConfigurationError as e:
            raise HistoryUnavailableError(str(e)) from e
    return state.history_service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(error: ValidationError) -> str:
    """Describe the first invalid field of a try-on body."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "body"
    if field == "garmentType":
        return "garmentType must be one of tops, bottoms, one-pieces"
    return f"{field} is invalid: {first['msg']}"


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the API application from config."""
    config = config or load_config()
    server = config.server

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config.log_level)
        logger.info("Virtual Try-On API listening on port %s", server.port)
        yield
        fal_service = getattr(app.state, "fal_service", None)
        if fal_service is not None:
            await fal_service.close()

    app = FastAPI(
        title="Virtual Try-On API",
        description="Proxy to fal.ai virtual try-on with Supabase history",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.started_at = time.monotonic()

    # Added in reverse: CORS runs first, then logging, then the limiter
    app.add_middleware(
        RateLimitMiddleware,
        limiter=FixedWindowRateLimiter(
            max_requests=server.rate_limit_max_requests,
            window_seconds=server.rate_limit_window_seconds,
        ),
        path_prefix="/api",
    )
    app.add_middleware(RequestLoggerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in server.cors_origin.split(",") if o.strip()],
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(HistoryUnavailableError)
    async def history_unavailable_handler(request: Request, exc: HistoryUnavailableError):
        logger.error("History store unavailable: %s", exc)
        return _error(503, "History store is not configured")

    @app.exception_handler(Exception)
    async def error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = {"success": False, "error": "Internal server error"}
        if server.is_development:
            content["message"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    app.include_router(router)
    return app


@router.get("/")
async def root():
    """Service banner."""
    return {
        "message": "Virtual Try-On API Server",
        "version": VERSION,
        "endpoints": {
            "health": "/api/health",
            "tryOn": "/api/try-on",
            "upload": "/api/upload",
            "history": "/api/history",
            "favorites": "/api/favorites",
            "samples": "/api/samples",
        },
    }


@router.get("/api/health", response_model=HealthResponse)
async def health(request: Request):
    """Report "error" when the AI service cannot take requests."""
    try:
        fal_ok = await get_fal_service(request).check_connection()
    except ConfigurationError:
        fal_ok = False

    return HealthResponse(
        status="ok" if fal_ok else "error",
        uptime=time.monotonic() - request.app.state.started_at,
    )


@router.post("/api/try-on")
async def try_on(request: Request):
    """Forward a try-on job to fal.ai.

    Returns 200 with the result URL, 400 for a bad body, 503 when the AI
    service fails and 500 on unexpected errors.
    """
    try:
        payload = await request.json()
    except ValueError:
        return _error(400, "Request body must be valid JSON")

    problem = validate_try_on_payload(payload)
    if problem:
        return _error(400, problem)

    try:
        tryon_request = TryOnRequest.model_validate(payload)
    except ValidationError as e:
        return _error(400, _validation_message(e))

    try:
        fal_service = get_fal_service(request)
    except ConfigurationError as e:
        logger.error("fal.ai is not configured: %s", e)
        return _error(503, "AI service is not configured")

    try:
        result: TryOnResponse = await fal_service.process_try_on(
            tryon_request.to_fal_request()
        )
    except Exception:
        logger.exception("Error in try-on endpoint")
        return _error(500, "Internal server error")

    return JSONResponse(
        status_code=200 if result.success else 503,
        content=result.to_body(),
    )


@router.post("/api/upload")
async def upload(request: Request, image: UploadFile | None = File(None)):
    """Accept one image and return it as a base64 data URL."""
    if image is None:
        return _error(400, "No file uploaded")

    if image.content_type not in ALLOWED_UPLOAD_TYPES:
        return _error(400, "Invalid file type. Only JPEG, PNG, and WebP are allowed.")

    max_size = request.app.state.config.server.max_file_size
    data = await image.read(max_size + 1)
    if len(data) > max_size:
        return _error(413, f"File too large. Maximum size is {max_size} bytes.")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        return _error(400, "Uploaded file is not a valid image")

    encoded = base64.b64encode(data).decode("ascii")
    response = UploadResponse(image_url=f"data:{image.content_type};base64,{encoded}")
    return response.model_dump(by_alias=True)


@router.get("/api/samples")
async def samples():
    return {
        "success": True,
        "data": {
            "person": [s.model_dump(exclude_none=True) for s in SAMPLE_PERSON_IMAGES],
            "garment": [s.model_dump(exclude_none=True) for s in SAMPLE_GARMENT_IMAGES],
        },
    }


# History routes are plain ``def`` so the blocking Supabase client runs in the threadpool

@router.get("/api/history")
def list_history(request: Request):
    history = get_history_service(request).get_history()
    return {"success": True, "data": [r.to_body() for r in history]}


@router.get("/api/favorites")
def list_favorites(request: Request):
    favorites = get_history_service(request).get_favorites()
    return {"success": True, "data": [r.to_body() for r in favorites]}


@router.post("/api/history")
def save_history(request: Request, body: SaveHistoryRequest):
    saved = get_history_service(request).save_to_history(
        person_image_url=body.person_image_url,
        garment_image_url=body.garment_image_url,
        result_image_url=body.result_image_url,
        garment_type=body.garment_type,
    )
    if saved is None:
        return _error(500, "Failed to save to history")
    return JSONResponse(status_code=201, content={"success": True, "data": saved.to_body()})


@router.patch("/api/history/{id}/favorite")
def set_favorite(request: Request, id: str, body: FavoriteUpdate):
    if not get_history_service(request).toggle_favorite(id, body.is_favorite):
        return _error(500, "Failed to update favorite")
    return {"success": True, "data": {"id": id, "isFavorite": body.is_favorite}}


@router.delete("/api/history/{id}")
def delete_history_item(request: Request, id: str):
    if not get_history_service(request).delete_from_history(id):
        return _error(500, "Failed to delete from history")
    return {"success": True, "message": "Deleted"}


@router.delete("/api/history")
def clear_history(request: Request):
    if not get_history_service(request).clear_all_history():
        return _error(500, "Failed to clear history")
    return {"success": True, "message": "History cleared"}


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.config.server.port)
