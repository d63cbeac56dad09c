import logging
import re
import uuid
from contextlib import asynccontextmanager
from urllib.parse import urlsplit

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.routes.shows import router as shows_router
from app.routes.telegram import router as telegram_router
from app.routes.webapp import router as webapp_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("tvguide-backend")

REQUEST_ID_HEADER = "X-Request-ID"
INTERNAL_ERROR_MESSAGE = "Internal server error. Please try again later."
_INBOUND_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{8,128}$")


def _origin_of(url: str | None) -> str:
    """Reduce a configured URL (bare hostnames allowed) to ``scheme://host[:port]``."""
    value = (url or "").strip()
    if not value:
        return ""
    if "://" not in value:
        value = f"https://{value}"
    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def _parse_allowed_origins(raw: str | None, *extra_urls: str | None) -> list[str]:
    # ALLOWED_ORIGINS is comma separated; the frontend and mini-app hosts are always allowed.
    candidates = (raw or "").split(",")
    candidates.extend(url or "" for url in extra_urls)

    origins: list[str] = []
    for candidate in candidates:
        origin = _origin_of(candidate)
        if origin and origin not in origins:
            origins.append(origin)
    return origins


def _request_id_for(request: Request) -> str:
    inbound = request.headers.get(REQUEST_ID_HEADER, "")
    if _INBOUND_REQUEST_ID.match(inbound):
        return inbound
    return uuid.uuid4().hex


def _error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or _request_id_for(request)
    return JSONResponse(
        status_code=status_code,
        content={"error": {"message": message, "request_id": request_id}},
        headers={REQUEST_ID_HEADER: request_id},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    current = get_settings()
    if not current.telegram_bot_token:
        logger.warning("config TELEGRAM_BOT_TOKEN missing; favorites and bot endpoints will fail closed")
    if not current.web_app_url:
        logger.warning("config WEB_APP_URL missing; /start and /guide cannot offer the mini-app")
    logger.info("favorites_file_path=%s tvmaze_base_url=%s", current.favorites_file_path, current.tvmaze_base_url)
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    application = FastAPI(title="tvguide backend", version="0.1.0", lifespan=lifespan)

    origins = _parse_allowed_origins(settings.allowed_origins, settings.frontend_url, settings.web_app_url)
    logger.info("cors_allowed_origins=%s", origins)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @application.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = _request_id_for(request)
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @application.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(
            "http_error request_id=%s path=%s status=%s detail=%s",
            getattr(request.state, "request_id", None),
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        message = exc.detail if isinstance(exc.detail, str) else "The request could not be processed."
        return _error_response(request, exc.status_code, message)

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("invalid_request path=%s errors=%s", request.url.path, len(exc.errors()))
        return _error_response(request, 400, "Invalid request body")

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error request_id=%s path=%s",
            getattr(request.state, "request_id", None),
            request.url.path,
        )
        return _error_response(request, 500, INTERNAL_ERROR_MESSAGE)

    @application.get("/api/health")
    async def health_check():
        return {"status": "ok"}

    application.include_router(webapp_router)
    application.include_router(shows_router)
    application.include_router(telegram_router)
    return application


app = create_app()
