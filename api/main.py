"""
api/main.py -- FastAPI application entry point for Konnect.

Run with:  uvicorn asgi:app --reload
           python main.py serve --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for the configured browser origins
  3. log_requests          -- one log line per request with latency

Rate limiting is not middleware: guarded routes declare it with
Depends(rate_limit(name)) against the limiter on app.state.

Lifespan handles startup (stores, limiter) and shutdown (close engines)
symmetrically.

Error boundary: every error leaves the API in the same envelope,
{"success": false, "message": ..., "errors"?: [...]}, whatever raised it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import SlidingWindowLimiter
from api.models import HealthResponse
from api.routes.auth import router as auth_router
from api.routes.posts import router as posts_router
from auth.store import UserStore
from core.config import get_settings
from core.errors import AppError, InternalError, RateLimitError, ValidationError
from feed.store import PostStore

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("konnect.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the stores and the rate limiter; dispose of the stores on shutdown.

    Both stores share DATABASE_URL but own separate engines and tables.
    The limiter's counter store comes from RATE_LIMIT_STORAGE_URI.
    """
    logger.info("Konnect API starting up")
    app.state.user_store = UserStore(_settings.database_url)
    app.state.post_store = PostStore(_settings.database_url)
    app.state.rate_limiter = SlidingWindowLimiter.from_settings(_settings)
    logger.info(
        "Stores initialized; rate limiting via %s (%s)",
        _settings.rate_limit_storage_uri,
        ", ".join(f"{k}={v}" for k, v in _settings.rate_limits.items()),
    )

    yield

    app.state.post_store.close()
    app.state.user_store.close()
    logger.info("Konnect API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Konnect API",
    description="Social networking backend: accounts, profiles, posts, likes, comments, and bookmarks.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_host_list)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(posts_router, prefix="/api", tags=["Posts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Each layer raises only core.errors types (or lets something unexpected
# escape); these handlers are the single place that maps them to HTTP.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    response = JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    if isinstance(exc, RateLimitError):
        response.headers["Retry-After"] = str(exc.retry_after)
    return response


def _format_validation_error(err: dict) -> str:
    """Turn one pydantic error into a human-readable line.

    Messages raised by our own validators are already sentences. Errors
    produced by pydantic itself (wrong type, malformed JSON) get the field
    path prefixed so the client knows which input was wrong.
    """
    if err.get("type") == "invalid_field":
        return err["msg"]
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
    if err.get("type") == "missing" and not loc:
        return "Request body is required"
    return f"{'.'.join(loc)}: {err['msg']}" if loc else err["msg"]


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one message per invalid field."""
    error = ValidationError(errors=[_format_validation_error(e) for e in exc.errors()])
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods, and any framework-raised HTTP error."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The traceback goes to the log. The response carries the exception text
    only when DEBUG=true; in production the client gets a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    error = InternalError(detail=str(exc), expose_detail=get_settings().debug)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# ---------------------------------------------------------------------------
# Service endpoints
#
# Not rate limited -- health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root() -> dict:
    return {
        "success": True,
        "message": "Konnect API running",
        "version": __version__,
        "endpoints": {"auth": "/api/auth", "posts": "/api/posts"},
    }


@app.get("/api/health", tags=["Health"], response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    try:
        db_status = "ok" if request.app.state.user_store.ping() else "error"
    except Exception:
        logger.exception("Health check database ping failed")
        db_status = "error"
    status = "healthy" if db_status == "ok" else "degraded"
    return HealthResponse(status=status, version=__version__, components={"app": "ok", "database": db_status})
