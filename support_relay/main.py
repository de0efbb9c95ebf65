"""Support Relay - FastAPI Application."""

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from support_relay.api.http.chat import cancel_pending_turns
from support_relay.api.http.chat import router as chat_router
from support_relay.api.ws import websocket_endpoint
from support_relay.api.ws.endpoint import cancel_background_turns
from support_relay.config import get_settings
from support_relay.core.di import get_container
from support_relay.exceptions import AppError, ValidationError
from support_relay.infrastructure.database import check_db, close_db, init_db
from support_relay.infrastructure.logging import (
    clear_request_context,
    set_request_context,
    setup_logging,
)

# Initialize settings
settings = get_settings()

# Setup logging
setup_logging(
    log_level=settings.log_level,
    debug_namespaces=settings.debug_namespaces,
)

logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info("Starting Support Relay", extra={"service": "app"})
    settings.log_config_summary()

    await init_db()

    cache = get_container().cache
    if not await cache.ping():
        logger.warning(
            "Redis unavailable at startup, continuing without cache",
            extra={"service": "app"},
        )

    yield

    # Shutdown
    logger.info("Shutting down Support Relay", extra={"service": "app"})
    await cancel_pending_turns()
    await cancel_background_turns(grace=5.0)
    await cache.close()
    await close_db()


# Create FastAPI app
app = FastAPI(
    title="Support Relay API",
    description="Support chat relay with streamed LLM answers",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else settings.cors_allow_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Id"],
)

app.include_router(chat_router)


@app.middleware("http")
async def _http_request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id")
    if not request_id:
        request_id = str(uuid4())

    set_request_context(request_id=request_id)
    start = time.time()
    status_code: int | None = None
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = int((time.time() - start) * 1000)
        logger.info(
            "HTTP request completed",
            extra={
                "service": "http",
                "duration_ms": duration_ms,
                "status_code": status_code,
                "metadata": {
                    "method": request.method,
                    "path": request.url.path,
                },
            },
        )
        clear_request_context()


@app.exception_handler(AppError)
async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    logger.warning(
        "Request failed",
        extra={
            "service": "http",
            "error_code": exc.code,
            "status_code": exc.http_status,
            "error": str(exc),
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body") or "body"
    error = ValidationError(
        message=f"Invalid {field}: {first.get('msg', 'invalid value')}",
        details={"field": field},
    )
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


# =============================================================================
# Health Check Endpoints
# =============================================================================


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "support-relay"}


@app.get("/health/ready")
async def readiness_check():
    """Readiness check for deployments (checks DB and Redis)."""
    errors = []

    try:
        await check_db()
    except Exception as e:
        errors.append(f"Database: {e}")

    # Cache is optional; report it without failing readiness
    cache_ok = await get_container().cache.ping()

    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "errors": errors, "cache": cache_ok},
        )

    return {"status": "ready", "cache": cache_ok}


# =============================================================================
# WebSocket Endpoint
# =============================================================================


@app.websocket("/ws/chat")
async def ws_endpoint(websocket: WebSocket):
    """WebSocket endpoint for live chat and typing indicators."""
    await websocket_endpoint(websocket)
