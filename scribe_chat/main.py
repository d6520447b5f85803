"""Scribe Chat API - Main FastAPI Application."""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scribe_chat.api.routes import chat, contacts
from scribe_chat.core.config import settings
from scribe_chat.core.exceptions import ScribeChatError, sanitize_error
from scribe_chat.services.thread_titles import title_scheduler


def configure_logging() -> None:
    """Set up logging based on LOG_FORMAT.

    json: Structured JSON via python-json-logger (for production).
    text: Human-readable format (for local development).
    """
    log_format = settings.LOG_FORMAT.lower()
    log_level = settings.LOG_LEVEL.upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Remove existing handlers to avoid duplicate output
    root_logger.handlers.clear()

    handler = logging.StreamHandler()

    if log_format == "json":
        from pythonjsonlogger.json import JsonFormatter

        formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "service",
            },
            static_fields={"app": "scribe-chat", "env": settings.APP_ENV},
        )
        handler.setFormatter(formatter)
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> Any:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting Scribe Chat API...")
    settings.validate_startup()
    yield
    logger.info("Shutting down Scribe Chat API...")
    cancelled = title_scheduler.cancel_all()
    if cancelled:
        logger.info("Cancelled %d pending title jobs", cancelled)


app = FastAPI(
    title="Scribe Chat API",
    description="Ask questions about your meetings with a contact",
    version="0.1.0",
    lifespan=lifespan,
)

CORS_ORIGINS = settings.cors_origins_list
logger.info("CORS allowed origins: %s", CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(chat.router, prefix="/api/v1")
app.include_router(contacts.router, prefix="/api/v1")


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Lightweight check: returns 200 if the process is running."""
    return {"status": "healthy"}


@app.exception_handler(ScribeChatError)
async def scribe_chat_exception_handler(request: Request, exc: ScribeChatError) -> JSONResponse:
    """Handle Scribe Chat exceptions that escape a route.

    Args:
        request: The incoming request.
        exc: The Scribe Chat exception.

    Returns:
        JSON error response with consistent format.
    """
    request_id = str(uuid.uuid4())
    logger.warning(
        "Scribe Chat exception: %s",
        exc.message,
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "code": exc.code,
            "error_category": exc.category,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": sanitize_error(exc),
            "code": exc.code,
            "request_id": request_id,
        },
    )
