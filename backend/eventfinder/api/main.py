from __future__ import annotations

import logging
import os
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventfinder.api.routers import events, health
from eventfinder.config import Settings
from eventfinder.errors import ConfigurationError, IntentExtractionError
from eventfinder.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _error_response(request: Request, error: str, exc: Exception, *, with_stack: bool = False) -> JSONResponse:
    body = {"error": error}
    settings: Settings = request.app.state.settings
    if not settings.is_production:
        body["details"] = str(exc) or type(exc).__name__
        if with_stack:
            body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=body)


async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error: %s", exc)
    return JSONResponse(status_code=500, content={"error": f"API configuration error: {exc}"})


async def _intent_error(request: Request, exc: IntentExtractionError) -> JSONResponse:
    logger.error("Intent extraction failed: %s", exc)
    return _error_response(request, "Failed to extract intent", exc)


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Events API error", exc_info=exc)
    return _error_response(request, "Failed to fetch events", exc, with_stack=True)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    configure_logging()
    app = FastAPI(title="Event Finder API", version="0.1.0")
    app.state.settings = settings or Settings.from_env()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ConfigurationError, _configuration_error)
    app.add_exception_handler(IntentExtractionError, _intent_error)
    app.add_exception_handler(Exception, _unexpected_error)

    app.include_router(health.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    return app


app = create_app()
