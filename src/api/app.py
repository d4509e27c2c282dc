"""FastAPI application factory for the reference VibeVoice ASR server.

Run with ``uvicorn src.api.app:app --ssl-keyfile ... --ssl-certfile ...``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from . import metrics
from .routers import health, transcribe
from .settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version=settings.version)
    app.include_router(health.router)
    app.include_router(transcribe.router)
    app.include_router(metrics.router)
    if not settings.auth_tokens:
        logging.getLogger("vibevoice.api").warning(
            "No VIBEVOICE_AUTH_TOKENS configured; every transcription request will be rejected."
        )
    return app


app = create_app()
