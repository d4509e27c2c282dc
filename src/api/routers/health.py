"""Liveness endpoint (unauthenticated)."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..schemas import HealthResponse
from ..services.transcript_service import get_engine
from ..settings import APISettings, get_settings

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(settings: APISettings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(
        ok=True,
        engine=get_engine(settings).name,
        timestamp=datetime.now(timezone.utc),
    )
