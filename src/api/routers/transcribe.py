"""Transcription endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse

from ..deps.auth import require_token
from ..services.transcript_service import TranscriptService
from ..settings import APISettings, get_settings

router = APIRouter(prefix="/v1", tags=["transcribe"])


def get_service(settings: APISettings = Depends(get_settings)) -> TranscriptService:
    return TranscriptService(settings)


@router.post("/transcribe")
async def transcribe_audio(
    audio: UploadFile = File(...),
    _: str = Depends(require_token),
    service: TranscriptService = Depends(get_service),
):
    segments = await service.transcribe_upload(audio)
    return StreamingResponse(
        service.stream_events(segments),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
