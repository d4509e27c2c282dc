"""Prometheus metrics for the transcription pipeline."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from .deps.auth import require_token

TRANSCRIBE_COUNTER = Counter(
    "vibevoice_transcriptions_total",
    "Count of /v1/transcribe uploads by outcome",
    labelnames=("status",),
)

TRANSCRIBE_DURATION = Histogram(
    "vibevoice_transcription_seconds",
    "Time spent decoding and transcribing one upload",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

UPLOAD_BYTES = Histogram(
    "vibevoice_upload_bytes",
    "Size of accepted WAV uploads",
    buckets=(16_000, 64_000, 256_000, 1_000_000, 4_000_000, 16_000_000, 64_000_000),
)

AUDIO_SECONDS = Histogram(
    "vibevoice_audio_seconds",
    "Duration of decoded utterances",
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0),
)

SSE_CHUNKS = Counter(
    "vibevoice_sse_chunks_total",
    "data: events written to transcription streams",
)

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint(_: str = Depends(require_token)) -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
