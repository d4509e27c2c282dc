"""Turn an uploaded WAV into the SSE event stream the client consumes."""

from __future__ import annotations

import io
import json
import logging
import time
from typing import Iterator, List

import soundfile as sf
from fastapi import HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from ..metrics import AUDIO_SECONDS, SSE_CHUNKS, TRANSCRIBE_COUNTER, TRANSCRIBE_DURATION, UPLOAD_BYTES
from ..schemas import SegmentPayload, TextChunk
from ..settings import APISettings
from .whisper_engine import WhisperEngine

LOGGER = logging.getLogger("vibevoice.api")

_ENGINES: dict[tuple, WhisperEngine] = {}


def get_engine(settings: APISettings) -> WhisperEngine:
    key = (
        settings.whisper_mock_transcriber,
        settings.whisper_model,
        settings.whisper_device,
        settings.whisper_compute_type,
        settings.mock_silence_rms,
    )
    engine = _ENGINES.get(key)
    if engine is None:
        engine = _ENGINES[key] = WhisperEngine(settings)
    return engine


def reset_engine_cache() -> None:
    _ENGINES.clear()


class TranscriptService:
    """Decode uploads, run the engine and frame the result as SSE."""

    def __init__(self, settings: APISettings) -> None:
        self.settings = settings
        self.whisper = get_engine(settings)

    async def transcribe_upload(self, file: UploadFile) -> List[SegmentPayload]:
        data = await file.read()
        if not data:
            raise HTTPException(status_code=400, detail="Empty audio upload")
        if len(data) > self.settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail="Audio upload too large")
        UPLOAD_BYTES.observe(len(data))

        start_time = time.perf_counter()
        try:
            audio, sample_rate = sf.read(io.BytesIO(data), dtype="float32")
        except RuntimeError as exc:
            TRANSCRIBE_COUNTER.labels(status="rejected").inc()
            raise HTTPException(status_code=400, detail=f"Unreadable audio: {exc}") from exc
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        try:
            segments = await run_in_threadpool(self.whisper.transcribe_audio, audio, sample_rate)
        except Exception:
            TRANSCRIBE_COUNTER.labels(status="error").inc()
            LOGGER.exception("Transcription failed for %s", file.filename)
            raise
        finally:
            TRANSCRIBE_DURATION.observe(time.perf_counter() - start_time)
        duration = len(audio) / float(sample_rate)
        TRANSCRIBE_COUNTER.labels(status="success").inc()
        AUDIO_SECONDS.observe(duration)
        LOGGER.info(
            "Transcribed %s: %.2fs of audio, %d segment(s)",
            file.filename,
            duration,
            len(segments),
        )
        return segments

    def stream_events(self, segments: List[SegmentPayload]) -> Iterator[str]:
        """Yield the JSON segment array in ``data:`` fragments, then ``event: done``."""
        payload = json.dumps([segment.model_dump(by_alias=True) for segment in segments])
        size = self.settings.sse_chunk_chars
        for offset in range(0, len(payload), size):
            chunk = TextChunk(text=payload[offset : offset + size])
            SSE_CHUNKS.inc()
            yield f"data: {chunk.model_dump_json()}\n\n"
        yield "event: done\n\n"
