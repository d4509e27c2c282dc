"""Reference ASR server settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field


class APISettings(BaseModel):
    app_name: str = Field(default="VibeVoice ASR")
    version: str = Field(default="0.1.0")
    auth_tokens: List[str] = Field(default_factory=lambda: _split_tokens())
    whisper_model: str = Field(default=os.getenv("WHISPER_MODEL", "tiny"))
    whisper_device: str = Field(default=os.getenv("WHISPER_DEVICE", "cpu"))
    whisper_compute_type: str = Field(
        default=os.getenv("WHISPER_COMPUTE_TYPE", "int8")
    )
    whisper_mock_transcriber: bool = Field(
        default=os.getenv("WHISPER_USE_MOCK", "false").lower() in {"1", "true", "yes"}
    )
    sse_chunk_chars: int = Field(default=int(os.getenv("SSE_CHUNK_CHARS", "48")), ge=1)
    mock_silence_rms: float = Field(default=float(os.getenv("MOCK_SILENCE_RMS", "0.01")), ge=0.0)
    max_upload_bytes: int = Field(default=int(os.getenv("MAX_UPLOAD_BYTES", str(64 * 1024 * 1024))))


def _split_tokens() -> List[str]:
    raw = os.getenv("VIBEVOICE_AUTH_TOKENS") or os.getenv("VIBEVOICE_AUTH_TOKEN") or ""
    return [token.strip() for token in raw.split(",") if token.strip()]


@lru_cache()
def get_settings() -> APISettings:
    return APISettings()
