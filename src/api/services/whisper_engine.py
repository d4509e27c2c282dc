"""Lazy Whisper (faster-whisper) loader with a mock mode for development."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, List

import numpy as np

from ..schemas import SegmentPayload
from ..settings import APISettings

LOGGER = logging.getLogger("vibevoice.whisper")


class WhisperEngine:
    """Thin wrapper that loads Whisper on demand, or fakes it in mock mode."""

    def __init__(self, settings: APISettings) -> None:
        self.settings = settings
        self._lock = threading.Lock()
        self._model: Any = None
        self._mock = settings.whisper_mock_transcriber
        if self._mock:
            LOGGER.warning(
                "Whisper mock mode enabled (set WHISPER_USE_MOCK=0 and configure "
                "WHISPER_MODEL to enable real transcription)."
            )

    @property
    def name(self) -> str:
        return "mock" if self._mock else f"faster-whisper:{self.settings.whisper_model}"

    def _load_model(self):
        if self._model is None:
            with self._lock:
                if self._model is None:
                    from faster_whisper import WhisperModel  # type: ignore

                    try:
                        self._model = WhisperModel(
                            self.settings.whisper_model,
                            device=self.settings.whisper_device,
                            compute_type=self.settings.whisper_compute_type,
                        )
                    except Exception as exc:  # pragma: no cover - hardware/env dep
                        LOGGER.error(
                            "Failed to load Whisper model '%s': %s",
                            self.settings.whisper_model,
                            exc,
                        )
                        raise
        return self._model

    def transcribe_audio(self, audio: np.ndarray, sample_rate: int) -> List[SegmentPayload]:
        """Transcribe mono float32 samples into timestamped segments."""
        if self._mock:
            return self._mock_segments(audio, sample_rate)
        if sample_rate != 16000:
            raise ValueError(f"Whisper expects 16 kHz audio, got {sample_rate} Hz")
        model = self._load_model()
        segments, _info = model.transcribe(audio=audio, beam_size=5, vad_filter=True)
        return _to_payload(segments)

    def _mock_segments(self, audio: np.ndarray, sample_rate: int) -> List[SegmentPayload]:
        duration = len(audio) / float(sample_rate) if sample_rate else 0.0
        rms = float(np.sqrt(np.mean(np.square(audio)))) if audio.size else 0.0
        if rms < self.settings.mock_silence_rms:
            return []
        return [
            SegmentPayload(start=0.0, end=round(duration, 2), content=f"mock transcript {len(audio)} samples")
        ]


def _to_payload(segments: Iterable) -> List[SegmentPayload]:
    payload = []
    for segment in segments:
        payload.append(
            SegmentPayload(
                start=float(getattr(segment, "start", 0.0) or 0.0),
                end=float(getattr(segment, "end", 0.0) or 0.0),
                content=(segment.text or "").strip(),
            )
        )
    return payload
