"""Static client configuration shared by the recorder, client and controller."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ClientConfig:
    sample_rate: int = 16000
    channels: int = 1
    bits_per_sample: int = 16
    read_chunk_frames: int = 2048
    recording_filename: str = "vibevoice_recording.wav"
    settings_file: str = "settings.json"
    log_history: int = 200
    amplitude_history: int = 24
    transcription_timeout: float = 65.0
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    health_timeout: float = 5.0
    stop_join_timeout: float = 2.0


CONFIG = ClientConfig()
