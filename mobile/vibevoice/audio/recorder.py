"""Microphone capture streamed into a WAV container."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np

from ..config import CONFIG
from ..errors import CaptureUnavailable
from ..services.logger import LogBuffer
from . import wav
from .types import AudioContainer

AmplitudeCallback = Callable[[float], None]
StreamFactory = Callable[[int, int, int], Any]

_FULL_SCALE = 32767.0


def compute_amplitude(pcm: np.ndarray) -> float:
    """RMS of one chunk of int16 samples, normalized to 0.0-1.0."""
    if pcm.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(np.square(pcm.astype(np.float64)))))
    return max(0.0, min(1.0, rms / _FULL_SCALE))


class AudioRecorder:
    """Single-owner microphone recorder.

    ``start`` opens the input stream and spawns a writer thread that performs
    blocking chunk reads until ``stop`` raises the stop flag. Only one capture
    may hold the input at a time.
    """

    def __init__(
        self,
        logger: LogBuffer,
        *,
        sample_rate: int = CONFIG.sample_rate,
        chunk_frames: int = CONFIG.read_chunk_frames,
        join_timeout: float = CONFIG.stop_join_timeout,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        self.logger = logger
        self.sample_rate = sample_rate
        self.channels = CONFIG.channels
        self.bits_per_sample = CONFIG.bits_per_sample
        self.chunk_frames = chunk_frames
        self.join_timeout = join_timeout
        self._stream_factory = stream_factory or self._open_sounddevice_stream
        self._lock = threading.Lock()
        self._busy = False
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._stream: Any = None
        self._path: Path | None = None
        self._data_length = 0

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._busy

    def start(self, path: Path, on_amplitude: AmplitudeCallback | None = None) -> Path:
        """Begin recording into ``path``. Returns the path that will hold the WAV."""
        with self._lock:
            if self._busy:
                raise CaptureUnavailable("Already recording")
            self._busy = True

        stream = None
        try:
            stream = self._stream_factory(self.sample_rate, self.channels, self.chunk_frames)
            stream.start()
        except Exception as exc:
            if stream is not None:
                self._close_stream(stream)
            self._release()
            raise CaptureUnavailable(f"Audio input unavailable: {exc}") from exc

        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handle = path.open("wb")
            wav.write_placeholder(handle)
        except OSError as exc:
            self._close_stream(stream)
            self._release()
            raise CaptureUnavailable(f"Cannot write recording to {path}: {exc}") from exc

        self._stream = stream
        self._path = path
        self._data_length = 0
        # Fresh flag per capture; a thread abandoned after abort keeps its own.
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._loop,
            args=(stream, handle, on_amplitude, self._stop),
            name="AudioRecorder",
            daemon=True,
        )
        self._thread.start()
        self.logger.add(f"Recording started -> {path}")
        return path

    def stop(self) -> Optional[AudioContainer]:
        """Stop capture, wait for the writer to drain and return the finalized file."""
        path = self._path
        if not self.is_active or path is None:
            return None
        self._stop.set()
        thread, stream = self._thread, self._stream
        finished = True
        if thread is not None:
            thread.join(timeout=self.join_timeout)
            if thread.is_alive():
                self.logger.add("Capture read still blocked; aborting stream", level=logging.WARNING)
                self._abort_stream(stream)
                thread.join(timeout=self.join_timeout)
                finished = not thread.is_alive()
        self._close_stream(stream)
        self._thread = None
        self._stream = None
        self._path = None
        self._release()
        if not finished:
            self.logger.add("Capture thread ignored abort; recording discarded", level=logging.ERROR)
            return None
        container = AudioContainer(
            path=path,
            sample_rate=self.sample_rate,
            channels=self.channels,
            bits_per_sample=self.bits_per_sample,
            data_length=self._data_length,
        )
        self.logger.add(f"Recording stopped, {container.data_length} bytes of PCM")
        return container

    def _loop(
        self,
        stream: Any,
        handle,
        on_amplitude: AmplitudeCallback | None,
        stop: threading.Event,
    ) -> None:
        data_length = 0
        try:
            while not stop.is_set():
                data, overflowed = stream.read(self.chunk_frames)
                if overflowed:
                    self.logger.add("Input overflow; samples dropped", level=logging.WARNING)
                pcm = self._to_mono_array(np.asarray(data, dtype=np.int16))
                if pcm.size == 0:
                    continue
                handle.write(pcm.astype("<i2", copy=False).tobytes())
                data_length += pcm.size * 2
                if on_amplitude is not None:
                    on_amplitude(compute_amplitude(pcm))
        except Exception as exc:
            self.logger.add(f"Capture loop failed: {exc}", level=logging.ERROR)
        finally:
            try:
                wav.patch_header(handle, data_length, self.sample_rate, self.channels, self.bits_per_sample)
            finally:
                handle.close()
                if stop is self._stop:
                    self._data_length = data_length

    def _release(self) -> None:
        with self._lock:
            self._busy = False

    def _abort_stream(self, stream: Any) -> None:
        if stream is None:
            return
        try:
            stream.abort()
        except Exception as exc:
            self.logger.add(f"Error aborting input stream: {exc}", level=logging.WARNING)

    def _close_stream(self, stream: Any) -> None:
        if stream is None:
            return
        try:
            stream.stop()
        except Exception as exc:
            self.logger.add(f"Error stopping input stream: {exc}", level=logging.WARNING)
        try:
            stream.close()
        except Exception as exc:
            self.logger.add(f"Error closing input stream: {exc}", level=logging.WARNING)

    def _open_sounddevice_stream(self, sample_rate: int, channels: int, blocksize: int):
        import sounddevice as sd  # type: ignore

        return sd.InputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="int16",
            blocksize=blocksize,
        )

    def _to_mono_array(self, data: np.ndarray) -> np.ndarray:
        if data.ndim == 1:
            return data
        return data[:, 0]


__all__ = ["AudioRecorder", "compute_amplitude"]
