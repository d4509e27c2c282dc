"""Voice input session lifecycle.

``SessionController`` sequences one utterance at a time::

    IDLE -> RECORDING -> TRANSCRIBING -> IDLE
              |                |
              +---- cancel ----+--> IDLE

Every session gets a new generation number. Work that finishes on another
thread is posted back through the dispatcher together with the generation it
was started under, and is dropped when that generation is no longer current.
All state changes happen on the dispatcher's owner context.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from ..audio.recorder import AudioRecorder
from ..audio.types import AudioContainer
from ..config import CONFIG
from ..errors import (
    CaptureUnavailable,
    ConfigurationMissing,
    PermissionDenied,
    RequestTimeout,
    ServerError,
    TranscriptionCancelled,
    TranscriptionTimeout,
    TransportError,
)
from ..store.settings_store import AppSettings, SettingsStore
from .dispatch import CancelHandle, Dispatcher
from .logger import LogBuffer
from .network import TranscriptionClient
from .permissions import PermissionOracle
from .transcript import TranscriptionResult

NOT_CONFIGURED_MESSAGE = "Voice input is not configured. Set the server URL and auth token in settings."
PERMISSION_MESSAGE = "Microphone permission required for voice input."
TIMEOUT_MESSAGE = "Transcription timed out"
UNREACHABLE_MESSAGE = "Cannot reach server"
NO_RESULT_MESSAGE = "Transcription failed, server unreachable?"


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"


class Overlay(Protocol):
    def attach(self, host: Any) -> None:
        ...

    def set_state(self, state: SessionState) -> None:
        ...

    def update_amplitude(self, level: float) -> None:
        ...

    def detach(self) -> None:
        ...


ClientFactory = Callable[[AppSettings], Optional[TranscriptionClient]]


def describe_error(error: BaseException) -> str:
    """User-facing message for a failed session."""
    if isinstance(error, (RequestTimeout, TranscriptionTimeout)):
        return TIMEOUT_MESSAGE
    if isinstance(error, TransportError):
        return UNREACHABLE_MESSAGE
    if isinstance(error, ServerError):
        return f"Server error ({error.status})"
    return f"Voice input error: {error}"


class SessionController:
    def __init__(
        self,
        settings: SettingsStore,
        permissions: PermissionOracle,
        commit: Callable[[str], None],
        notify: Callable[[str], None],
        overlay: Overlay,
        scratch_dir: Path,
        logger: LogBuffer,
        *,
        dispatcher: Dispatcher,
        recorder: AudioRecorder | None = None,
        client_factory: ClientFactory | None = None,
        executor: Executor | None = None,
        timeout: float = CONFIG.transcription_timeout,
        on_partial: Callable[[str], None] | None = None,
    ) -> None:
        self.settings = settings
        self.permissions = permissions
        self.commit = commit
        self.notify = notify
        self.overlay = overlay
        self.scratch_dir = Path(scratch_dir)
        self.logger = logger
        self.dispatcher = dispatcher
        self.recorder = recorder or AudioRecorder(logger)
        self.client_factory = client_factory or TranscriptionClient.from_settings
        self.timeout = timeout
        self.on_partial = on_partial
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="VoiceUpload")
        self._state = SessionState.IDLE
        self._generation = 0
        self._recording_path: Path | None = None
        self._cancel_timeout: CancelHandle | None = None
        self._overlay_attached = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def start(self, host: Any = None) -> None:
        """Begin recording. Only effective from IDLE."""
        if self._state is not SessionState.IDLE:
            self.logger.add(f"Voice input already active (state={self._state.value})", level=logging.WARNING)
            return
        try:
            self._preflight()
        except (ConfigurationMissing, PermissionDenied) as exc:
            self.logger.add(f"Voice input unavailable: {exc}", level=logging.WARNING)
            self._notify(str(exc))
            return

        self._generation += 1
        generation = self._generation
        self._state = SessionState.RECORDING
        self.overlay.attach(host)
        self._overlay_attached = True
        self.overlay.set_state(SessionState.RECORDING)

        # One file per generation so a superseded upload never deletes a newer recording.
        base = Path(CONFIG.recording_filename)
        path = self.scratch_dir / f"{base.stem}-{generation}{base.suffix}"
        try:
            self._recording_path = self.recorder.start(
                path,
                on_amplitude=lambda level: self.dispatcher.post(
                    lambda: self._deliver_amplitude(generation, level)
                ),
            )
        except CaptureUnavailable as exc:
            self.logger.add(f"Failed to start recording: {exc}", level=logging.ERROR)
            self._cleanup()
            self._notify(f"Failed to start recording: {exc}")
            return
        self.logger.add(f"Session {generation} recording")

    def stop(self) -> None:
        """Stop recording and hand the utterance to the network worker."""
        if self._state is not SessionState.RECORDING:
            return
        container = self.recorder.stop()
        self._state = SessionState.TRANSCRIBING
        self.overlay.set_state(SessionState.TRANSCRIBING)
        if container is None:
            self.logger.add("Recorder returned no audio; nothing to transcribe", level=logging.WARNING)
            if self._recording_path is not None:
                self._recording_path.unlink(missing_ok=True)
            self._cleanup()
            return

        generation = self._generation
        self._cancel_timeout = self.dispatcher.post_delayed(self.timeout, lambda: self._on_timeout(generation))

        client = self.client_factory(self.settings.get())
        if client is None:
            container.delete()
            self._cleanup()
            self._notify(NOT_CONFIGURED_MESSAGE)
            return

        self._executor.submit(self._run_transcription, generation, container, client)
        self.logger.add(f"Session {generation} transcribing {container.duration:.1f}s of audio")

    def cancel(self) -> None:
        """Abandon the current session without committing anything."""
        if self._state is SessionState.IDLE:
            return
        if self._state is SessionState.RECORDING:
            self.recorder.stop()
        if self._recording_path is not None:
            self._recording_path.unlink(missing_ok=True)
        self.logger.add(f"Session {self._generation} cancelled")
        self._cleanup()

    def shutdown(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=False)

    def _preflight(self) -> None:
        if not self.settings.is_configured():
            raise ConfigurationMissing(NOT_CONFIGURED_MESSAGE)
        if not self.permissions.has_capture_permission():
            self.permissions.request_capture_permission()
            if not self.permissions.has_capture_permission():
                raise PermissionDenied(PERMISSION_MESSAGE)

    def _run_transcription(self, generation: int, container: AudioContainer, client: TranscriptionClient) -> None:
        # Network worker thread: no controller state is touched here.
        result: TranscriptionResult | None = None
        error: BaseException | None = None
        try:
            result = client.transcribe(
                container.path,
                on_partial=lambda text: self.dispatcher.post(lambda: self._deliver_partial(generation, text)),
                is_current=lambda: generation == self._generation,
            )
        except TranscriptionCancelled:
            self.logger.add(f"Session {generation} superseded; upload abandoned", level=logging.DEBUG)
            return
        except Exception as exc:
            self.logger.add(f"Transcription error: {exc}", level=logging.ERROR)
            error = exc
        finally:
            container.delete()
            client.close()
        self.dispatcher.post(lambda: self._on_complete(generation, result, error))

    def _on_complete(
        self,
        generation: int,
        result: TranscriptionResult | None,
        error: BaseException | None,
    ) -> None:
        if generation != self._generation:
            self.logger.add(f"Discarding stale result from session {generation}", level=logging.DEBUG)
            return
        try:
            if error is not None:
                self._notify(describe_error(error))
            elif result is not None and result.text.strip():
                self.commit(result.text)
                self.logger.add(f'Transcription committed: "{result.text}"')
            elif result is not None:
                self.logger.add("Transcription was empty/silence")
            else:
                self._notify(NO_RESULT_MESSAGE)
        finally:
            self._cleanup()

    def _on_timeout(self, generation: int) -> None:
        if generation != self._generation or self._state is not SessionState.TRANSCRIBING:
            return
        self._cancel_timeout = None
        self.logger.add(f"Session {generation} timed out after {self.timeout:.0f}s", level=logging.WARNING)
        self.cancel()
        self._notify(describe_error(TranscriptionTimeout(f"No transcript within {self.timeout:.0f}s")))

    def _deliver_amplitude(self, generation: int, level: float) -> None:
        if generation == self._generation and self._state is SessionState.RECORDING:
            self.overlay.update_amplitude(level)

    def _deliver_partial(self, generation: int, text: str) -> None:
        if self.on_partial is None:
            return
        if generation == self._generation and self._state is SessionState.TRANSCRIBING:
            self.on_partial(text)

    def _cleanup(self) -> None:
        self._generation += 1
        self._state = SessionState.IDLE
        if self._cancel_timeout is not None:
            self._cancel_timeout()
            self._cancel_timeout = None
        if self._overlay_attached:
            self.overlay.set_state(SessionState.IDLE)
            self.overlay.detach()
            self._overlay_attached = False
        self._recording_path = None

    def _notify(self, message: str) -> None:
        try:
            self.notify(message)
        except Exception as exc:  # pragma: no cover - best effort notifier
            self.logger.add(f"Notifier failed: {exc}", level=logging.WARNING)


__all__ = ["NOT_CONFIGURED_MESSAGE", "Overlay", "SessionController", "SessionState", "describe_error"]
