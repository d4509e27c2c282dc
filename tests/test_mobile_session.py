from pathlib import Path

import pytest

from mobile.vibevoice.audio import wav
from mobile.vibevoice.audio.types import AudioContainer
from mobile.vibevoice.errors import (
    CaptureUnavailable,
    ConfigurationMissing,
    RequestTimeout,
    ServerError,
    TranscriptionTimeout,
    TransportError,
)
from mobile.vibevoice.services.logger import LogBuffer
from mobile.vibevoice.services.session import (
    NOT_CONFIGURED_MESSAGE,
    PERMISSION_MESSAGE,
    SessionController,
    SessionState,
    describe_error,
)
from mobile.vibevoice.services.transcript import parse_transcription_json
from mobile.vibevoice.store.settings_store import SettingsStore

SILENCE_BYTES = 16000 * 2 * 2  # two seconds of 16-bit mono


class FakeRecorder:
    def __init__(self) -> None:
        self.active = False
        self.starts = 0
        self.stops = 0
        self.fail: Exception | None = None
        self.on_amplitude = None
        self.path: Path | None = None
        self.discard = False

    def start(self, path, on_amplitude=None):
        if self.fail is not None:
            raise self.fail
        self.starts += 1
        self.active = True
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(wav.build_header(0, 16000))
        self.on_amplitude = on_amplitude
        return self.path

    def stop(self):
        if not self.active:
            return None
        self.stops += 1
        self.active = False
        if self.discard:
            return None
        self.path.write_bytes(wav.build_header(SILENCE_BYTES, 16000) + bytes(SILENCE_BYTES))
        return AudioContainer(self.path, 16000, 1, 16, SILENCE_BYTES)


class FakeClient:
    def __init__(self, raw: str = "[]", error: Exception | None = None, partials=()) -> None:
        self.raw = raw
        self.error = error
        self.partials = partials
        self.calls = []
        self.closed = False

    def transcribe(self, audio_path, on_partial=None, is_current=None):
        self.calls.append(Path(audio_path))
        for text in self.partials:
            on_partial(text)
        if self.error is not None:
            raise self.error
        return parse_transcription_json(self.raw)

    def close(self):
        self.closed = True


class FakePermissions:
    def __init__(self, granted: bool = True, grant_on_request: bool = False) -> None:
        self.granted = granted
        self.grant_on_request = grant_on_request
        self.requests = 0

    def has_capture_permission(self) -> bool:
        return self.granted

    def request_capture_permission(self) -> None:
        self.requests += 1
        if self.grant_on_request:
            self.granted = True


class Harness:
    def __init__(self, tmp_path, dispatcher, executor, overlay, *, configured=True, client=None, permissions=None):
        self.store = SettingsStore(tmp_path / "settings.json")
        if configured:
            self.store.update(server_url="https://asr.example.com", auth_token="tok")
        self.recorder = FakeRecorder()
        self.client = client or FakeClient()
        self.permissions = permissions or FakePermissions()
        self.commits: list[str] = []
        self.messages: list[str] = []
        self.partials: list[str] = []
        self.dispatcher = dispatcher
        self.executor = executor
        self.overlay = overlay
        self.controller = SessionController(
            self.store,
            self.permissions,
            self.commits.append,
            self.messages.append,
            overlay,
            tmp_path / "scratch",
            LogBuffer(),
            dispatcher=dispatcher,
            recorder=self.recorder,
            client_factory=lambda settings: self.client if settings.is_configured() else None,
            executor=executor,
            timeout=65.0,
            on_partial=self.partials.append,
        )

    def finish_upload(self) -> None:
        self.executor.run_all()
        self.dispatcher.run_pending()


@pytest.fixture()
def harness(tmp_path, dispatcher, executor, overlay):
    def build(**kwargs):
        return Harness(tmp_path, dispatcher, executor, overlay, **kwargs)

    return build


def test_silence_commits_nothing(harness):
    h = harness(client=FakeClient("[]"))
    h.controller.start()
    assert h.controller.state is SessionState.RECORDING
    h.controller.stop()
    assert h.controller.state is SessionState.TRANSCRIBING
    h.finish_upload()

    assert h.commits == []
    assert h.messages == []
    assert h.controller.state is SessionState.IDLE
    assert h.overlay.attached is False
    assert not h.recorder.path.exists()
    assert h.client.closed is True
    assert h.dispatcher.pending_timers == 0


def test_spoken_segments_are_committed_once(harness):
    raw = '[{"Start":0,"End":0.3,"Content":"[Silence]"},{"Start":0.3,"End":1.2,"Content":"Hello"}]'
    h = harness(client=FakeClient(raw))
    h.controller.start()
    h.controller.stop()
    h.finish_upload()

    assert h.commits == ["Hello"]
    assert h.messages == []
    assert h.controller.state is SessionState.IDLE


def test_cancel_while_recording_discards_audio(harness):
    h = harness()
    h.controller.start()
    path = h.recorder.path
    h.controller.cancel()

    assert h.recorder.active is False
    assert not path.exists()
    assert h.executor.jobs == []
    assert h.controller.state is SessionState.IDLE
    assert h.overlay.attached is False
    assert h.commits == [] and h.messages == []


def test_timeout_reports_once_and_late_result_is_discarded(harness):
    h = harness(client=FakeClient('[{"Content":"too late"}]'))
    h.controller.start()
    h.controller.stop()

    h.dispatcher.advance(64.0)
    assert h.controller.state is SessionState.TRANSCRIBING
    h.dispatcher.advance(1.0)
    assert h.messages == ["Transcription timed out"]
    assert h.controller.state is SessionState.IDLE
    assert h.overlay.attached is False

    h.finish_upload()
    assert h.commits == []
    assert h.messages == ["Transcription timed out"]


def test_result_from_superseded_session_is_ignored(harness):
    h = harness(client=FakeClient('[{"Content":"old words"}]'))
    h.controller.start()
    h.controller.stop()
    h.controller.cancel()
    h.controller.start()
    assert h.controller.state is SessionState.RECORDING

    h.finish_upload()
    assert h.commits == []
    assert h.controller.state is SessionState.RECORDING
    assert h.overlay.attached is True


def test_generation_advances_on_start_and_cleanup(harness):
    h = harness()
    assert h.controller.generation == 0
    h.controller.start()
    assert h.controller.generation == 1
    h.controller.stop()
    assert h.controller.generation == 1
    h.finish_upload()
    assert h.controller.generation == 2


def test_operations_outside_their_state_are_noops(harness):
    h = harness()
    h.controller.stop()
    h.controller.cancel()
    assert h.controller.generation == 0
    assert h.overlay.events == []

    h.controller.start()
    h.controller.start()
    assert h.recorder.starts == 1

    h.controller.stop()
    h.controller.start()
    h.controller.stop()
    assert h.recorder.starts == 1
    assert h.recorder.stops == 1
    assert len(h.executor.jobs) == 1


def test_unconfigured_start_notifies_and_stays_idle(harness):
    h = harness(configured=False)
    h.controller.start()
    assert h.messages == [NOT_CONFIGURED_MESSAGE]
    assert h.controller.state is SessionState.IDLE
    assert h.recorder.starts == 0
    assert h.overlay.events == []


def test_permission_is_requested_then_rechecked(harness):
    denied = FakePermissions(granted=False)
    h = harness(permissions=denied)
    h.controller.start()
    assert denied.requests == 1
    assert h.messages == [PERMISSION_MESSAGE]
    assert h.controller.state is SessionState.IDLE


def test_permission_granted_on_request_starts_recording(tmp_path, dispatcher, executor, overlay):
    granting = FakePermissions(granted=False, grant_on_request=True)
    h = Harness(tmp_path, dispatcher, executor, overlay, permissions=granting)
    h.controller.start()
    assert granting.requests == 1
    assert h.controller.state is SessionState.RECORDING


def test_capture_unavailable_returns_to_idle(harness):
    h = harness()
    h.recorder.fail = CaptureUnavailable("input busy")
    h.controller.start()
    assert h.messages == ["Failed to start recording: input busy"]
    assert h.controller.state is SessionState.IDLE
    assert [event for event, _ in h.overlay.events] == ["attach", "state", "state", "detach"]


@pytest.mark.parametrize(
    "error, message",
    [
        (TransportError("dns"), "Cannot reach server"),
        (RequestTimeout("slow"), "Transcription timed out"),
        (ServerError(500, "boom"), "Server error (500)"),
    ],
)
def test_network_failures_notify_and_commit_nothing(harness, error, message):
    h = harness(client=FakeClient(error=error))
    h.controller.start()
    h.controller.stop()
    h.finish_upload()
    assert h.messages == [message]
    assert h.commits == []
    assert h.controller.state is SessionState.IDLE
    assert not h.recorder.path.exists()


def test_settings_cleared_before_stop(harness):
    h = harness()
    h.controller.start()
    h.store.update(auth_token="")
    h.controller.stop()
    assert h.messages == [NOT_CONFIGURED_MESSAGE]
    assert h.executor.jobs == []
    assert h.controller.state is SessionState.IDLE
    assert not h.recorder.path.exists()


def test_amplitude_reaches_overlay_only_for_current_recording(harness):
    h = harness()
    h.controller.start()
    emit = h.recorder.on_amplitude
    emit(0.5)
    h.dispatcher.run_pending()
    assert h.overlay.amplitudes == [0.5]

    h.controller.cancel()
    emit(0.7)
    h.dispatcher.run_pending()
    assert h.overlay.amplitudes == [0.5]


def test_partials_are_forwarded_while_transcribing(harness):
    h = harness(client=FakeClient('[{"Content":"hi"}]', partials=["[", '[{"Content":"hi"}]']))
    h.controller.start()
    h.controller.stop()
    h.finish_upload()
    assert h.partials == ["[", '[{"Content":"hi"}]']
    assert h.commits == ["hi"]


def test_describe_error_messages():
    assert describe_error(TranscriptionTimeout("late")) == "Transcription timed out"
    assert describe_error(ConfigurationMissing("no url")) == "Voice input error: no url"


def test_superseded_upload_leaves_new_recording_in_place(harness):
    h = harness()
    h.controller.start()
    h.controller.stop()
    first = h.recorder.path
    h.controller.cancel()
    h.controller.start()
    second = h.recorder.path
    assert second != first

    h.finish_upload()
    assert not first.exists()
    assert second.exists()


def test_discarded_capture_returns_to_idle_and_removes_file(harness):
    h = harness()
    h.controller.start()
    path = h.recorder.path
    h.recorder.discard = True
    h.controller.stop()

    assert h.controller.state is SessionState.IDLE
    assert h.executor.jobs == []
    assert not path.exists()
    assert h.dispatcher.pending_timers == 0
    assert h.messages == []
