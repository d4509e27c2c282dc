"""
Headless entry point for VibeVoice.

    python -m mobile.vibevoice record     # speak, press Enter, transcript on stdout
    python -m mobile.vibevoice health     # probe the configured server
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, TypeVar

from .audio.recorder import AudioRecorder
from .config import CONFIG
from .services.dispatch import DispatchQueue
from .services.logger import LogBuffer
from .services.network import TranscriptionClient
from .services.permissions import InputDevicePermission
from .services.session import SessionController, SessionState
from .store.settings_store import SettingsStore
from .ui.amplitude import AmplitudeHistory

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".vibevoice"

T = TypeVar("T")


class TerminalOverlay:
    """Level meter drawn on stderr while recording."""

    def __init__(self, stream=sys.stderr) -> None:
        self.stream = stream
        self.history = AmplitudeHistory()
        self.label = ""

    def attach(self, host: Any) -> None:
        self.history.reset()

    def set_state(self, state: SessionState) -> None:
        self.label = {
            SessionState.RECORDING: "Listening (Enter to stop)",
            SessionState.TRANSCRIBING: "Transcribing...",
        }.get(state, "")
        self._draw()

    def update_amplitude(self, level: float) -> None:
        self.history.push(level)
        self._draw()

    def detach(self) -> None:
        self.stream.write("\n")
        self.stream.flush()

    def _draw(self) -> None:
        self.stream.write(f"\r{self.history.render()} {self.label:<28}")
        self.stream.flush()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _on_owner(dispatcher: DispatchQueue, fn: Callable[[], T]) -> T:
    """Run ``fn`` on the dispatcher thread and block until it has returned."""
    future: "Future[T]" = Future()

    def task() -> None:
        try:
            future.set_result(fn())
        except Exception as exc:
            future.set_exception(exc)

    dispatcher.post(task)
    return future.result()


def _load_settings(args: argparse.Namespace) -> SettingsStore:
    store = SettingsStore(args.home / CONFIG.settings_file)
    overrides = {}
    if args.server_url is not None:
        overrides["server_url"] = args.server_url
    if args.token is not None:
        overrides["auth_token"] = args.token
    if args.insecure:
        overrides["verify_tls"] = False
    if overrides:
        store.update(**overrides)
    return store


def _record(args: argparse.Namespace) -> int:
    store = _load_settings(args)
    dispatcher = DispatchQueue()
    activity = LogBuffer(CONFIG.log_history, "vibevoice.session")
    transcripts: list[str] = []
    messages: list[str] = []

    def notify(message: str) -> None:
        messages.append(message)
        print(message, file=sys.stderr)

    controller = SessionController(
        store,
        InputDevicePermission(),
        transcripts.append,
        notify,
        TerminalOverlay(),
        args.home / "cache",
        activity,
        dispatcher=dispatcher,
        recorder=AudioRecorder(activity),
        client_factory=TranscriptionClient.from_settings,
    )

    def start_session() -> SessionState:
        controller.start()
        return controller.state

    try:
        if _on_owner(dispatcher, start_session) is SessionState.RECORDING:
            input()
            dispatcher.post(controller.stop)
        while _on_owner(dispatcher, lambda: controller.state) is not SessionState.IDLE:
            time.sleep(0.1)
    except KeyboardInterrupt:
        _on_owner(dispatcher, controller.cancel)
        return 130
    finally:
        dispatcher.post(controller.shutdown)
        dispatcher.shutdown()

    for text in transcripts:
        print(text)
    return 1 if messages else 0


def _health(args: argparse.Namespace) -> int:
    client = TranscriptionClient.from_settings(_load_settings(args).get())
    if client is None:
        print("Server URL and auth token are not configured", file=sys.stderr)
        return 2
    try:
        healthy = client.health_check()
    finally:
        client.close()
    print("healthy" if healthy else "unhealthy")
    return 0 if healthy else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="vibevoice", description="Dictate into a VibeVoice ASR server.")
    parser.add_argument("--home", type=Path, default=DEFAULT_HOME, help="Settings and scratch directory (default: ~/.vibevoice).")
    parser.add_argument("--server-url", help="Server base URL; saved to settings.")
    parser.add_argument("--token", help="Bearer token; saved to settings.")
    parser.add_argument("--insecure", action="store_true", help="Skip TLS certificate verification; saved to settings.")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("record", help="Record one utterance and print its transcript.").set_defaults(func=_record)
    sub.add_parser("health", help="Check that the server is reachable.").set_defaults(func=_health)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
