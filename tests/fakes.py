"""Test doubles for the audio input, owner context and network worker."""

from __future__ import annotations

import threading
import time

import numpy as np


def sine_chunk(frames: int, amplitude: int = 12000, freq: float = 440.0, sample_rate: int = 16000) -> np.ndarray:
    t = np.arange(frames)
    return (np.sin(2 * np.pi * freq * t / sample_rate) * amplitude).astype(np.int16)


class FakeInputStream:
    """Stands in for ``sounddevice.InputStream``; serves a fixed list of chunks."""

    def __init__(
        self,
        chunks,
        *,
        fail_after: int | None = None,
        channels: int = 1,
        hang_when_drained: bool = False,
        honor_abort: bool = True,
    ) -> None:
        self._chunks = [np.asarray(chunk, dtype=np.int16) for chunk in chunks]
        self.fail_after = fail_after
        self.channels = channels
        self.reads = 0
        self.drained = threading.Event()
        self.started = False
        self.stopped = False
        self.closed = False
        self.aborted = False
        self.hang_when_drained = hang_when_drained
        self.honor_abort = honor_abort
        self._unblock = threading.Event()
        self.hanging = threading.Event()
        if not self._chunks:
            self.drained.set()

    def start(self) -> None:
        self.started = True

    def read(self, frames: int):
        if self.fail_after is not None and self.reads >= self.fail_after:
            self.drained.set()
            raise RuntimeError("device unplugged")
        if not self._chunks:
            if self.hang_when_drained:
                # Blocks like a device read that never delivers another buffer.
                self.hanging.set()
                self._unblock.wait(5.0)
                if self.aborted and self.honor_abort:
                    raise RuntimeError("stream aborted")
                return np.zeros((0, self.channels), dtype=np.int16), False
            time.sleep(0.002)
            return np.zeros((0, self.channels), dtype=np.int16), False
        chunk = self._chunks.pop(0)
        self.reads += 1
        if not self._chunks:
            self.drained.set()
        if chunk.ndim == 1:
            chunk = np.repeat(chunk.reshape(-1, 1), self.channels, axis=1)
        return chunk, False

    def stop(self) -> None:
        self.stopped = True

    def abort(self) -> None:
        self.aborted = True
        if self.honor_abort:
            self._unblock.set()

    def release(self) -> None:
        self._unblock.set()

    def close(self) -> None:
        self.closed = True


class ManualDispatcher:
    """Deterministic owner context: tasks run only when the test says so."""

    def __init__(self) -> None:
        self.now = 0.0
        self._tasks: list = []
        self._timers: list = []

    def post(self, fn) -> None:
        self._tasks.append(fn)

    def post_delayed(self, delay: float, fn):
        timer = {"due": self.now + delay, "fn": fn, "cancelled": False}
        self._timers.append(timer)

        def cancel() -> None:
            timer["cancelled"] = True

        return cancel

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    @property
    def pending_timers(self) -> int:
        return sum(1 for timer in self._timers if not timer["cancelled"])

    def run_pending(self) -> None:
        while self._tasks:
            self._tasks.pop(0)()

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in list(self._timers):
            if timer["cancelled"] or timer["due"] > self.now:
                continue
            timer["cancelled"] = True
            timer["fn"]()
        self.run_pending()


class DeferredExecutor:
    """Collects submitted jobs so a test can run them at a chosen moment."""

    def __init__(self) -> None:
        self.jobs: list = []
        self.shut_down = False

    def submit(self, fn, *args, **kwargs):
        self.jobs.append((fn, args, kwargs))

    def run_all(self) -> None:
        while self.jobs:
            fn, args, kwargs = self.jobs.pop(0)
            fn(*args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        self.shut_down = True


class RecordingOverlay:
    def __init__(self) -> None:
        self.events: list = []
        self.amplitudes: list = []
        self.attached = False

    def attach(self, host) -> None:
        self.attached = True
        self.events.append(("attach", host))

    def set_state(self, state) -> None:
        self.events.append(("state", state))

    def update_amplitude(self, level: float) -> None:
        self.amplitudes.append(level)

    def detach(self) -> None:
        self.attached = False
        self.events.append(("detach", None))
