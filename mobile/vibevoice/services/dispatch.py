"""Serial execution contexts for session state.

The session controller mutates its state only from callbacks run by one
``Dispatcher``. The Kivy app provides a Clock-backed one; ``DispatchQueue``
is the headless equivalent.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional, Protocol

LOGGER = logging.getLogger("vibevoice.dispatch")

Task = Callable[[], None]
CancelHandle = Callable[[], None]


class Dispatcher(Protocol):
    def post(self, fn: Task) -> None:
        """Run ``fn`` on the owner context, after previously posted tasks."""
        ...

    def post_delayed(self, delay: float, fn: Task) -> CancelHandle:
        """Run ``fn`` on the owner context after ``delay`` seconds."""
        ...


class DispatchQueue:
    """One daemon worker thread draining tasks in FIFO order."""

    def __init__(self, name: str = "SessionDispatch") -> None:
        self._tasks: "queue.Queue[Optional[Task]]" = queue.Queue()
        self._timers: set[threading.Timer] = set()
        self._timers_lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def post(self, fn: Task) -> None:
        self._tasks.put(fn)

    def post_delayed(self, delay: float, fn: Task) -> CancelHandle:
        timer: threading.Timer

        def fire() -> None:
            with self._timers_lock:
                self._timers.discard(timer)
            self.post(fn)

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        with self._timers_lock:
            self._timers.add(timer)
        timer.start()

        def cancel() -> None:
            timer.cancel()
            with self._timers_lock:
                self._timers.discard(timer)

        return cancel

    def is_owner_thread(self) -> bool:
        return threading.current_thread() is self._thread

    def shutdown(self, timeout: float = 2.0) -> None:
        with self._timers_lock:
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        self._tasks.put(None)
        if not self.is_owner_thread():
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while True:
            task = self._tasks.get()
            if task is None:
                return
            try:
                task()
            except Exception:
                LOGGER.exception("Dispatched task failed")


__all__ = ["CancelHandle", "DispatchQueue", "Dispatcher", "Task"]
