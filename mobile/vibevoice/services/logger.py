"""Bounded activity log shown in the UI, mirrored into stdlib logging."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import List


class LogBuffer:
    def __init__(self, max_lines: int = 200, name: str = "vibevoice") -> None:
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._lock = threading.Lock()
        self._logger = logging.getLogger(name)

    def add(self, message: str, level: int = logging.INFO) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        with self._lock:
            self._lines.append(f"{stamp} {message}")
        self._logger.log(level, message)

    def get(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def child(self, suffix: str) -> "LogBuffer":
        """Share the same line buffer under a more specific logger name."""
        view = LogBuffer.__new__(LogBuffer)
        view._lines = self._lines
        view._lock = self._lock
        view._logger = logging.getLogger(f"{self._logger.name}.{suffix}")
        return view


__all__ = ["LogBuffer"]
