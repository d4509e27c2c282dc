"""Fixed-depth amplitude history backing the level bars."""

from __future__ import annotations

from collections import deque
from typing import List

from ..config import CONFIG


class AmplitudeHistory:
    """Keeps the last ``depth`` levels, oldest first."""

    def __init__(self, depth: int = CONFIG.amplitude_history) -> None:
        if depth <= 0:
            raise ValueError("depth must be positive")
        self.depth = depth
        self._levels: deque[float] = deque([0.0] * depth, maxlen=depth)

    def push(self, level: float) -> None:
        self._levels.append(max(0.0, min(1.0, float(level))))

    def levels(self) -> List[float]:
        return list(self._levels)

    def reset(self) -> None:
        self._levels.extend([0.0] * self.depth)

    def render(self, glyphs: str = " ▁▂▃▄▅▆▇█") -> str:
        """Text sparkline used by the terminal overlay."""
        top = len(glyphs) - 1
        return "".join(glyphs[round(level * top)] for level in self._levels)


__all__ = ["AmplitudeHistory"]
