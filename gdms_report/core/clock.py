"""Time source shared by token expiry checks and request signing."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current wall-clock time."""

    def now(self) -> float:
        """Return seconds since the epoch."""
        ...

    def now_ms(self) -> int:
        """Return milliseconds since the epoch."""
        ...


class SystemClock:
    """Clock backed by :func:`time.time`."""

    def now(self) -> float:
        return time.time()

    def now_ms(self) -> int:
        return int(time.time() * 1000)


__all__ = ["Clock", "SystemClock"]
