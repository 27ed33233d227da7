"""Accumulating tick counter for timing repeated code sections."""

from __future__ import annotations

import time
from collections.abc import Callable


class Clock:
    """Sums the ticks between matching begin() and end() calls."""

    def __init__(self, timer: Callable[[], int] | None = None) -> None:
        self._timer = timer if timer is not None else time.perf_counter_ns
        self._clock = 0
        self._count = 0

    def begin(self) -> None:
        """Mark the start of a timed section."""
        self._clock -= self._timer()

    def end(self) -> None:
        """Mark the end of a timed section and count it."""
        self._clock += self._timer()
        self._count += 1

    def clear(self) -> None:
        """Reset the accumulated ticks and the section count."""
        self._count = 0
        self._clock = 0

    @property
    def count(self) -> int:
        """Number of completed sections."""
        return self._count

    @property
    def clock(self) -> int:
        """Total ticks over all completed sections."""
        return self._clock

    def __enter__(self) -> Clock:
        self.begin()
        return self

    def __exit__(self, *exc_info) -> None:
        self.end()