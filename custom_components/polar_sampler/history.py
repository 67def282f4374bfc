# custom_components/polar_sampler/history.py
"""Time-windowed buffers of recent scalar readings."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator


@dataclass(frozen=True, slots=True)
class SampledReading:
    time: datetime
    value: float


class RollingHistory:
    """Readings no older than the window passed to the last ``record``."""

    def __init__(self) -> None:
        self._entries: deque[SampledReading] = deque()

    def record(self, now: datetime, value: float, window: timedelta) -> None:
        """Append a reading, then drop everything older than ``now - window``."""
        self._entries.append(SampledReading(now, value))
        cutoff = now - window
        while self._entries and self._entries[0].time < cutoff:
            self._entries.popleft()

    def values(self) -> list[float]:
        return [e.value for e in self._entries]

    def mean(self) -> float:
        if not self._entries:
            return math.nan
        return math.fsum(e.value for e in self._entries) / len(self._entries)

    def standard_deviation(self) -> float:
        """Population standard deviation; NaN when empty."""
        if not self._entries:
            return math.nan
        avg = self.mean()
        var = math.fsum((e.value - avg) ** 2 for e in self._entries) / len(self._entries)
        return math.sqrt(var)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SampledReading]:
        return iter(self._entries)


@dataclass(slots=True)
class Histories:
    """One buffer per tracked quantity. Written only by the sampling tick."""

    course: RollingHistory
    heading: RollingHistory
    twd: RollingHistory
    stw: RollingHistory
    twa: RollingHistory
    tws: RollingHistory

    @classmethod
    def empty(cls) -> Histories:
        return cls(*(RollingHistory() for _ in range(6)))

    def clear(self) -> None:
        for h in (self.course, self.heading, self.twd, self.stw, self.twa, self.tws):
            h.clear()
