from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from custom_components.polar_sampler.history import Histories, RollingHistory

T0 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
WINDOW = timedelta(seconds=10)


def test_record_prunes_old_entries() -> None:
    h = RollingHistory()
    for i in range(15):
        h.record(T0 + timedelta(seconds=i), float(i), WINDOW)
    # entries at 4..14 are within 10 s of t=14
    assert h.values() == [float(i) for i in range(4, 15)]
    assert all(e.time >= T0 + timedelta(seconds=4) for e in h)


def test_window_is_per_call() -> None:
    h = RollingHistory()
    for i in range(5):
        h.record(T0 + timedelta(seconds=i), 1.0, WINDOW)
    h.record(T0 + timedelta(seconds=5), 2.0, timedelta(seconds=1))
    assert h.values() == [1.0, 2.0]


def test_statistics() -> None:
    h = RollingHistory()
    for i, v in enumerate([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]):
        h.record(T0 + timedelta(seconds=i), v, WINDOW)
    assert h.mean() == pytest.approx(5.0)
    assert h.standard_deviation() == pytest.approx(2.0)


def test_empty_statistics_are_nan() -> None:
    h = RollingHistory()
    assert math.isnan(h.mean())
    assert math.isnan(h.standard_deviation())
    assert len(h) == 0


def test_histories_clear() -> None:
    hs = Histories.empty()
    hs.course.record(T0, 1.0, WINDOW)
    hs.tws.record(T0, 1.0, WINDOW)
    hs.clear()
    assert len(hs.course) == 0 and len(hs.tws) == 0
