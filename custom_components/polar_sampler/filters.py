# custom_components/polar_sampler/filters.py
"""Stability and admission filters applied to every sample.

Stability filters need evidence: an empty history is unstable. Admission
filters are permissive: when they cannot evaluate (no history, no polar
reference, negligible baseline) the sample passes.
"""

from __future__ import annotations

import logging
import math

from .const import NEGLIGIBLE
from .history import RollingHistory
from .polar import PolarTable, find_closest
from .units import angle_difference_degrees

_LOGGER = logging.getLogger(__name__)


def max_angle_spread(history: RollingHistory) -> float:
    """Largest wraparound-aware difference to the first sample (deg)."""
    angles = history.values()
    if not angles:
        return math.nan
    reference = angles[0]
    return max(angle_difference_degrees(a, reference) for a in angles)


def is_stable(history: RollingHistory, threshold: float, enabled: bool = True) -> bool:
    """True when every angle in the window stays within ``threshold`` of the first."""
    if not enabled:
        return True
    if len(history) == 0:
        return False
    spread = max_angle_spread(history)
    stable = spread <= threshold
    _LOGGER.debug("Stability: %s (spread=%.2f threshold=%.2f n=%d)", stable, spread, threshold, len(history))
    return stable


def passes_vmg_ratio(
    stw: float,
    twa: float,
    tws: float,
    table: PolarTable,
    *,
    enabled: bool,
    lower: float,
    upper: float,
) -> bool:
    """Compare STW with the closest polar speed; ``lower < ratio < upper``."""
    if not enabled:
        return True
    expected = find_closest(abs(twa), tws, table).boat_speed
    if expected < NEGLIGIBLE:
        _LOGGER.debug("No expected boat speed found for TWA=%.1f TWS=%.1f", twa, tws)
        return True
    ratio = stw / expected
    _LOGGER.debug("STW=%.2fkt Polar=%.2fkt Ratio=%.2f", stw, expected, ratio)
    return lower < ratio < upper


def passes_average_ratio(
    current: float,
    history: RollingHistory,
    *,
    enabled: bool,
    lower: float,
    upper: float,
    use_std_dev: bool = False,
    absolute: bool = False,
) -> bool:
    """Compare a value with the mean (or std dev) of its own recent history.

    ``absolute`` compares magnitudes, for signed angles.
    """
    if not enabled or len(history) == 0:
        return True
    baseline = history.standard_deviation() if use_std_dev else history.mean()
    if absolute:
        current, baseline = abs(current), abs(baseline)
    if abs(baseline) <= NEGLIGIBLE:
        return True
    ratio = current / baseline
    _LOGGER.debug(
        "%s filter: value=%.2f baseline=%.2f ratio=%.2f",
        "STD" if use_std_dev else "AVG", current, baseline, ratio,
    )
    return lower <= ratio < upper
