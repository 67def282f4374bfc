# custom_components/polar_sampler/units.py
"""Unit conversions and small numeric helpers.

Readings published by a Signal K bridge arrive in SI units (rad, m/s, Hz).
Sensors that carry a ``unit_of_measurement`` attribute are normalised from
that unit instead.
"""

from __future__ import annotations

import math

KNOTS_PER_MS = 1.94384

_DEGREE_UNITS = {"°", "deg", "degrees"}
_RADIAN_UNITS = {"rad", "radians"}
_KNOT_UNITS = {"kn", "kt", "kts", "knots"}
_KMH_UNITS = {"km/h", "kmh"}
_MPH_UNITS = {"mph"}
_RPM_UNITS = {"rpm", "r/min"}


def radians_to_degrees(rad: float) -> float:
    return rad * 180.0 / math.pi


def meters_per_second_to_knots(ms: float) -> float:
    return ms * KNOTS_PER_MS


def rpm_to_hz(rpm: float) -> float:
    return rpm / 60.0


def angle_difference_degrees(a: float, b: float) -> float:
    """Smallest absolute separation between two angles, in [0, 180]."""
    diff = math.fmod(abs(a - b), 360.0)
    return 360.0 - diff if diff > 180.0 else diff


def round_to_step(value: float, step: float) -> float:
    """Round to the nearest multiple of ``step``, halves away from zero."""
    if math.isnan(value):
        return value
    return math.copysign(math.floor(abs(value) / step + 0.5), value) * step


def angle_to_degrees(value: float, unit: str | None) -> float:
    u = (unit or "").strip().lower()
    if u in _DEGREE_UNITS:
        return value
    if u and u not in _RADIAN_UNITS:
        raise ValueError(f"Unsupported angle unit: {unit}")
    return radians_to_degrees(value)


def speed_to_knots(value: float, unit: str | None) -> float:
    u = (unit or "").strip().lower()
    if u in _KNOT_UNITS:
        return value
    if u in _KMH_UNITS:
        return value / 1.852
    if u in _MPH_UNITS:
        return value * 0.868976
    if u and u != "m/s":
        raise ValueError(f"Unsupported speed unit: {unit}")
    return meters_per_second_to_knots(value)


def revolutions_to_hz(value: float, unit: str | None) -> float:
    u = (unit or "").strip().lower()
    if u in _RPM_UNITS:
        return rpm_to_hz(value)
    if u and u != "hz":
        raise ValueError(f"Unsupported revolutions unit: {unit}")
    return value
