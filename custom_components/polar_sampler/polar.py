# custom_components/polar_sampler/polar.py
"""Polar table: best observed boat speed per (TWA, TWS) cell.

The table is kept in the same nested shape it is persisted in::

    {"<angle>": {"<speed>": {"boatSpeed": 7.2, "timestamp": "2024-..."}}}

Angle keys are always non-negative; port/starboard symmetry is left to
whoever draws the table.
"""

from __future__ import annotations

import csv
import json
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Tuple

from .units import round_to_step

PolarTable = Dict[str, Dict[str, Dict[str, Any]]]

CSV_CORNER = "twa/tws"


@dataclass(frozen=True, slots=True)
class PolarCell:
    wind_angle: float
    wind_speed: float
    boat_speed: float
    last_updated: Optional[str]

    def as_dict(self) -> dict[str, Any]:
        return {
            "twa": self.wind_angle,
            "tws": self.wind_speed,
            "boatSpeed": self.boat_speed,
            "timestamp": self.last_updated,
        }


@dataclass(frozen=True, slots=True)
class PolarMatch:
    angle: Optional[float]
    speed: Optional[float]
    boat_speed: float


NO_MATCH = PolarMatch(None, None, 0.0)


@dataclass(frozen=True, slots=True)
class MergeResult:
    updated: bool
    previous: Optional[PolarCell]
    cell: PolarCell


def format_key(v: float) -> str:
    """Stable text key for a rounded bin value ("30", "12", "2.5")."""
    return f"{round(v, 6) + 0.0:g}"


def _sorted_numeric(mapping: dict[str, Any]) -> list[Tuple[float, Any]]:
    return sorted(((float(k), v) for k, v in mapping.items()), key=lambda kv: kv[0])


def iter_cells(table: PolarTable) -> Iterator[PolarCell]:
    """Cells in ascending angle, then ascending speed order."""
    for angle, speeds in _sorted_numeric(table):
        for speed, cell in _sorted_numeric(speeds):
            yield PolarCell(angle, speed, float(cell["boatSpeed"]), cell.get("timestamp"))


def get_cell(table: PolarTable, angle_key: str, speed_key: str) -> Optional[PolarCell]:
    raw = table.get(angle_key, {}).get(speed_key)
    if raw is None:
        return None
    return PolarCell(float(angle_key), float(speed_key), float(raw["boatSpeed"]), raw.get("timestamp"))


def find_closest(angle: float, speed: float, table: PolarTable) -> PolarMatch:
    """Nearest populated cell by Euclidean distance in (angle, speed) space.

    Ties keep the first cell visited, i.e. the lowest angle then the lowest
    speed. An empty table gives ``NO_MATCH``.
    """
    best = NO_MATCH
    best_dist = math.inf
    for cell in iter_cells(table):
        dist = math.hypot(cell.wind_angle - angle, cell.wind_speed - speed)
        if dist < best_dist:
            best_dist = dist
            best = PolarMatch(cell.wind_angle, cell.wind_speed, cell.boat_speed)
    return best


def update(
    table: PolarTable,
    angle: float,
    speed: float,
    boat_speed: float,
    now: datetime,
    *,
    angle_step: float,
    speed_step: float,
) -> MergeResult:
    """Record a sample if it beats the stored best for its rounded cell."""
    if not all(math.isfinite(v) for v in (angle, speed, boat_speed)):
        raise ValueError("Polar samples must be finite numbers")

    a = abs(round_to_step(angle, angle_step))
    s = round_to_step(speed, speed_step)
    a_key, s_key = format_key(a), format_key(s)

    existing = get_cell(table, a_key, s_key)
    if existing is not None and boat_speed <= existing.boat_speed:
        return MergeResult(False, None, existing)

    stamp = now.isoformat()
    table.setdefault(a_key, {})[s_key] = {"boatSpeed": boat_speed, "timestamp": stamp}
    return MergeResult(True, existing, PolarCell(float(a_key), float(s_key), boat_speed, stamp))


def _num(s: Any) -> Optional[float]:
    if isinstance(s, bool):
        return None
    if isinstance(s, (int, float)):
        return float(s) if math.isfinite(s) else None
    s = str(s or "").strip().replace("°", "").replace("kn", "")
    if s in ("", "-"):
        return None
    try:
        v = float(s.replace(",", "."))  # allow comma decimal
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def clean_table(raw: Any) -> PolarTable:
    """Drop non-numeric keys and malformed cells; accept bare-number cells."""
    if not isinstance(raw, dict):
        return {}
    table: PolarTable = {}
    for a_raw, speeds in raw.items():
        a = _num(a_raw)
        if a is None or not isinstance(speeds, dict):
            continue
        row: Dict[str, Dict[str, Any]] = {}
        for s_raw, cell in speeds.items():
            s = _num(s_raw)
            if s is None:
                continue
            if isinstance(cell, dict):
                bsp = _num(cell.get("boatSpeed"))
                stamp = cell.get("timestamp")
            else:
                bsp, stamp = _num(cell), None
            if bsp is None:
                continue
            _keep_best(row, format_key(s), {"boatSpeed": bsp, "timestamp": stamp})
        if row:
            # port and starboard rows fold onto one angle
            target = table.setdefault(format_key(abs(a)), {})
            for key, cell in row.items():
                _keep_best(target, key, cell)
    return table


def _keep_best(row: Dict[str, Dict[str, Any]], key: str, cell: Dict[str, Any]) -> None:
    current = row.get(key)
    if current is None or cell["boatSpeed"] > current["boatSpeed"]:
        row[key] = cell


def table_to_csv(table: PolarTable) -> str:
    """Semicolon separated matrix, one row per angle, one column per speed."""
    speeds = sorted({float(s) for row in table.values() for s in row})
    lines = [";".join([CSV_CORNER] + [format_key(s) for s in speeds])]
    for angle, row in _sorted_numeric(table):
        values = []
        for s in speeds:
            cell = row.get(format_key(s))
            values.append("" if cell is None else f"{cell['boatSpeed']:.2f}")
        lines.append(";".join([format_key(angle)] + values))
    return "\n".join(lines)


def table_from_csv(content: str, now: datetime) -> PolarTable:
    """Parse a ``twa/tws`` matrix; delimiter is sniffed among , ; and tab."""
    try:
        dialect = csv.Sniffer().sniff(content, delimiters=[",", ";", "\t"])
    except csv.Error as err:
        raise ValueError(f"Unrecognised CSV layout: {err}") from err
    rows = list(csv.reader(content.splitlines(), dialect))
    if not rows or len(rows[0]) < 2:
        raise ValueError("CSV has no header or not enough columns")

    tws_vals = [_num(x) for x in rows[0][1:]]
    if not any(v is not None for v in tws_vals):
        raise ValueError("No numeric TWS headers found in CSV")

    stamp = now.isoformat()
    raw: Dict[str, Dict[str, Any]] = {}
    for r in rows[1:]:
        if len(r) < 2:
            continue
        twa = _num(r[0])
        if twa is None:
            continue
        row = raw.setdefault(format_key(abs(twa)), {})
        for tws, cell in zip(tws_vals, r[1:]):
            bsp = _num(cell)
            if tws is None or bsp is None:
                continue  # missing cell OK
            _keep_best(row, format_key(tws), {"boatSpeed": bsp, "timestamp": stamp})
    return clean_table(raw)


def table_from_content(content: str, now: datetime) -> PolarTable:
    """JSON when the content looks like an object, CSV otherwise."""
    if content.lstrip().startswith("{"):
        try:
            return clean_table(json.loads(content))
        except json.JSONDecodeError as err:
            raise ValueError(f"Invalid polar JSON: {err}") from err
    return table_from_csv(content, now)
