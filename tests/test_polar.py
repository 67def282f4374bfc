from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone

import pytest

from custom_components.polar_sampler import polar
from custom_components.polar_sampler.polar import NO_MATCH, find_closest, update

T0 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
STEPS = {"angle_step": 5.0, "speed_step": 2.0}


def test_update_rounds_to_configured_steps() -> None:
    table: polar.PolarTable = {}
    result = update(table, 32, 11, 6.1, T0, **STEPS)
    assert result.updated
    assert (result.cell.wind_angle, result.cell.wind_speed) == (30.0, 12.0)
    assert table == {"30": {"12": {"boatSpeed": 6.1, "timestamp": T0.isoformat()}}}


def test_port_and_starboard_share_a_cell() -> None:
    table: polar.PolarTable = {}
    update(table, -44, 8, 5.0, T0, **STEPS)
    result = update(table, 46, 8.4, 5.5, T0, **STEPS)
    assert result.updated
    assert result.previous is not None and result.previous.boat_speed == 5.0
    assert list(table) == ["45"]


def test_update_only_on_strict_improvement() -> None:
    table: polar.PolarTable = {}
    speeds = [5.0, 4.0, 5.0, 6.5, 6.4, 7.0]
    seen = []
    for i, bsp in enumerate(speeds):
        before = table.get("90", {}).get("10", {}).get("boatSpeed")
        result = update(table, 90, 10, bsp, T0 + timedelta(seconds=i), **STEPS)
        assert result.updated == (before is None or bsp > before)
        seen.append(table["90"]["10"]["boatSpeed"])
    assert seen == sorted(seen)
    assert seen[-1] == 7.0


def test_update_is_idempotent() -> None:
    table: polar.PolarTable = {}
    first = update(table, 60, 14, 7.0, T0, **STEPS)
    snapshot = copy.deepcopy(table)
    second = update(table, 60, 14, 7.0, T0 + timedelta(seconds=1), **STEPS)
    assert first.updated and first.previous is None
    assert not second.updated
    assert second.cell.boat_speed == 7.0
    assert table == snapshot


def test_update_keeps_provenance_of_previous_cell() -> None:
    table: polar.PolarTable = {}
    update(table, 120, 16, 8.0, T0, **STEPS)
    later = T0 + timedelta(minutes=5)
    result = update(table, 120, 16, 8.3, later, **STEPS)
    assert result.previous.last_updated == T0.isoformat()
    assert result.cell.last_updated == later.isoformat()


def test_update_rejects_non_finite() -> None:
    with pytest.raises(ValueError):
        update({}, float("nan"), 10, 5.0, T0, **STEPS)


def test_find_closest_single_cell() -> None:
    table = {"10": {"5": {"boatSpeed": 6.0, "timestamp": None}}}
    match = find_closest(0, 0, table)
    assert (match.angle, match.speed, match.boat_speed) == (10.0, 5.0, 6.0)


def test_find_closest_empty_table() -> None:
    match = find_closest(45, 10, {})
    assert match is NO_MATCH
    assert match.boat_speed == 0


def test_find_closest_picks_nearest() -> None:
    table = polar.clean_table({"40": {"10": 5.5, "14": 6.5}, "90": {"12": 7.5}})
    assert find_closest(42, 13, table).boat_speed == 6.5
    assert find_closest(80, 12, table).boat_speed == 7.5


def test_find_closest_ties_go_to_lowest_angle_then_speed() -> None:
    # (40,10) and (50,10) are both 5 away from (45,10); insertion order reversed
    table = {"50": {"10": {"boatSpeed": 2.0}}, "40": {"12": {"boatSpeed": 9.0}, "10": {"boatSpeed": 1.0}}}
    match = find_closest(45, 10, table)
    assert (match.angle, match.speed) == (40.0, 10.0)


def test_clean_table_drops_garbage() -> None:
    raw = {
        "abc": {"10": 5.0},
        "45": {"x": 1.0, "10": {"boatSpeed": "bad"}, "12": {"boatSpeed": 6.2, "timestamp": "t"}, "14": 6.8},
        "60.0": "nope",
    }
    assert polar.clean_table(raw) == {
        "45": {"12": {"boatSpeed": 6.2, "timestamp": "t"}, "14": {"boatSpeed": 6.8, "timestamp": None}}
    }
    assert polar.clean_table(["not", "a", "dict"]) == {}


def test_csv_export_and_import() -> None:
    table: polar.PolarTable = {}
    update(table, 45, 10, 5.5, T0, **STEPS)
    update(table, 45, 12, 6.0, T0, **STEPS)
    update(table, 90, 12, 7.25, T0, **STEPS)

    text = polar.table_to_csv(table)
    assert text.splitlines() == ["twa/tws;10;12", "45;5.50;6.00", "90;;7.25"]

    parsed = polar.table_from_csv(text, T0)
    assert parsed["90"] == {"12": {"boatSpeed": 7.25, "timestamp": T0.isoformat()}}
    assert "10" not in parsed["90"]


def test_csv_import_comma_separated() -> None:
    text = "TWA \\ TWS,6,8\n52,4.1,5.2\n-110,4.9,\n"
    parsed = polar.table_from_csv(text, T0)
    assert parsed["52"]["8"]["boatSpeed"] == 5.2
    assert parsed["110"] == {"6": {"boatSpeed": 4.9, "timestamp": T0.isoformat()}}


def test_content_detection() -> None:
    js = '{"45": {"10": {"boatSpeed": 5.0, "timestamp": null}}}'
    assert polar.table_from_content(js, T0) == {"45": {"10": {"boatSpeed": 5.0, "timestamp": None}}}
    with pytest.raises(ValueError):
        polar.table_from_content("{broken", T0)
    with pytest.raises(ValueError):
        polar.table_from_content("just words", T0)


def test_clean_table_merges_port_and_starboard_rows() -> None:
    raw = {
        "-45": {"10": {"boatSpeed": 5.0, "timestamp": "a"}, "12": {"boatSpeed": 6.5, "timestamp": "b"}},
        "45": {"12": {"boatSpeed": 6.0, "timestamp": "c"}, "14": {"boatSpeed": 6.8, "timestamp": "d"}},
    }
    assert polar.clean_table(raw) == {
        "45": {
            "10": {"boatSpeed": 5.0, "timestamp": "a"},
            "12": {"boatSpeed": 6.5, "timestamp": "b"},
            "14": {"boatSpeed": 6.8, "timestamp": "d"},
        }
    }


def test_csv_import_keeps_best_of_signed_rows() -> None:
    text = "twa/tws;6;8\n-60;5.1;4.0\n60;4.2;5.9\n"
    parsed = polar.table_from_csv(text, T0)
    assert parsed["60"]["6"]["boatSpeed"] == 5.1
    assert parsed["60"]["8"]["boatSpeed"] == 5.9
