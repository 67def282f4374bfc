from __future__ import annotations

import pytest

from custom_components.polar_sampler.const import (
    EVENT_CHANGE_MOTORING_STATUS,
    EVENT_CHANGE_RECORD_STATUS,
    MODE_AUTOMATIC,
    MODE_MANUAL,
    MOTORING_AUTO_STATE,
    MOTORING_REVOLUTIONS,
)
from custom_components.polar_sampler.recording import RecordingStateMachine, is_motoring


@pytest.fixture
def events() -> list[tuple[str, dict]]:
    return []


@pytest.fixture
def machine(events) -> RecordingStateMachine:
    return RecordingStateMachine(
        mode=MODE_AUTOMATIC,
        manual_file="polar-data.json",
        auto_file="auto.json",
        listener=lambda ev, st: events.append((ev, st.as_dict())),
    )


def _record_events(events) -> list[dict]:
    return [st for ev, st in events if ev == EVENT_CHANGE_RECORD_STATUS]


def test_automatic_tracks_validity(machine, events) -> None:
    assert machine.evaluate(True)
    assert machine.state.recording_active
    assert machine.state.active_file_path == "auto.json"
    assert not machine.evaluate(True)
    assert machine.evaluate(False)
    assert not machine.state.recording_active
    assert len(_record_events(events)) == 2


def test_motoring_overrides_and_notifies_once(machine, events) -> None:
    machine.evaluate(True)
    events.clear()

    assert machine.set_motoring(True)
    assert not machine.state.recording_active
    assert len(_record_events(events)) == 1

    # re-asserting motoring and further valid ticks change nothing
    assert not machine.set_motoring(True)
    assert not machine.evaluate(True)
    assert len(_record_events(events)) == 1
    assert [ev for ev, _ in events].count(EVENT_CHANGE_MOTORING_STATUS) == 1


def test_recording_resumes_after_engine_stops(machine) -> None:
    machine.set_motoring(True)
    assert not machine.evaluate(True)
    machine.set_motoring(False)
    assert machine.evaluate(True)
    assert machine.state.recording_active


def test_manual_is_sticky(machine) -> None:
    assert machine.set_active(True, "race.json")
    st = machine.state
    assert st.recording_mode == MODE_MANUAL
    assert st.active_file_path == "race.json"
    assert not machine.evaluate(False)
    assert machine.state.recording_active
    assert machine.set_active(False)
    assert not machine.evaluate(True)
    assert not machine.state.recording_active


def test_manual_start_refused_while_motoring(machine) -> None:
    machine.set_motoring(True)
    assert not machine.set_active(True)
    assert not machine.state.recording_active


def test_manual_recording_stopped_by_engine(machine) -> None:
    machine.set_active(True)
    machine.set_motoring(True)
    assert not machine.state.recording_active
    machine.set_motoring(False)
    assert not machine.evaluate(True)  # manual does not restart by itself


def test_switching_file_while_recording(machine, events) -> None:
    machine.set_active(True, "a.json")
    events.clear()
    assert machine.set_active(True, "b.json")
    assert machine.state.active_file_path == "b.json"
    assert len(_record_events(events)) == 1


def test_mode_switch_stops_recording(machine, events) -> None:
    machine.evaluate(True)
    events.clear()
    assert machine.set_mode(MODE_MANUAL)
    assert not machine.state.recording_active
    assert len(_record_events(events)) == 1
    assert not machine.set_mode(MODE_MANUAL)
    with pytest.raises(ValueError):
        machine.set_mode("sometimes")


def test_mode_switch_while_idle_still_notifies(machine, events) -> None:
    machine.set_mode(MODE_MANUAL)
    assert _record_events(events) == [
        {"recording": False, "mode": MODE_MANUAL, "motoring": False, "file": None}
    ]


def test_state_is_a_snapshot(machine) -> None:
    st = machine.state
    st.recording_active = True
    assert not machine.state.recording_active


@pytest.mark.parametrize(
    ("states", "revs", "expected"),
    [
        (["stopped"], [0.0], False),
        (["stopped", "started"], [], True),
        (["stopped"], [5.0], True),
        ([None], [None], False),
        ([], [], False),
    ],
)
def test_motoring_auto_state(states, revs, expected) -> None:
    assert is_motoring(states, revs, mode=MOTORING_AUTO_STATE, max_idle_rpm=1000) is expected


def test_motoring_revolutions_only() -> None:
    # 1000 rpm == 16.67 Hz
    assert not is_motoring(["started"], [16.0], mode=MOTORING_REVOLUTIONS, max_idle_rpm=1000)
    assert is_motoring(["stopped"], [0.0, 17.0], mode=MOTORING_REVOLUTIONS, max_idle_rpm=1000)
