# custom_components/polar_sampler/recording.py
"""Recording state machine and engine-on detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional

from .const import (
    EVENT_CHANGE_MOTORING_STATUS,
    EVENT_CHANGE_RECORD_STATUS,
    MODE_AUTOMATIC,
    MODE_MANUAL,
    MOTORING_AUTO_STATE,
    MOTORING_REVOLUTIONS,
    PROPULSION_STOPPED,
    RECORDING_MODES,
)
from .units import rpm_to_hz

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordingState:
    recording_active: bool = False
    recording_mode: str = MODE_AUTOMATIC
    motoring: bool = False
    active_file_path: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "recording": self.recording_active,
            "mode": self.recording_mode,
            "motoring": self.motoring,
            "file": self.active_file_path,
        }


# (event tag, state snapshot)
ChangeListener = Callable[[str, RecordingState], None]


class RecordingStateMachine:
    """Owns ``RecordingState``; nothing else may flip ``recording_active``.

    Rules, in priority order:
      1. motoring forces recording off;
      2. automatic mode records exactly while the data is valid;
      3. manual mode keeps whatever the user last asked for.

    Listeners are called once per committed change, never per evaluation.
    """

    def __init__(
        self,
        *,
        mode: str,
        manual_file: str,
        auto_file: str,
        listener: ChangeListener | None = None,
    ) -> None:
        if mode not in RECORDING_MODES:
            raise ValueError(f"Unknown recording mode: {mode}")
        self._state = RecordingState(recording_mode=mode)
        self.manual_file = manual_file
        self.auto_file = auto_file
        self._listener = listener

    @property
    def state(self) -> RecordingState:
        return replace(self._state)

    def evaluate(self, valid_data: bool) -> bool:
        """Apply the rules for one sampling tick; True if recording changed."""
        s = self._state
        if s.motoring:
            target = False
        elif s.recording_mode == MODE_AUTOMATIC:
            target = bool(valid_data)
        else:
            target = s.recording_active
        return self._commit(target)

    def set_motoring(self, motoring: bool) -> bool:
        """Record the engine state and re-apply rule 1 at once."""
        motoring = bool(motoring)
        if motoring == self._state.motoring:
            return False
        self._state.motoring = motoring
        _LOGGER.info("Motoring %s", "started" if motoring else "stopped")
        self._emit(EVENT_CHANGE_MOTORING_STATUS)
        if motoring:
            self._commit(False)
        return True

    def set_mode(self, mode: str) -> bool:
        """Switch mode; an active recording is stopped so the file is re-selected."""
        if mode not in RECORDING_MODES:
            raise ValueError(f"Unknown recording mode: {mode}")
        if mode == self._state.recording_mode:
            return False
        self._state.recording_mode = mode
        _LOGGER.info("Recording mode set to %s", mode)
        if not self._commit(False):
            self._emit(EVENT_CHANGE_RECORD_STATUS)
        return True

    def set_active(self, active: bool, polar_file: str | None = None) -> bool:
        """User start/stop. Starting switches to manual mode on ``polar_file``."""
        if not active:
            return self._commit(False)

        if self._state.motoring:
            _LOGGER.warning("Recording not started: vessel is motoring")
            return False
        if polar_file:
            self.manual_file = polar_file
        s = self._state
        if s.recording_mode != MODE_MANUAL:
            s.recording_mode = MODE_MANUAL
            if s.recording_active:
                s.recording_active = False
        elif s.recording_active and s.active_file_path != self.manual_file:
            # restart on the newly selected file
            s.recording_active = False
        return self._commit(True)

    def _commit(self, active: bool) -> bool:
        s = self._state
        if active == s.recording_active:
            return False
        s.recording_active = active
        if active:
            s.active_file_path = self.auto_file if s.recording_mode == MODE_AUTOMATIC else self.manual_file
        _LOGGER.info(
            "Recording %s (%s, %s)", "started" if active else "stopped", s.recording_mode, s.active_file_path
        )
        self._emit(EVENT_CHANGE_RECORD_STATUS)
        return True

    def _emit(self, event: str) -> None:
        if self._listener is not None:
            self._listener(event, self.state)


def is_motoring(
    states: Iterable[str | None],
    revolutions_hz: Iterable[float | None],
    *,
    mode: str,
    max_idle_rpm: float,
) -> bool:
    """Engine-on decision over every propulsion instance.

    ``auto_state``: any state other than "stopped", or any revolutions > 0.
    ``revolutions``: any revolutions above the idle threshold.
    """
    revs = [r for r in revolutions_hz if r is not None]
    if mode == MOTORING_REVOLUTIONS:
        limit = rpm_to_hz(max_idle_rpm)
        return any(r > limit for r in revs)
    if mode != MOTORING_AUTO_STATE:
        raise ValueError(f"Unknown motoring mode: {mode}")
    running = any(st is not None and st != PROPULSION_STOPPED for st in states)
    return running or any(r > 0 for r in revs)
