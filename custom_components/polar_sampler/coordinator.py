from __future__ import annotations

import asyncio
import copy
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Collection, Dict, FrozenSet, List, Optional, Tuple

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import ATTR_UNIT_OF_MEASUREMENT, STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.core import CALLBACK_TYPE, Event, HomeAssistant, State
from homeassistant.helpers.event import async_track_state_change_event, async_track_time_interval
from homeassistant.util import dt as dt_util

from . import polar
from .const import (
    DEFAULTS,
    DOMAIN,
    EVENT_POLAR_SAMPLER,
    EVENT_POLAR_UPDATED,
    EVENT_RECORD_ERRORS,
    EVENT_UPDATE_LIVE_PERFORMANCE,
    MODE_AUTOMATIC,
    NEGLIGIBLE,
)
from .filters import is_stable, passes_average_ratio, passes_vmg_ratio
from .history import Histories
from .polar import MergeResult, PolarTable
from .recording import RecordingState, RecordingStateMachine, is_motoring
from .settings import SamplerSettings
from .store import PolarStore
from .units import angle_to_degrees, revolutions_to_hz, speed_to_knots

_LOGGER = logging.getLogger(__name__)

Subscriber = Callable[[], None]


@dataclass(frozen=True, slots=True)
class LiveSample:
    """Last converted triplet, for display."""

    twa: float
    tws: float
    stw: float


class PolarCoordinator:
    """Sampling pipeline: readings -> histories -> filters -> state machine -> table.

    The periodic tick and the propulsion listener are the only writers and
    both run under ``_lock``. A tick that finds the lock taken is skipped.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        store: PolarStore | None = None,
    ) -> None:
        self.hass = hass
        self.entry = entry
        self.settings = SamplerSettings.from_mapping(self.cfg)
        self.store = store or PolarStore(hass)
        self.histories = Histories.empty()
        self.machine = RecordingStateMachine(
            mode=MODE_AUTOMATIC,
            manual_file=self.settings.polar_file,
            auto_file=self.settings.auto_file,
            listener=self._on_state_change,
        )
        self.live: Optional[LiveSample] = None
        self.errors: List[str] = []
        self.save_error: Optional[str] = None
        self.last_update: Optional[MergeResult] = None
        self.polar_files: List[str] = []
        self._tables: Dict[str, PolarTable] = {}
        self._lock = asyncio.Lock()
        self._listeners: List[CALLBACK_TYPE] = []
        self._subs: List[Tuple[Subscriber, Optional[FrozenSet[str]]]] = []

    # ---- config view ----
    @property
    def cfg(self) -> dict[str, Any]:
        cfg = dict(DEFAULTS)
        cfg.update(self.entry.data or {})
        cfg.update(self.entry.options or {})
        return cfg

    # ---- lifecycle ----
    async def async_setup(self) -> None:
        await self.store.async_prepare()
        await self.async_load_tables()
        self._update_motoring()
        self._attach_listeners()

    async def async_load_tables(self) -> None:
        for name in (self.settings.polar_file, self.settings.auto_file):
            await self._async_ensure_table(name)
        self.polar_files = await self.store.async_list_files()

    async def async_unload(self) -> None:
        for u in self._listeners:
            u()
        self._listeners.clear()

    def _attach_listeners(self) -> None:
        s = self.settings
        self._listeners.append(
            async_track_time_interval(self.hass, self.async_tick, s.sample_interval, cancel_on_shutdown=True)
        )
        propulsion = [*s.propulsion_state_entities, *s.propulsion_revs_entities]
        if propulsion:
            self._listeners.append(
                async_track_state_change_event(self.hass, propulsion, self._on_propulsion_change)
            )

    # ---- entity subscription ----
    def register(self, cb: Subscriber, events: Optional[Collection[str]] = None) -> CALLBACK_TYPE:
        """Call ``cb`` on every change, or only for the given event tags.

        Untagged notifications (file list changes) reach every subscriber.
        """
        sub = (cb, None if events is None else frozenset(events))
        self._subs.append(sub)

        def _remove() -> None:
            if sub in self._subs:
                self._subs.remove(sub)

        return _remove

    def _notify(self, event: str | None = None) -> None:
        for cb, events in list(self._subs):
            if event is not None and events is not None and event not in events:
                continue
            try:
                cb()
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Subscriber callback failed")

    def _publish(self, event: str, data: dict[str, Any]) -> None:
        self.hass.bus.async_fire(EVENT_POLAR_SAMPLER, {"type": event, **data})
        self._notify(event)

    def _on_state_change(self, event: str, state: RecordingState) -> None:
        self._publish(event, state.as_dict())

    # ---- read accessors ----
    @property
    def state(self) -> RecordingState:
        return self.machine.state

    @property
    def baseline(self) -> PolarTable:
        return self._tables.setdefault(self.settings.polar_file, {})

    @property
    def active_table(self) -> Optional[PolarTable]:
        path = self.state.active_file_path
        return None if path is None else self._tables.get(path)

    def table(self, file_name: str) -> Optional[PolarTable]:
        return self._tables.get(file_name)

    def performance(self) -> dict[str, Any]:
        """Live triplet against the closest baseline cell."""
        live = self.live
        if live is None:
            return {"twa": None, "tws": None, "stw": None, "expected": None}
        match = polar.find_closest(abs(live.twa), live.tws, self.baseline)
        expected = match.boat_speed if match.boat_speed >= NEGLIGIBLE else None
        return {
            "twa": round(live.twa, 1),
            "tws": round(live.tws, 1),
            "stw": round(live.stw, 2),
            "closest_twa": match.angle,
            "closest_tws": match.speed,
            "expected": expected,
            "delta": None if expected is None else round(live.stw - expected, 2),
            "percent": None if expected is None else round(100.0 * live.stw / expected, 1),
        }

    # ---- commands ----
    async def async_set_motoring(self, motoring: bool) -> None:
        async with self._lock:
            self.machine.set_motoring(motoring)

    async def async_set_recording_mode(self, mode: str) -> bool:
        async with self._lock:
            return self.machine.set_mode(mode)

    async def async_set_recording_active(self, active: bool, polar_file: str | None = None) -> bool:
        async with self._lock:
            if polar_file:
                polar_file = _json_name(polar_file)
            if active:
                await self._async_ensure_table(polar_file or self.machine.manual_file)
            return self.machine.set_active(active, polar_file)

    async def async_create_polar_file(self, file_name: str) -> str:
        name = _json_name(file_name)
        await self.store.async_create(name)
        self.polar_files = await self.store.async_list_files()
        self._notify()
        return name

    async def async_import_polar(self, file_name: str, path: str) -> int:
        """Replace ``file_name`` with the JSON/CSV table read from ``path``."""
        content = await self.store.async_read_text(path)
        table = polar.table_from_content(content, dt_util.utcnow())
        name = _json_name(file_name)
        async with self._lock:
            self._tables[name] = table
            snapshot = copy.deepcopy(table)
        await self._async_save(name, snapshot)
        self.polar_files = await self.store.async_list_files()
        self._notify()
        return sum(len(row) for row in table.values())

    async def async_export_csv(self, path: str, file_name: str | None = None) -> None:
        name = file_name or self.settings.polar_file
        table = await self._async_ensure_table(name)
        await self.store.async_write_text(path, polar.table_to_csv(table))

    async def _async_ensure_table(self, file_name: str) -> PolarTable:
        if file_name not in self._tables:
            self._tables[file_name] = await self.store.async_load(file_name)
        return self._tables[file_name]

    # ---- propulsion ----
    async def _on_propulsion_change(self, _event: Event) -> None:
        async with self._lock:
            self._update_motoring()

    def _update_motoring(self) -> None:
        s = self.settings
        states = []
        for ent in s.propulsion_state_entities:
            st = self.hass.states.get(ent)
            states.append(None if st is None or st.state in (STATE_UNKNOWN, STATE_UNAVAILABLE) else st.state)
        revs = []
        for ent in s.propulsion_revs_entities:
            st = self.hass.states.get(ent)
            value = _state_float(st)
            if value is None:
                continue
            try:
                revs.append(revolutions_to_hz(value, st.attributes.get(ATTR_UNIT_OF_MEASUREMENT)))
            except ValueError as err:
                _LOGGER.warning("Ignoring %s: %s", ent, err)
        self.machine.set_motoring(
            is_motoring(states, revs, mode=s.motoring_mode, max_idle_rpm=s.max_idle_rpm)
        )

    # ---- sampling ----
    async def async_tick(self, now: datetime | None = None) -> None:
        if self._lock.locked():
            _LOGGER.debug("Previous sample still in progress; skipping tick")
            return
        async with self._lock:
            self._sample(now or dt_util.utcnow())

    def _read(self, entity_id: str, convert, name: str, now: datetime, reasons: List[str]) -> Optional[float]:
        st = self.hass.states.get(entity_id)
        raw = _state_float(st)
        if raw is None:
            reasons.append(f"Missing {name}")
            return None
        seen = getattr(st, "last_reported", None) or st.last_updated
        if now - seen > self.settings.stale_after:
            reasons.append(f"Stale {name}")
            return None
        try:
            return convert(raw, st.attributes.get(ATTR_UNIT_OF_MEASUREMENT))
        except ValueError as err:
            reasons.append(f"Invalid {name}: {err}")
            return None

    def _sample(self, now: datetime) -> None:
        s, h = self.settings, self.histories
        reasons: List[str] = []

        twa = self._read(s.twa_entity, angle_to_degrees, "TWA", now, reasons)
        tws = self._read(s.tws_entity, speed_to_knots, "TWS", now, reasons)
        stw = self._read(s.stw_entity, speed_to_knots, "STW", now, reasons)
        cog = heading = twd = None
        if s.use_course_filter:
            cog = self._read(s.cog_entity, angle_to_degrees, "COG", now, reasons)
        if s.use_heading_filter:
            heading = self._read(s.heading_entity, angle_to_degrees, "heading", now, reasons)
        if s.use_twd_filter:
            twd = self._read(s.twd_entity, angle_to_degrees, "TWD", now, reasons)

        for hist, value, window in (
            (h.course, cog, s.course_window),
            (h.heading, heading, s.heading_window),
            (h.twd, twd, s.twd_window),
            (h.stw, stw, s.avg_stw_window),
            (h.twa, twa, s.avg_twa_window),
            (h.tws, tws, s.avg_tws_window),
        ):
            if value is not None:
                hist.record(now, value, window)

        complete = None not in (twa, tws, stw)
        if complete:
            self.live = LiveSample(twa, tws, stw)
            if stw < s.min_stw:
                reasons.append("Boat not moving")

        if not is_stable(h.course, s.course_threshold, s.use_course_filter):
            reasons.append("Unstable course")
        if not is_stable(h.heading, s.heading_threshold, s.use_heading_filter):
            reasons.append("Unstable heading")
        if not is_stable(h.twd, s.twd_threshold, s.use_twd_filter):
            reasons.append("Unstable wind direction")

        if complete:
            if not passes_vmg_ratio(
                stw, twa, tws, self.baseline,
                enabled=s.use_vmg_filter, lower=s.vmg_ratio_down, upper=s.vmg_ratio_up,
            ):
                reasons.append("VMG ratio out of range")
            if not passes_average_ratio(
                stw, h.stw, enabled=s.use_avg_stw_filter,
                lower=s.avg_stw_down, upper=s.avg_stw_up, use_std_dev=s.use_std_dev,
            ):
                reasons.append("STW deviates from average")
            if not passes_average_ratio(
                twa, h.twa, enabled=s.use_avg_twa_filter,
                lower=s.avg_twa_down, upper=s.avg_twa_up, use_std_dev=s.use_std_dev, absolute=True,
            ):
                reasons.append("TWA deviates from average")
            if not passes_average_ratio(
                tws, h.tws, enabled=s.use_avg_tws_filter,
                lower=s.avg_tws_down, upper=s.avg_tws_up, use_std_dev=s.use_std_dev,
            ):
                reasons.append("TWS deviates from average")

        valid = not reasons
        self.machine.evaluate(valid)

        if reasons != self.errors:
            self.errors = reasons
            self._publish_errors()
        if complete:
            self._publish(EVENT_UPDATE_LIVE_PERFORMANCE, self.performance())

        state = self.machine.state
        if valid and state.recording_active and state.active_file_path:
            self._merge(state.active_file_path, twa, tws, stw, now)

    def _merge(self, file_name: str, twa: float, tws: float, stw: float, now: datetime) -> None:
        table = self._tables.setdefault(file_name, {})
        result = polar.update(
            table, twa, tws, stw, now, angle_step=self.settings.angle_step, speed_step=self.settings.speed_step
        )
        if not result.updated:
            return
        self.last_update = result
        c = result.cell
        _LOGGER.debug("Recorded %.2fkt at TWA %s° / TWS %skt in %s", c.boat_speed, c.wind_angle, c.wind_speed, file_name)
        self.hass.async_create_task(
            self._async_save(file_name, copy.deepcopy(table)), f"{DOMAIN} save {file_name}"
        )
        self._publish(
            EVENT_POLAR_UPDATED,
            {
                "file": file_name,
                "cell": c.as_dict(),
                "previous": None if result.previous is None else result.previous.as_dict(),
            },
        )

    # ---- persistence ----
    async def _async_save(self, file_name: str, snapshot: PolarTable) -> None:
        ok = await self.store.async_save(file_name, snapshot)
        if ok and file_name not in self.polar_files:
            self.polar_files = await self.store.async_list_files()
            self._notify()
        error = None if ok else f"Failed to save {file_name}"
        if error != self.save_error:
            self.save_error = error
            self._publish_errors()

    def _publish_errors(self) -> None:
        errors = list(self.errors)
        if self.save_error:
            errors.append(self.save_error)
        self._publish(EVENT_RECORD_ERRORS, {"errors": errors})


def _json_name(file_name: str) -> str:
    return file_name if file_name.endswith(".json") else f"{file_name}.json"

def _state_float(st: Optional[State]) -> Optional[float]:
    if st is None or st.state in (STATE_UNKNOWN, STATE_UNAVAILABLE):
        return None
    try:
        value = float(st.state)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None
