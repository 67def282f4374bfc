# custom_components/polar_sampler/settings.py
"""Validated, immutable view of the config entry options."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping

import voluptuous as vol
from homeassistant.helpers import config_validation as cv

from .const import (
    CONF_ANGLE_STEP, CONF_AUTO_FILE,
    CONF_AVG_STW_DOWN, CONF_AVG_STW_UP, CONF_AVG_STW_WINDOW,
    CONF_AVG_TWA_DOWN, CONF_AVG_TWA_UP, CONF_AVG_TWA_WINDOW,
    CONF_AVG_TWS_DOWN, CONF_AVG_TWS_UP, CONF_AVG_TWS_WINDOW,
    CONF_COG, CONF_COURSE_THRESHOLD, CONF_COURSE_WINDOW,
    CONF_HEADING, CONF_HEADING_THRESHOLD, CONF_HEADING_WINDOW,
    CONF_MAX_IDLE_RPM, CONF_MIN_STW, CONF_MOTORING_MODE,
    CONF_POLAR_FILE, CONF_PROPULSION_REVS, CONF_PROPULSION_STATE,
    CONF_SAMPLE_INTERVAL, CONF_SPEED_STEP, CONF_STALE_MULTIPLIER, CONF_STW,
    CONF_TWA, CONF_TWD, CONF_TWD_THRESHOLD, CONF_TWD_WINDOW, CONF_TWS,
    CONF_USE_AVG_STW_FILTER, CONF_USE_AVG_TWA_FILTER, CONF_USE_AVG_TWS_FILTER,
    CONF_USE_COURSE_FILTER, CONF_USE_HEADING_FILTER, CONF_USE_STD_DEV,
    CONF_USE_TWD_FILTER, CONF_USE_VMG_FILTER,
    CONF_VMG_RATIO_DOWN, CONF_VMG_RATIO_UP,
    DEFAULTS, MOTORING_MODES,
)

_optional_entity = vol.Any(None, "", cv.entity_id)
_window = vol.All(vol.Coerce(float), vol.Range(min=0.1, max=3600))
_angle_threshold = vol.All(vol.Coerce(float), vol.Range(min=0, max=180))
_ratio = vol.All(vol.Coerce(float), vol.Range(min=0))
_file_name = vol.All(cv.string, vol.Match(r"^[\w\-. ]+\.json$"))

SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_TWA): cv.entity_id,
        vol.Required(CONF_TWS): cv.entity_id,
        vol.Required(CONF_STW): cv.entity_id,
        vol.Optional(CONF_COG): _optional_entity,
        vol.Optional(CONF_HEADING): _optional_entity,
        vol.Optional(CONF_TWD): _optional_entity,
        vol.Optional(CONF_PROPULSION_STATE): vol.Any(None, cv.entity_ids),
        vol.Optional(CONF_PROPULSION_REVS): vol.Any(None, cv.entity_ids),

        vol.Required(CONF_SAMPLE_INTERVAL): vol.All(vol.Coerce(int), vol.Range(min=100, max=60000)),
        vol.Required(CONF_STALE_MULTIPLIER): vol.All(vol.Coerce(float), vol.Range(min=1)),
        vol.Required(CONF_MIN_STW): vol.All(vol.Coerce(float), vol.Range(min=0)),

        vol.Required(CONF_USE_COURSE_FILTER): cv.boolean,
        vol.Required(CONF_COURSE_WINDOW): _window,
        vol.Required(CONF_COURSE_THRESHOLD): _angle_threshold,
        vol.Required(CONF_USE_HEADING_FILTER): cv.boolean,
        vol.Required(CONF_HEADING_WINDOW): _window,
        vol.Required(CONF_HEADING_THRESHOLD): _angle_threshold,
        vol.Required(CONF_USE_TWD_FILTER): cv.boolean,
        vol.Required(CONF_TWD_WINDOW): _window,
        vol.Required(CONF_TWD_THRESHOLD): _angle_threshold,

        vol.Required(CONF_USE_VMG_FILTER): cv.boolean,
        vol.Required(CONF_VMG_RATIO_UP): _ratio,
        vol.Required(CONF_VMG_RATIO_DOWN): _ratio,
        vol.Required(CONF_USE_STD_DEV): cv.boolean,
        vol.Required(CONF_USE_AVG_STW_FILTER): cv.boolean,
        vol.Required(CONF_AVG_STW_WINDOW): _window,
        vol.Required(CONF_AVG_STW_UP): _ratio,
        vol.Required(CONF_AVG_STW_DOWN): _ratio,
        vol.Required(CONF_USE_AVG_TWA_FILTER): cv.boolean,
        vol.Required(CONF_AVG_TWA_WINDOW): _window,
        vol.Required(CONF_AVG_TWA_UP): _ratio,
        vol.Required(CONF_AVG_TWA_DOWN): _ratio,
        vol.Required(CONF_USE_AVG_TWS_FILTER): cv.boolean,
        vol.Required(CONF_AVG_TWS_WINDOW): _window,
        vol.Required(CONF_AVG_TWS_UP): _ratio,
        vol.Required(CONF_AVG_TWS_DOWN): _ratio,

        vol.Required(CONF_ANGLE_STEP): vol.All(vol.Coerce(float), vol.Range(min=0.5, max=90)),
        vol.Required(CONF_SPEED_STEP): vol.All(vol.Coerce(float), vol.Range(min=0.1, max=20)),
        vol.Required(CONF_POLAR_FILE): _file_name,
        vol.Required(CONF_AUTO_FILE): _file_name,

        vol.Required(CONF_MOTORING_MODE): vol.In(MOTORING_MODES),
        vol.Required(CONF_MAX_IDLE_RPM): vol.All(vol.Coerce(float), vol.Range(min=0)),
    },
    extra=vol.PREVENT_EXTRA,
)

_RATIO_PAIRS = (
    (CONF_VMG_RATIO_DOWN, CONF_VMG_RATIO_UP),
    (CONF_AVG_STW_DOWN, CONF_AVG_STW_UP),
    (CONF_AVG_TWA_DOWN, CONF_AVG_TWA_UP),
    (CONF_AVG_TWS_DOWN, CONF_AVG_TWS_UP),
)

_FILTER_SOURCES = (
    (CONF_USE_COURSE_FILTER, CONF_COG),
    (CONF_USE_HEADING_FILTER, CONF_HEADING),
    (CONF_USE_TWD_FILTER, CONF_TWD),
)


@dataclass(frozen=True, slots=True)
class SamplerSettings:
    twa_entity: str
    tws_entity: str
    stw_entity: str
    cog_entity: str | None
    heading_entity: str | None
    twd_entity: str | None
    propulsion_state_entities: tuple[str, ...]
    propulsion_revs_entities: tuple[str, ...]

    sample_interval: timedelta
    stale_multiplier: float
    min_stw: float

    use_course_filter: bool
    course_window: timedelta
    course_threshold: float
    use_heading_filter: bool
    heading_window: timedelta
    heading_threshold: float
    use_twd_filter: bool
    twd_window: timedelta
    twd_threshold: float

    use_vmg_filter: bool
    vmg_ratio_up: float
    vmg_ratio_down: float
    use_std_dev: bool
    use_avg_stw_filter: bool
    avg_stw_window: timedelta
    avg_stw_up: float
    avg_stw_down: float
    use_avg_twa_filter: bool
    avg_twa_window: timedelta
    avg_twa_up: float
    avg_twa_down: float
    use_avg_tws_filter: bool
    avg_tws_window: timedelta
    avg_tws_up: float
    avg_tws_down: float

    angle_step: float
    speed_step: float
    polar_file: str
    auto_file: str

    motoring_mode: str
    max_idle_rpm: float

    @property
    def stale_after(self) -> timedelta:
        """Readings older than this are ignored."""
        return self.sample_interval * self.stale_multiplier

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> SamplerSettings:
        """Merge with DEFAULTS and validate; raises ``vol.Invalid``."""
        cfg = SETTINGS_SCHEMA({**DEFAULTS, **raw})
        for low, up in _RATIO_PAIRS:
            if cfg[low] >= cfg[up]:
                raise vol.Invalid(f"{low} must be lower than {up}", path=[low])
        for flag, ent in _FILTER_SOURCES:
            if cfg[flag] and not cfg.get(ent):
                raise vol.Invalid(f"{flag} needs a {ent} sensor", path=[ent])

        def secs(key: str) -> timedelta:
            return timedelta(seconds=cfg[key])

        return cls(
            twa_entity=cfg[CONF_TWA],
            tws_entity=cfg[CONF_TWS],
            stw_entity=cfg[CONF_STW],
            cog_entity=cfg.get(CONF_COG) or None,
            heading_entity=cfg.get(CONF_HEADING) or None,
            twd_entity=cfg.get(CONF_TWD) or None,
            propulsion_state_entities=tuple(cfg.get(CONF_PROPULSION_STATE) or ()),
            propulsion_revs_entities=tuple(cfg.get(CONF_PROPULSION_REVS) or ()),
            sample_interval=timedelta(milliseconds=cfg[CONF_SAMPLE_INTERVAL]),
            stale_multiplier=cfg[CONF_STALE_MULTIPLIER],
            min_stw=cfg[CONF_MIN_STW],
            use_course_filter=cfg[CONF_USE_COURSE_FILTER],
            course_window=secs(CONF_COURSE_WINDOW),
            course_threshold=cfg[CONF_COURSE_THRESHOLD],
            use_heading_filter=cfg[CONF_USE_HEADING_FILTER],
            heading_window=secs(CONF_HEADING_WINDOW),
            heading_threshold=cfg[CONF_HEADING_THRESHOLD],
            use_twd_filter=cfg[CONF_USE_TWD_FILTER],
            twd_window=secs(CONF_TWD_WINDOW),
            twd_threshold=cfg[CONF_TWD_THRESHOLD],
            use_vmg_filter=cfg[CONF_USE_VMG_FILTER],
            vmg_ratio_up=cfg[CONF_VMG_RATIO_UP],
            vmg_ratio_down=cfg[CONF_VMG_RATIO_DOWN],
            use_std_dev=cfg[CONF_USE_STD_DEV],
            use_avg_stw_filter=cfg[CONF_USE_AVG_STW_FILTER],
            avg_stw_window=secs(CONF_AVG_STW_WINDOW),
            avg_stw_up=cfg[CONF_AVG_STW_UP],
            avg_stw_down=cfg[CONF_AVG_STW_DOWN],
            use_avg_twa_filter=cfg[CONF_USE_AVG_TWA_FILTER],
            avg_twa_window=secs(CONF_AVG_TWA_WINDOW),
            avg_twa_up=cfg[CONF_AVG_TWA_UP],
            avg_twa_down=cfg[CONF_AVG_TWA_DOWN],
            use_avg_tws_filter=cfg[CONF_USE_AVG_TWS_FILTER],
            avg_tws_window=secs(CONF_AVG_TWS_WINDOW),
            avg_tws_up=cfg[CONF_AVG_TWS_UP],
            avg_tws_down=cfg[CONF_AVG_TWS_DOWN],
            angle_step=cfg[CONF_ANGLE_STEP],
            speed_step=cfg[CONF_SPEED_STEP],
            polar_file=cfg[CONF_POLAR_FILE],
            auto_file=cfg[CONF_AUTO_FILE],
            motoring_mode=cfg[CONF_MOTORING_MODE],
            max_idle_rpm=cfg[CONF_MAX_IDLE_RPM],
        )
