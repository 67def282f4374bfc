from __future__ import annotations
from typing import Any
import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.helpers.selector import (
    EntitySelector, EntitySelectorConfig,
    NumberSelector, NumberSelectorConfig,
    SelectSelector, SelectSelectorConfig,
    TextSelector,
)

from .const import (
    DOMAIN,
    CONF_TWA, CONF_TWS, CONF_STW, CONF_COG, CONF_HEADING, CONF_TWD,
    CONF_PROPULSION_STATE, CONF_PROPULSION_REVS,
    CONF_SAMPLE_INTERVAL, CONF_STALE_MULTIPLIER, CONF_MIN_STW,
    CONF_USE_COURSE_FILTER, CONF_COURSE_WINDOW, CONF_COURSE_THRESHOLD,
    CONF_USE_HEADING_FILTER, CONF_HEADING_WINDOW, CONF_HEADING_THRESHOLD,
    CONF_USE_TWD_FILTER, CONF_TWD_WINDOW, CONF_TWD_THRESHOLD,
    CONF_USE_VMG_FILTER, CONF_VMG_RATIO_UP, CONF_VMG_RATIO_DOWN,
    CONF_USE_STD_DEV,
    CONF_USE_AVG_STW_FILTER, CONF_AVG_STW_WINDOW, CONF_AVG_STW_UP, CONF_AVG_STW_DOWN,
    CONF_USE_AVG_TWA_FILTER, CONF_AVG_TWA_WINDOW, CONF_AVG_TWA_UP, CONF_AVG_TWA_DOWN,
    CONF_USE_AVG_TWS_FILTER, CONF_AVG_TWS_WINDOW, CONF_AVG_TWS_UP, CONF_AVG_TWS_DOWN,
    CONF_ANGLE_STEP, CONF_SPEED_STEP, CONF_POLAR_FILE, CONF_AUTO_FILE,
    CONF_MOTORING_MODE, CONF_MAX_IDLE_RPM,
    DEFAULTS, ENTITY_KEYS, MOTORING_MODES,
)
from .settings import SamplerSettings

_SENSOR = EntitySelector(EntitySelectorConfig(domain=["sensor"]))
_SENSORS = EntitySelector(EntitySelectorConfig(domain=["sensor"], multiple=True))

_WINDOW = NumberSelector(NumberSelectorConfig(min=1, max=600, step=1, mode="box"))
_DEGREES = NumberSelector(NumberSelectorConfig(min=0, max=180, step=0.5, mode="box"))
_RATIO = NumberSelector(NumberSelectorConfig(min=0, max=10, step=0.01, mode="box"))

# (key, selector) in form order
_TUNABLES: list[tuple[str, Any]] = [
    (CONF_SAMPLE_INTERVAL, NumberSelector(NumberSelectorConfig(min=100, max=60000, step=100, mode="box"))),
    (CONF_STALE_MULTIPLIER, NumberSelector(NumberSelectorConfig(min=1, max=20, step=0.5, mode="box"))),
    (CONF_MIN_STW, NumberSelector(NumberSelectorConfig(min=0, max=20, step=0.1, mode="box"))),

    (CONF_USE_COURSE_FILTER, bool),
    (CONF_COURSE_WINDOW, _WINDOW),
    (CONF_COURSE_THRESHOLD, _DEGREES),
    (CONF_USE_HEADING_FILTER, bool),
    (CONF_HEADING_WINDOW, _WINDOW),
    (CONF_HEADING_THRESHOLD, _DEGREES),
    (CONF_USE_TWD_FILTER, bool),
    (CONF_TWD_WINDOW, _WINDOW),
    (CONF_TWD_THRESHOLD, _DEGREES),

    (CONF_USE_VMG_FILTER, bool),
    (CONF_VMG_RATIO_UP, _RATIO),
    (CONF_VMG_RATIO_DOWN, _RATIO),
    (CONF_USE_STD_DEV, bool),
    (CONF_USE_AVG_STW_FILTER, bool),
    (CONF_AVG_STW_WINDOW, _WINDOW),
    (CONF_AVG_STW_UP, _RATIO),
    (CONF_AVG_STW_DOWN, _RATIO),
    (CONF_USE_AVG_TWA_FILTER, bool),
    (CONF_AVG_TWA_WINDOW, _WINDOW),
    (CONF_AVG_TWA_UP, _RATIO),
    (CONF_AVG_TWA_DOWN, _RATIO),
    (CONF_USE_AVG_TWS_FILTER, bool),
    (CONF_AVG_TWS_WINDOW, _WINDOW),
    (CONF_AVG_TWS_UP, _RATIO),
    (CONF_AVG_TWS_DOWN, _RATIO),

    (CONF_ANGLE_STEP, NumberSelector(NumberSelectorConfig(min=1, max=45, step=1, mode="box"))),
    (CONF_SPEED_STEP, NumberSelector(NumberSelectorConfig(min=0.5, max=10, step=0.5, mode="box"))),
    (CONF_POLAR_FILE, TextSelector()),
    (CONF_AUTO_FILE, TextSelector()),

    (CONF_MOTORING_MODE, SelectSelector(SelectSelectorConfig(options=MOTORING_MODES))),
    (CONF_MAX_IDLE_RPM, NumberSelector(NumberSelectorConfig(min=0, max=5000, step=50, mode="box"))),
]


def _entity_schema(defaults: dict[str, Any]) -> dict[Any, Any]:
    s: dict[Any, Any] = {
        # Required core sensors
        vol.Required(CONF_TWA, default=defaults.get(CONF_TWA, "")): _SENSOR,
        vol.Required(CONF_TWS, default=defaults.get(CONF_TWS, "")): _SENSOR,
        vol.Required(CONF_STW, default=defaults.get(CONF_STW, "")): _SENSOR,
    }
    # Optional sensors: no default when empty (avoids "required" behavior)
    for key in (CONF_COG, CONF_HEADING, CONF_TWD):
        if defaults.get(key):
            s[vol.Optional(key, default=defaults[key])] = _SENSOR
        else:
            s[vol.Optional(key)] = _SENSOR
    for key in (CONF_PROPULSION_STATE, CONF_PROPULSION_REVS):
        s[vol.Optional(key, default=list(defaults.get(key) or []))] = _SENSORS
    return s


def _tunables_schema(defaults: dict[str, Any]) -> dict[Any, Any]:
    return {
        vol.Optional(key, default=defaults.get(key, DEFAULTS[key])): selector
        for key, selector in _TUNABLES
    }


def _validate(data: dict[str, Any]) -> dict[str, str]:
    try:
        SamplerSettings.from_mapping(data)
    except vol.Invalid:
        return {"base": "invalid_settings"}
    return {}


class PolarFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        errors: dict[str, str] = {}
        if user_input is not None:
            errors = _validate(user_input)
            if not errors:
                return self.async_create_entry(title="Polar Sampler", data=user_input)

        defaults = {**DEFAULTS, **(user_input or {})}
        form_schema = vol.Schema({**_entity_schema(defaults), **_tunables_schema(defaults)})
        return self.async_show_form(step_id="user", data_schema=form_schema, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        return PolarOptionsFlow(config_entry)


class PolarOptionsFlow(config_entries.OptionsFlow):
    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self.entry = entry

    async def async_step_init(self, user_input=None):
        data = {**DEFAULTS, **self.entry.data, **self.entry.options}
        errors: dict[str, str] = {}
        if user_input is not None:
            # entity keys live in entry.data; only tunables go to options
            merged = {**data, **user_input}
            errors = _validate(merged)
            if not errors:
                return self.async_create_entry(
                    title="", data={k: v for k, v in user_input.items() if k not in ENTITY_KEYS}
                )
            data = merged

        form_schema = vol.Schema(_tunables_schema(data))
        return self.async_show_form(step_id="init", data_schema=form_schema, errors=errors)
