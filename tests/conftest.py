from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

pytest_plugins = "pytest_homeassistant_custom_component"

ROOT = Path(__file__).resolve().parents[1]

# Ensure the repo root is on sys.path so `custom_components.*` can be imported
# and the HA loader can discover the integration.
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from custom_components.polar_sampler.const import (  # noqa: E402
    CONF_COG,
    CONF_PROPULSION_STATE,
    CONF_STW,
    CONF_TWA,
    CONF_TWS,
)

TWA = "sensor.true_wind_angle"
TWS = "sensor.true_wind_speed"
STW = "sensor.speed_through_water"
COG = "sensor.course_over_ground"
ENGINE = "sensor.engine_state"


@pytest.fixture(autouse=True)
def _enable_custom_integrations(enable_custom_integrations: None) -> None:
    """Enable loading custom_components from this repository."""
    return None


@pytest.fixture
def entry_data() -> dict[str, Any]:
    return {
        CONF_TWA: TWA,
        CONF_TWS: TWS,
        CONF_STW: STW,
        CONF_COG: COG,
        CONF_PROPULSION_STATE: [ENGINE],
    }


def set_sailing(hass, twa=0.61, tws=6.17, stw=3.70, cog=1.0, engine="stopped") -> None:
    """Publish one set of Signal K style readings (rad, m/s)."""
    hass.states.async_set(TWA, str(twa))
    hass.states.async_set(TWS, str(tws))
    hass.states.async_set(STW, str(stw))
    hass.states.async_set(COG, str(cog))
    hass.states.async_set(ENGINE, engine)
