from __future__ import annotations

from unittest.mock import patch

from homeassistant import config_entries
from homeassistant.core import HomeAssistant
from homeassistant.data_entry_flow import FlowResultType
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.polar_sampler.const import (
    CONF_COG,
    CONF_STW,
    CONF_TWA,
    CONF_TWS,
    CONF_USE_VMG_FILTER,
    CONF_VMG_RATIO_DOWN,
    DOMAIN,
)

from .conftest import COG, STW, TWA, TWS

USER_INPUT = {CONF_TWA: TWA, CONF_TWS: TWS, CONF_STW: STW, CONF_COG: COG}


async def test_user_flow_creates_entry(hass: HomeAssistant) -> None:
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})
    assert result["type"] is FlowResultType.FORM

    with patch("custom_components.polar_sampler.async_setup_entry", return_value=True):
        result = await hass.config_entries.flow.async_configure(result["flow_id"], USER_INPUT)
        await hass.async_block_till_done()

    assert result["type"] is FlowResultType.CREATE_ENTRY
    assert result["data"][CONF_TWA] == TWA


async def test_user_flow_requires_course_sensor(hass: HomeAssistant) -> None:
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})
    no_cog = {k: v for k, v in USER_INPUT.items() if k != CONF_COG}

    result = await hass.config_entries.flow.async_configure(result["flow_id"], no_cog)

    assert result["type"] is FlowResultType.FORM
    assert result["errors"] == {"base": "invalid_settings"}


async def test_options_flow_stores_tunables_only(hass: HomeAssistant) -> None:
    entry = MockConfigEntry(domain=DOMAIN, data=USER_INPUT)
    entry.add_to_hass(hass)

    with patch("custom_components.polar_sampler.async_setup_entry", return_value=True):
        result = await hass.config_entries.options.async_init(entry.entry_id)
        assert result["type"] is FlowResultType.FORM
        result = await hass.config_entries.options.async_configure(
            result["flow_id"], {CONF_USE_VMG_FILTER: True, CONF_VMG_RATIO_DOWN: 0.7}
        )
        await hass.async_block_till_done()

    assert result["type"] is FlowResultType.CREATE_ENTRY
    assert entry.options[CONF_USE_VMG_FILTER] is True
    assert CONF_TWA not in entry.options
