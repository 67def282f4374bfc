from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import PolarCoordinator
from .entity import PolarEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Set up the recording on/off switch."""
    coord: PolarCoordinator = entry.runtime_data
    _LOGGER.debug("[%s] Setting up switch platform entities", DOMAIN)
    async_add_entities([PolarRecordingSwitch(entry, coord, "recording")])


class PolarRecordingSwitch(PolarEntity, SwitchEntity):
    """Manual start/stop; turning on switches to manual mode."""

    _attr_name = "Polar Recording"
    _attr_icon = "mdi:record-rec"

    @property
    def is_on(self) -> bool:
        return self._coord.state.recording_active

    async def async_turn_on(self, **kwargs: Any) -> None:
        if not await self._coord.async_set_recording_active(True):
            _LOGGER.debug("[%s] Recording switch on ignored (motoring=%s)", DOMAIN, self._coord.state.motoring)
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs: Any) -> None:
        await self._coord.async_set_recording_active(False)
        self.async_write_ha_state()
