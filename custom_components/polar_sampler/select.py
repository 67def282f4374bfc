from __future__ import annotations

from homeassistant.components.select import SelectEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import RECORDING_MODES
from .coordinator import PolarCoordinator
from .entity import PolarEntity


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    coord: PolarCoordinator = entry.runtime_data
    async_add_entities([PolarRecordingModeSelect(entry, coord, "recording-mode")])


class PolarRecordingModeSelect(PolarEntity, SelectEntity):
    _attr_name = "Polar Recording Mode"
    _attr_icon = "mdi:auto-mode"
    _attr_entity_category = EntityCategory.CONFIG
    _attr_options = RECORDING_MODES

    @property
    def current_option(self) -> str:
        return self._coord.state.recording_mode

    async def async_select_option(self, option: str) -> None:
        await self._coord.async_set_recording_mode(option)
        self.async_write_ha_state()
