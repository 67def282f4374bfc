from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.helpers.device_registry import DeviceEntryType, DeviceInfo
from homeassistant.helpers.entity import Entity

from .const import DOMAIN, EVENT_CHANGE_MOTORING_STATUS, EVENT_CHANGE_RECORD_STATUS
from .coordinator import PolarCoordinator


def device_info(entry: ConfigEntry) -> DeviceInfo:
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name="Polar Sampler",
        manufacturer="Polar Sampler",
        model="Polar Recorder",
        entry_type=DeviceEntryType.SERVICE,
    )


class PolarEntity(Entity):
    """Push-updated from coordinator notifications."""

    _attr_should_poll = False
    _attr_has_entity_name = True
    # event tags that refresh this entity; None means all
    _update_events: frozenset[str] | None = frozenset({EVENT_CHANGE_RECORD_STATUS, EVENT_CHANGE_MOTORING_STATUS})

    def __init__(self, entry: ConfigEntry, coord: PolarCoordinator, suffix: str) -> None:
        self._coord = coord
        self._attr_unique_id = f"{entry.entry_id}-{suffix}"
        self._attr_device_info = device_info(entry)

    async def async_added_to_hass(self) -> None:
        self.async_on_remove(self._coord.register(self.async_write_ha_state, self._update_events))
