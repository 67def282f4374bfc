from __future__ import annotations

from homeassistant.components.sensor import SensorEntity, SensorStateClass
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    EVENT_CHANGE_MOTORING_STATUS,
    EVENT_CHANGE_RECORD_STATUS,
    EVENT_POLAR_UPDATED,
    EVENT_RECORD_ERRORS,
    EVENT_UPDATE_LIVE_PERFORMANCE,
)
from .coordinator import PolarCoordinator
from .entity import PolarEntity


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    coord: PolarCoordinator = entry.runtime_data

    entities: list[SensorEntity] = [
        PolarTableEntity(entry, coord, "polar-table"),
        PolarPerformanceEntity(entry, coord, "polar-perf"),
        PolarRecordErrorsEntity(entry, coord, "record-errors"),
    ]

    async_add_entities(entities)


class PolarTableEntity(PolarEntity, SensorEntity):
    _attr_name = "Polar Table"
    _attr_icon = "mdi:sail-boat"
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _update_events = frozenset({EVENT_CHANGE_RECORD_STATUS, EVENT_CHANGE_MOTORING_STATUS, EVENT_POLAR_UPDATED})

    @property
    def native_value(self):
        st = self._coord.state
        if st.motoring:
            return "Motoring"
        return "Recording" if st.recording_active else "Idle"

    @property
    def extra_state_attributes(self):
        st = self._coord.state
        last = self._coord.last_update
        table = self._coord.active_table
        return {
            **st.as_dict(),
            "polar_file": self._coord.machine.manual_file,
            "polar_files": self._coord.polar_files,
            "last_update": None if last is None else last.cell.as_dict(),
            "table": self._coord.baseline if table is None else table,
        }


class PolarPerformanceEntity(PolarEntity, SensorEntity):
    """Current STW vs closest polar speed (%)."""

    _attr_name = "Polar Performance"
    _attr_icon = "mdi:percent-outline"
    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_state_class = SensorStateClass.MEASUREMENT
    _update_events = frozenset({EVENT_UPDATE_LIVE_PERFORMANCE})

    @property
    def native_value(self):
        return self._coord.performance().get("percent")

    @property
    def extra_state_attributes(self):
        perf = self._coord.performance()
        perf.pop("percent", None)
        return perf


class PolarRecordErrorsEntity(PolarEntity, SensorEntity):
    """Why the last sample was not recorded."""

    _attr_name = "Polar Record Errors"
    _attr_icon = "mdi:alert-circle-outline"
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _update_events = frozenset({EVENT_RECORD_ERRORS})

    @property
    def native_value(self):
        return len(self._coord.errors) + (1 if self._coord.save_error else 0)

    @property
    def extra_state_attributes(self):
        errors = list(self._coord.errors)
        if self._coord.save_error:
            errors.append(self._coord.save_error)
        return {"errors": errors}
