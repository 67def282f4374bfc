from __future__ import annotations

import logging

import voluptuous as vol
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import ConfigEntryError, HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv

from .const import DOMAIN, PLATFORMS, RECORDING_MODES
from .coordinator import PolarCoordinator

_LOGGER = logging.getLogger(__name__)

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

SERVICES: tuple[str, ...] = (
    "start_recording",
    "stop_recording",
    "set_recording_mode",
    "create_polar_file",
    "import_polar",
    "export_csv",
)

START_SCHEMA = vol.Schema({vol.Optional("polar_file"): cv.string})
MODE_SCHEMA = vol.Schema({vol.Required("mode"): vol.In(RECORDING_MODES)})
CREATE_SCHEMA = vol.Schema({vol.Required("file_name"): cv.string})
IMPORT_SCHEMA = vol.Schema({vol.Required("file_name"): cv.string, vol.Required("path"): cv.string})
EXPORT_SCHEMA = vol.Schema(
    {vol.Optional("path", default="/config/www/polars.csv"): cv.string, vol.Optional("file_name"): cv.string}
)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Polar Sampler from a config entry."""
    try:
        coord = PolarCoordinator(hass, entry)
    except vol.Invalid as err:
        raise ConfigEntryError(f"Invalid polar sampler settings: {err}") from err
    await coord.async_setup()
    entry.runtime_data = coord  # make coordinator accessible to platform & services

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(_async_reload_on_update))

    # --- Services ---
    async def svc_start(call: ServiceCall) -> None:
        try:
            started = await coord.async_set_recording_active(True, call.data.get("polar_file"))
        except ValueError as err:
            raise ServiceValidationError(str(err)) from err
        if not started and not coord.state.recording_active:
            raise HomeAssistantError("Recording not started: vessel is motoring")

    async def svc_stop(_call: ServiceCall) -> None:
        await coord.async_set_recording_active(False)

    async def svc_set_mode(call: ServiceCall) -> None:
        await coord.async_set_recording_mode(call.data["mode"])

    async def svc_create(call: ServiceCall) -> ServiceResponse:
        try:
            name = await coord.async_create_polar_file(call.data["file_name"])
        except ValueError as err:
            raise ServiceValidationError(str(err)) from err
        except FileExistsError as err:
            raise ServiceValidationError(f"Polar file {call.data['file_name']} already exists") from err
        return {"file_name": name}

    async def svc_import(call: ServiceCall) -> ServiceResponse:
        try:
            cells = await coord.async_import_polar(call.data["file_name"], call.data["path"])
        except ValueError as err:
            raise ServiceValidationError(f"Invalid polar data: {err}") from err
        except OSError as err:
            raise HomeAssistantError(f"Cannot read {call.data['path']}: {err}") from err
        return {"cells": cells}

    async def svc_export_csv(call: ServiceCall) -> None:
        try:
            await coord.async_export_csv(call.data["path"], call.data.get("file_name"))
        except ValueError as err:
            raise ServiceValidationError(str(err)) from err
        except OSError as err:
            raise HomeAssistantError(f"Cannot write {call.data['path']}: {err}") from err

    hass.services.async_register(DOMAIN, "start_recording", svc_start, schema=START_SCHEMA)
    hass.services.async_register(DOMAIN, "stop_recording", svc_stop)
    hass.services.async_register(DOMAIN, "set_recording_mode", svc_set_mode, schema=MODE_SCHEMA)
    hass.services.async_register(
        DOMAIN, "create_polar_file", svc_create, schema=CREATE_SCHEMA, supports_response=SupportsResponse.OPTIONAL
    )
    hass.services.async_register(
        DOMAIN, "import_polar", svc_import, schema=IMPORT_SCHEMA, supports_response=SupportsResponse.OPTIONAL
    )
    hass.services.async_register(DOMAIN, "export_csv", svc_export_csv, schema=EXPORT_SCHEMA)
    return True


async def _async_reload_on_update(hass: HomeAssistant, entry: ConfigEntry) -> None:
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    coord: PolarCoordinator = entry.runtime_data
    await coord.async_unload()
    for name in SERVICES:
        hass.services.async_remove(DOMAIN, name)
    return unloaded
