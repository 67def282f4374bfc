# custom_components/polar_sampler/store.py
"""Polar files on disk: one JSON table per file in the integration folder."""

from __future__ import annotations

import asyncio
import logging
import os

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.json import save_json
from homeassistant.util.json import load_json

from .const import DOMAIN
from .polar import PolarTable, clean_table

_LOGGER = logging.getLogger(__name__)


class PolarStore:
    """Load/save polar tables under ``<config>/polar_sampler``.

    File I/O always runs in the executor. A corrupt file loads as an empty
    table; a failed save is logged and reported as ``False``. Saves of one
    file are written in the order they were requested.
    """

    def __init__(self, hass: HomeAssistant, directory: str | None = None) -> None:
        self.hass = hass
        self.directory = directory or hass.config.path(DOMAIN)
        self._save_locks: dict[str, asyncio.Lock] = {}

    def path(self, file_name: str) -> str:
        name = os.path.basename(file_name)
        if not name or name != file_name:
            raise ValueError(f"Invalid polar file name: {file_name!r}")
        return os.path.join(self.directory, name)

    async def async_prepare(self) -> None:
        await self.hass.async_add_executor_job(os.makedirs, self.directory, 0o755, True)

    async def async_load(self, file_name: str) -> PolarTable:
        return await self.hass.async_add_executor_job(self._load, self.path(file_name))

    async def async_save(self, file_name: str, table: PolarTable) -> bool:
        path = self.path(file_name)
        lock = self._save_locks.setdefault(path, asyncio.Lock())
        try:
            async with lock:
                await self.hass.async_add_executor_job(self._save, path, table)
        except (HomeAssistantError, OSError) as err:
            _LOGGER.error("Error saving polar file %s: %s", path, err)
            return False
        _LOGGER.debug("Polar data saved to %s", path)
        return True

    async def async_list_files(self) -> list[str]:
        return await self.hass.async_add_executor_job(self._list_files)

    async def async_create(self, file_name: str) -> None:
        """Create an empty polar file; an existing file is left alone."""
        path = self.path(file_name if file_name.endswith(".json") else f"{file_name}.json")
        await self.hass.async_add_executor_job(self._create, path)

    async def async_read_text(self, path: str) -> str:
        return await self.hass.async_add_executor_job(self._read_file, path)

    async def async_write_text(self, path: str, content: str) -> None:
        await self.hass.async_add_executor_job(self._write_file, path, content)

    # ---- executor side ----
    @staticmethod
    def _load(path: str) -> PolarTable:
        try:
            raw = load_json(path, {})
        except HomeAssistantError as err:
            _LOGGER.warning("Polar file %s is unreadable, starting empty: %s", path, err)
            return {}
        return clean_table(raw)

    @staticmethod
    def _save(path: str, table: PolarTable) -> None:
        save_json(path, table, atomic_writes=True)

    def _list_files(self) -> list[str]:
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        return sorted(n for n in names if n.endswith(".json"))

    @staticmethod
    def _create(path: str) -> None:
        with open(path, "x", encoding="utf-8") as f:
            f.write("{}")

    @staticmethod
    def _read_file(path: str) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def _write_file(path: str, content: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
