# File: store.py
"""Backing store for routine records.

RoutineBackend is the read/write contract the integration relies on. It says
nothing about where records live. RoutineStore implements it with Home
Assistant's Storage helper so routine data survives restarts.

Failures to persist are raised as RoutinePersistenceError; that is the only
error type callers of the mutation paths have to handle.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import copy
from typing import TYPE_CHECKING, Any

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from . import const
from .utils import record_utils

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


class RoutinePersistenceError(HomeAssistantError):
    """Raised when a routine change could not be persisted remotely."""


class RoutineBackend(ABC):
    """Read/write contract for routine records."""

    @abstractmethod
    async def async_load_records(self) -> list[dict[str, Any]]:
        """Return every routine record, oldest first."""

    @abstractmethod
    async def async_save_completion(
        self, record_id: str, section: str, item_id: str, completed: bool
    ) -> None:
        """Persist one live completion flag."""

    @abstractmethod
    async def async_save_config(
        self, record_id: str, section: str, item_id: str, config: dict[str, Any]
    ) -> None:
        """Persist one item's recurrence config."""


class RoutineStore(RoutineBackend):
    """RoutineBackend over Home Assistant's Store API.

    Keeps the stored structure in memory and writes the whole file on every
    confirmed change. A failed write leaves the in-memory records as they were.
    """

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).

        """
        self.hass = hass
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: dict[str, Any] = {}

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Return the empty storage structure for a fresh installation."""
        return {
            const.DATA_META: {
                const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION_CURRENT,
            },
            const.DATA_RECORDS: {},
        }

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure.
        """
        const.LOGGER.debug("DEBUG: RoutineStore: Loading data from storage")
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("INFO: No existing routine storage found. Initializing")
            self._data = RoutineStore.get_default_structure()
        else:
            self._data = existing_data
            self._data.setdefault(const.DATA_RECORDS, {})
            const.LOGGER.debug(
                "DEBUG: Loaded %s routine records from storage",
                len(self._data[const.DATA_RECORDS]),
            )

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data."""
        return self._data

    async def async_load_records(self) -> list[dict[str, Any]]:
        """Return deep copies of all records sorted by date."""
        records = self._data.get(const.DATA_RECORDS, {})
        return sorted(
            (copy.deepcopy(record) for record in records.values()),
            key=lambda record: str(record.get(const.DATA_RECORD_DATE, "")),
        )

    async def async_save_completion(
        self, record_id: str, section: str, item_id: str, completed: bool
    ) -> None:
        """Persist one live completion flag."""
        record = self._get_record(record_id, "completion", section, item_id)
        await self._async_commit(
            record_id,
            record_utils.with_item_completion(record, section, item_id, completed),
            "completion",
            section,
            item_id,
        )

    async def async_save_config(
        self, record_id: str, section: str, item_id: str, config: dict[str, Any]
    ) -> None:
        """Persist one item's recurrence config."""
        record = self._get_record(record_id, "config", section, item_id)
        await self._async_commit(
            record_id,
            record_utils.with_item_config(
                record, section, item_id, copy.deepcopy(config), replace=True
            ),
            "config",
            section,
            item_id,
        )

    def _get_record(
        self, record_id: str, what: str, section: str, item_id: str
    ) -> dict[str, Any]:
        record = self._data.get(const.DATA_RECORDS, {}).get(record_id)
        if record is None:
            raise RoutinePersistenceError(
                const.ERROR_PERSISTENCE_FMT.format(
                    what,
                    section,
                    item_id,
                    const.ERROR_RECORD_NOT_FOUND_FMT.format(record_id),
                )
            )
        return record

    async def _async_commit(
        self,
        record_id: str,
        record: dict[str, Any],
        what: str,
        section: str,
        item_id: str,
    ) -> None:
        """Swap `record` in and write the file; put the old record back on failure."""
        records = self._data[const.DATA_RECORDS]
        previous = records[record_id]
        records[record_id] = record
        try:
            await self._store.async_save(self._data)
        except (OSError, TypeError, ValueError, HomeAssistantError) as err:
            records[record_id] = previous
            const.LOGGER.error(
                "ERROR: Failed to save routine %s for %s.%s: %s",
                what,
                section,
                item_id,
                err,
            )
            raise RoutinePersistenceError(
                const.ERROR_PERSISTENCE_FMT.format(what, section, item_id, err)
            ) from err
