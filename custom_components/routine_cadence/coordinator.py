# File: coordinator.py
"""Coordinator for the Routine Cadence integration.

Owns, per config entry, the service instances the rest of the integration
uses: one ResultCache, one PendingChangeManager, one RoutineManager and one
CadenceEvaluator. Nothing is shared between config entries.

Full reload (every refresh):
    backend records -> pending local changes laid over them
    -> progress reconciled across all records -> cache cleared
    -> routine_updated signal
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import const
from .engines import (
    CadenceEvaluator,
    CompletionEngine,
    ItemEvaluation,
    PeriodWindow,
    ProgressEngine,
    ResultCache,
)
from .managers import PendingChangeManager, RoutineManager
from .store import RoutineBackend, RoutinePersistenceError
from .utils import dt_utils, record_utils


class RoutineCadenceCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Coordinator for Routine Cadence.

    `data` is `{"records": {record_id: record}}`, ordered by record date.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        backend: RoutineBackend,
    ) -> None:
        """Initialize the RoutineCadenceCoordinator."""
        update_interval_minutes = config_entry.options.get(
            const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL
        )

        super().__init__(
            hass,
            const.LOGGER,
            config_entry=config_entry,
            name=f"{const.DOMAIN}{const.COORDINATOR_SUFFIX}",
            update_interval=timedelta(minutes=update_interval_minutes),
        )
        self.config_entry = config_entry
        self.backend = backend

        self.cache = ResultCache(
            ttl=config_entry.options.get(const.CONF_CACHE_TTL, const.DEFAULT_CACHE_TTL)
        )
        self.pending_manager = PendingChangeManager(
            hass,
            self,
            save_delay=config_entry.options.get(
                const.CONF_PENDING_SAVE_DELAY, const.DEFAULT_PENDING_SAVE_DELAY
            ),
        )
        self.routine_manager = RoutineManager(hass, self)
        self.evaluator = CadenceEvaluator(self._async_history_for_item, cache=self.cache)
        self._unsub_cache_listener = self.cache.add_listener(self._on_cache_invalidated)

    async def async_setup(self) -> None:
        """Set up managers (loads the pending-changes map once)."""
        await self.pending_manager.async_setup()
        await self.routine_manager.async_setup()

    async def _async_update_data(self) -> dict[str, Any]:
        """Reload every record and reconcile progress."""
        try:
            records = await self.backend.async_load_records()
        except RoutinePersistenceError as err:
            raise UpdateFailed(f"Error loading routine records: {err}") from err

        records = self.pending_manager.apply_changes_to_records(records)
        records = ProgressEngine.reconcile_records(records)
        self.cache.invalidate_all()
        self.routine_manager.emit(
            const.SIGNAL_SUFFIX_ROUTINE_UPDATED, record_count=len(records)
        )
        const.LOGGER.debug("DEBUG: Reloaded %s routine records", len(records))
        return self._build_data(records)

    async def async_shutdown(self) -> None:
        """Stop listeners and flush pending changes to local storage."""
        await super().async_shutdown()
        self._unsub_cache_listener()
        await self.pending_manager.async_flush()

    # -------------------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------------------

    @staticmethod
    def _build_data(records: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
        return {
            const.DATA_RECORDS: {
                record_utils.get_record_id(record): record for record in records
            }
        }

    @property
    def records(self) -> list[dict[str, Any]]:
        """All loaded records, oldest first."""
        return list((self.data or {}).get(const.DATA_RECORDS, {}).values())

    def get_record(self, record_id: str | None = None) -> dict[str, Any] | None:
        """Return a record by id; without an id, today's record or the latest."""
        records = (self.data or {}).get(const.DATA_RECORDS, {})
        if record_id is not None:
            return records.get(record_id)
        if not records:
            return None
        today = dt_utils.dt_today_iso()
        for record in records.values():
            if record.get(const.DATA_RECORD_DATE) == today:
                return record
        return list(records.values())[-1]

    def get_item_config(
        self, section: str, item_id: str, record_id: str | None = None
    ) -> dict[str, Any] | None:
        """Return an item's current config in the given (or default) record."""
        record = self.get_record(record_id)
        if record is None:
            return None
        return record_utils.get_item_config(record, section, item_id)

    def async_set_records(self, records: Iterable[Mapping[str, Any]]) -> None:
        """Replace the in-memory view and notify listeners."""
        self.async_set_updated_data(self._build_data(records))

    def async_replace_record(self, record: Mapping[str, Any]) -> None:
        """Swap one record into the view and reconcile progress across all."""
        record_id = record_utils.get_record_id(record)
        records = [
            record if record_utils.get_record_id(existing) == record_id else existing
            for existing in self.records
        ]
        self.async_set_records(ProgressEngine.reconcile_records(records))

    # -------------------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------------------

    async def async_evaluate_item(
        self,
        section: str,
        item_id: str,
        record_id: str | None = None,
    ) -> ItemEvaluation:
        """Evaluate an item in a record (default: today's, else the latest)."""
        record = self.get_record(record_id) or {}
        return await self.evaluator.async_evaluate(section, item_id, record)

    async def _async_history_for_item(
        self,
        section: str,
        item_id: str,
        window: PeriodWindow,
        record: Mapping[str, Any],
    ) -> dict[str, bool]:
        """Completion history of an item across every loaded record."""
        records: list[Mapping[str, Any]] = self.records
        record_id = record_utils.get_record_id(record)
        if record_id not in {record_utils.get_record_id(r) for r in records}:
            records.append(record)
        return CompletionEngine.collect_history(records, section, item_id)

    def _on_cache_invalidated(self, event: str, payload: dict[str, Any]) -> None:
        const.LOGGER.debug("DEBUG: Evaluation cache invalidated (%s): %s", event, payload)
