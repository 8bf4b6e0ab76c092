"""Pending Change Manager - Preserves unconfirmed config edits.

A config edit is applied locally before the backend confirms it. If a full
reload arrives in between, the fresh snapshot would silently revert the edit.
This manager keeps every registered edit until it is confirmed and lays it
over incoming snapshots.

Rules:
- Only whitelisted fields are stored or merged (default: cadence_type,
  required_count, period_unit).
- apply_changes() overwrites only those fields, and only for items the
  snapshot already configures. Everything else comes from the snapshot.
- The map is mirrored to a Home Assistant Store with a debounced write so a
  restart can recover unconfirmed edits. It is loaded once at setup and never
  reloaded mid-session.
- Durable store failures are logged and swallowed. The in-memory map stays
  authoritative for the running session.

Listens to:
- SIGNAL_SUFFIX_CONFIG_UPDATED: clears an item's entry once its save is confirmed
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import copy
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from homeassistant.core import callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from .. import const
from ..utils import dt_utils, record_utils
from ..utils.math_utils import coerce_positive_int
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import RoutineCadenceCoordinator
    from ..type_defs import PendingChangesMap


class DurableStoreError(Exception):
    """Local pending-changes storage could not be read or written.

    Never raised to callers; logged by PendingChangeManager.
    """


class PendingChangeManager(BaseManager):
    """Tracks in-flight config edits and merges them over snapshots."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: RoutineCadenceCoordinator,
        *,
        save_delay: float = const.DEFAULT_PENDING_SAVE_DELAY,
        preserve_fields: Iterable[str] = const.DEFAULT_PRESERVE_FIELDS,
        store: Store | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            hass: Home Assistant instance
            coordinator: Parent coordinator
            save_delay: Debounce delay (seconds) for durable writes
            preserve_fields: Config fields that may be stored and merged
            store: Durable store override (default: pending-changes Store)
        """
        super().__init__(hass, coordinator)
        self._save_delay = save_delay
        self._preserve_fields = tuple(preserve_fields)
        self._store: Store = store or Store(
            hass, const.STORAGE_VERSION, const.STORAGE_KEY_PENDING_CHANGES
        )
        self._changes: PendingChangesMap = {}
        self._loaded = False

    async def async_setup(self) -> None:
        """Load the durable map once and subscribe to confirmations."""
        if not self._loaded:
            self._loaded = True
            await self._async_load()
        self.listen(const.SIGNAL_SUFFIX_CONFIG_UPDATED, self._on_config_updated)

    async def _async_load(self) -> None:
        try:
            stored = await self._store.async_load()
        except (HomeAssistantError, OSError, ValueError) as err:
            self._log_store_error(DurableStoreError(f"load failed: {err}"))
            return
        if not stored:
            return
        if not isinstance(stored, dict):
            self._log_store_error(
                DurableStoreError(f"unexpected stored type {type(stored).__name__}")
            )
            return
        for section, items in stored.items():
            if not isinstance(items, dict):
                self._log_store_error(
                    DurableStoreError(
                        f"skipping section '{section}': "
                        f"unexpected type {type(items).__name__}"
                    )
                )
                continue
            for item_id, entry in items.items():
                if not isinstance(entry, dict):
                    self._log_store_error(
                        DurableStoreError(
                            f"skipping {section}.{item_id}: "
                            f"unexpected type {type(entry).__name__}"
                        )
                    )
                    continue
                fields = self._filter_fields(entry)
                if fields:
                    fields[const.DATA_PENDING_REGISTERED_AT] = entry.get(
                        const.DATA_PENDING_REGISTERED_AT, dt_utils.dt_now_utc().isoformat()
                    )
                    self._changes.setdefault(section, {})[item_id] = fields
        const.LOGGER.info(
            "INFO: Recovered %s pending routine changes from local storage",
            sum(len(items) for items in self._changes.values()),
        )

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def pending_changes(self) -> Mapping[str, Mapping[str, Any]]:
        """Read-only snapshot of the pending map."""
        return MappingProxyType(copy.deepcopy(self._changes))

    def has_pending(self, section: str | None = None, item_id: str | None = None) -> bool:
        """Return True if any change is pending for the given scope."""
        if section is None:
            if item_id is None:
                return any(self._changes.values())
            return any(item_id in items for items in self._changes.values())
        items = self._changes.get(section, {})
        return bool(items) if item_id is None else item_id in items

    def get_change(self, section: str, item_id: str) -> dict[str, Any] | None:
        """Return a copy of one pending entry."""
        entry = self._changes.get(section, {}).get(item_id)
        return dict(entry) if entry else None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def register_change(
        self, section: str, item_id: str, fields: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Store whitelisted fields for an item and reflect them locally.

        Returns:
            The whitelisted fields that were stored (empty if none applied).
        """
        filtered = self._filter_fields(fields)
        if not filtered:
            const.LOGGER.debug(
                "DEBUG: No preservable fields in change for %s.%s: %s",
                section,
                item_id,
                list(fields),
            )
            return {}

        entry = dict(self._changes.get(section, {}).get(item_id, {}))
        entry.update(filtered)
        entry[const.DATA_PENDING_REGISTERED_AT] = dt_utils.dt_now_utc().isoformat()
        self._changes.setdefault(section, {})[item_id] = entry

        self._reflect_into_view(section, item_id, filtered)
        self._schedule_save()
        const.LOGGER.debug(
            "DEBUG: Registered pending change for %s.%s: %s", section, item_id, filtered
        )
        return filtered

    def apply_changes(self, snapshot: Mapping[str, Any]) -> dict[str, Any]:
        """Return a copy of `snapshot` with pending fields laid over it.

        Only items that the snapshot already configures are touched.
        """
        result = dict(snapshot)
        for section, items in self._changes.items():
            for item_id, entry in items.items():
                if record_utils.get_item_config(result, section, item_id) is None:
                    continue
                result = record_utils.with_item_config(
                    result, section, item_id, self._filter_fields(entry)
                )
        return result

    def apply_changes_to_records(
        self, records: Iterable[Mapping[str, Any]]
    ) -> list[dict[str, Any]]:
        """apply_changes() over a collection of records."""
        if not self._changes:
            return [dict(record) for record in records]
        return [self.apply_changes(record) for record in records]

    def clear_changes(self, section: str | None = None, item_id: str | None = None) -> int:
        """Remove matching entries (item, section, item across sections, or all).

        Returns:
            Number of entries removed.
        """
        removed = 0
        for sect in list(self._changes):
            if section is not None and sect != section:
                continue
            items = self._changes[sect]
            if item_id is None:
                removed += len(items)
                del self._changes[sect]
            elif item_id in items:
                del items[item_id]
                removed += 1
                if not items:
                    del self._changes[sect]

        if removed:
            self._schedule_save()
            const.LOGGER.debug(
                "DEBUG: Cleared %s pending changes (section=%s, item=%s)",
                removed,
                section,
                item_id,
            )
        return removed

    async def async_flush(self) -> None:
        """Write the pending map immediately (used on unload)."""
        try:
            await self._store.async_save(self._data_to_save())
        except (HomeAssistantError, OSError, TypeError, ValueError) as err:
            self._log_store_error(DurableStoreError(f"write failed: {err}"))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @callback
    def _on_config_updated(self, payload: dict[str, Any]) -> None:
        """Clear an item's pending entry once its save is confirmed."""
        if payload.get(const.EVENT_PAYLOAD_PERSISTED):
            self.clear_changes(
                payload[const.FIELD_SECTION], payload[const.FIELD_ITEM_ID]
            )

    def _filter_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        filtered = {
            key: value for key, value in fields.items() if key in self._preserve_fields
        }
        if const.DATA_CONFIG_REQUIRED_COUNT in filtered:
            filtered[const.DATA_CONFIG_REQUIRED_COUNT] = coerce_positive_int(
                filtered[const.DATA_CONFIG_REQUIRED_COUNT]
            )
        if const.DATA_CONFIG_CADENCE_TYPE in filtered:
            filtered[const.DATA_CONFIG_CADENCE_TYPE] = str(
                filtered[const.DATA_CONFIG_CADENCE_TYPE]
            ).lower()
        return filtered

    def _reflect_into_view(
        self, section: str, item_id: str, fields: Mapping[str, Any]
    ) -> None:
        records = self.coordinator.records
        if not records:
            return
        updated = [
            record_utils.with_item_config(record, section, item_id, fields)
            if record_utils.get_item_config(record, section, item_id) is not None
            else record
            for record in records
        ]
        self.coordinator.async_set_records(updated)

    def _data_to_save(self) -> dict[str, Any]:
        return copy.deepcopy(self._changes)

    def _schedule_save(self) -> None:
        try:
            self._store.async_delay_save(self._data_to_save, self._save_delay)
        except (HomeAssistantError, OSError, TypeError, ValueError) as err:
            self._log_store_error(DurableStoreError(f"write failed: {err}"))

    @staticmethod
    def _log_store_error(err: DurableStoreError) -> None:
        const.LOGGER.error(
            "ERROR: Pending changes storage unavailable, continuing in memory: %s",
            err,
        )
