"""Routine Manager - Mutation entrypoints for routine items.

Both mutations follow optimistic-update discipline: the coordinator's view is
updated (and progress reconciled) before the backend call is awaited.

toggle_completion:
    On backend failure the item flag is restored to its previous value and
    RoutinePersistenceError is raised to the caller.

update_recurrence_config:
    On backend failure the optimistic config and the pending change are kept
    so the user can retry. The failure is returned in the result's `error`.

Emits:
- SIGNAL_SUFFIX_ITEM_TOGGLED: after a toggle (and again on rollback)
- SIGNAL_SUFFIX_CONFIG_UPDATED: after a config edit (persisted=True once the
  backend confirmed it)
- SIGNAL_SUFFIX_ROUTINE_UPDATED: after a full reload (via coordinator)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from homeassistant.exceptions import ServiceValidationError

from .. import const
from ..engines import PeriodEngine
from ..store import RoutinePersistenceError
from ..utils import record_utils
from .base_manager import BaseManager

if TYPE_CHECKING:
    from ..type_defs import ConfigUpdateResult


class RoutineManager(BaseManager):
    """Applies toggles and config edits to routine records."""

    async def async_setup(self) -> None:
        """Set up the manager.

        Nothing to subscribe to: this manager only produces events.
        """
        const.LOGGER.debug("DEBUG: RoutineManager ready for instance %s", self.entry_id)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def require_record(self, record_id: str | None = None) -> dict[str, Any]:
        """Return a record (default: today's, else the latest) or raise."""
        record = self.coordinator.get_record(record_id)
        if record is None:
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_RECORD_NOT_FOUND,
                translation_placeholders={"record_id": str(record_id)},
            )
        return record

    @staticmethod
    def _require_item(
        record: Mapping[str, Any], section: str, item_id: str, *, configured: bool
    ) -> None:
        known = item_id in record_utils.get_section_items(record, section)
        if configured:
            known = known or record_utils.get_item_config(record, section, item_id) is not None
        if not known:
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_ITEM_NOT_FOUND,
                translation_placeholders={"section": section, "item_id": item_id},
            )

    # -------------------------------------------------------------------------
    # Toggle completion
    # -------------------------------------------------------------------------

    async def async_toggle_completion(
        self, section: str, item_id: str, record_id: str | None = None
    ) -> bool:
        """Flip an item's live completion flag.

        Returns:
            The new completion flag.

        Raises:
            ServiceValidationError: Unknown record or item.
            RoutinePersistenceError: Backend rejected the change (rolled back).
        """
        record = self.require_record(record_id)
        self._require_item(record, section, item_id, configured=False)
        rid = record_utils.get_record_id(record)

        previous = record_utils.get_live_flag(record, section, item_id)
        completed = not previous

        self.coordinator.async_replace_record(
            record_utils.with_item_completion(record, section, item_id, completed)
        )
        self.coordinator.cache.invalidate_item(section, item_id)
        self.emit(
            const.SIGNAL_SUFFIX_ITEM_TOGGLED,
            section=section,
            item_id=item_id,
            record_id=rid,
            completed=completed,
        )

        try:
            await self.coordinator.backend.async_save_completion(
                rid, section, item_id, completed
            )
        except RoutinePersistenceError as err:
            const.LOGGER.error(
                "ERROR: Toggle of %s.%s in record %s failed, rolling back: %s",
                section,
                item_id,
                rid,
                err,
            )
            current = self.coordinator.get_record(rid) or record
            self.coordinator.async_replace_record(
                record_utils.with_item_completion(current, section, item_id, previous)
            )
            self.coordinator.cache.invalidate_item(section, item_id)
            self.emit(
                const.SIGNAL_SUFFIX_ITEM_TOGGLED,
                section=section,
                item_id=item_id,
                record_id=rid,
                completed=previous,
                rolled_back=True,
            )
            raise

        const.LOGGER.info(
            "INFO: Item %s.%s in record %s marked %s",
            section,
            item_id,
            rid,
            "completed" if completed else "not completed",
        )
        return completed

    # -------------------------------------------------------------------------
    # Update recurrence config
    # -------------------------------------------------------------------------

    async def async_update_recurrence_config(
        self,
        section: str,
        item_id: str,
        changes: Mapping[str, Any],
        *,
        record_id: str | None = None,
        persist_locally: bool = True,
        persist_globally: bool = True,
    ) -> ConfigUpdateResult:
        """Apply a partial config edit to an item.

        Args:
            section: Section id
            item_id: Item id
            changes: Partial config (only editable fields are used)
            record_id: Record to edit (default: today's, else the latest)
            persist_locally: Register the edit as a pending local change
            persist_globally: Save the edit through the backend

        Returns:
            {updated, config, error?}. `updated` is False only when the
            backend save failed; the optimistic config stays in place.

        Raises:
            ServiceValidationError: Unknown record/item or invalid config.
        """
        record = self.require_record(record_id)
        self._require_item(record, section, item_id, configured=True)
        rid = record_utils.get_record_id(record)
        record_date = record.get(const.DATA_RECORD_DATE)

        edits = {
            key: value
            for key, value in changes.items()
            if key in const.EDITABLE_CONFIG_FIELDS and value is not None
        }
        current = record_utils.get_item_config(
            record, section, item_id
        ) or PeriodEngine.default_config(record_date)
        try:
            config = PeriodEngine.normalize_config(
                {**current, **edits}, record_date=record_date
            )
        except ValueError as err:
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_INVALID_CONFIG,
                translation_placeholders={"error": str(err)},
            ) from err

        self.coordinator.async_replace_record(
            record_utils.with_item_config(record, section, item_id, config, replace=True)
        )
        if persist_locally:
            self.coordinator.pending_manager.register_change(section, item_id, edits)
        self.coordinator.cache.invalidate_item(section, item_id)

        if not persist_globally:
            self._emit_config_updated(section, item_id, rid, persisted=False)
            return {const.RESULT_UPDATED: True, const.RESULT_CONFIG: config}

        try:
            await self.coordinator.backend.async_save_config(rid, section, item_id, config)
        except RoutinePersistenceError as err:
            const.LOGGER.error(
                "ERROR: Saving config of %s.%s in record %s failed, keeping local edit: %s",
                section,
                item_id,
                rid,
                err,
            )
            self._emit_config_updated(section, item_id, rid, persisted=False)
            return {
                const.RESULT_UPDATED: False,
                const.RESULT_CONFIG: config,
                const.RESULT_ERROR: str(err),
            }

        self._emit_config_updated(section, item_id, rid, persisted=True)
        const.LOGGER.info(
            "INFO: Saved recurrence config of %s.%s in record %s", section, item_id, rid
        )
        return {const.RESULT_UPDATED: True, const.RESULT_CONFIG: config}

    def _emit_config_updated(
        self, section: str, item_id: str, record_id: str, *, persisted: bool
    ) -> None:
        self.emit(
            const.SIGNAL_SUFFIX_CONFIG_UPDATED,
            section=section,
            item_id=item_id,
            record_id=record_id,
            persisted=persisted,
        )
