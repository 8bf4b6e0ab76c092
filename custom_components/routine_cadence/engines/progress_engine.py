"""Progress Engine - Canonical progress counters and routine statistics.

This engine provides stateless, pure Python functions for:
- Recomputing every configured item's progress counter from the full set of
  loaded routine records
- Checking whether a stored counter is still inside its period
- Routine completion fraction and per-section statistics over the items that
  are visible on the record's day

Each item's window is anchored to the date of the record that holds it, not
to "now": a record from last week reports last week's progress. Only days on
or before the record's own date are counted, so the counter reads as
"progress as of that record".

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from .. import const
from ..utils import dt_utils, record_utils
from ..utils.math_utils import calculate_percentage, clamp
from .cadence_engine import classify_item
from .completion_engine import CompletionEngine
from .period_engine import PeriodEngine


@dataclass(frozen=True)
class SectionStats:
    """Checked vs total items of one section."""

    completed: int
    total: int
    percentage: int

    def as_dict(self) -> dict[str, int]:
        """Serialize for coordinator data consumers."""
        return {
            "completed": self.completed,
            "total": self.total,
            "percentage": self.percentage,
        }


class ProgressEngine:
    """Pure logic engine for progress reconciliation.

    All methods are static - no instance state.
    """

    @staticmethod
    def calculate_item_progress(
        records: Sequence[Mapping[str, Any]],
        section: str,
        item_id: str,
        config: Mapping[str, Any],
        reference_day: str,
    ) -> dict[str, Any]:
        """Return the progress fields for one item as of `reference_day`.

        Returns:
            Dict with current_progress, period_start, period_end and
            last_completion.

        Raises:
            ValueError: For an unknown cadence or an invalid reference day.
        """
        normalized = PeriodEngine.normalize_config(dict(config))
        window = PeriodEngine.window_for_config(normalized, reference_day)
        required = normalized[const.DATA_CONFIG_REQUIRED_COUNT]

        history = CompletionEngine.collect_history(records, section, item_id)
        result = CompletionEngine.reconcile(
            window,
            required,
            section_id=section,
            item_id=item_id,
            history=history,
            up_to=reference_day,
        )
        return {
            const.DATA_CONFIG_CURRENT_PROGRESS: int(
                clamp(result.progress.completed, 0, required)
            ),
            const.DATA_CONFIG_PERIOD_START: window.start.isoformat(),
            const.DATA_CONFIG_PERIOD_END: window.end.isoformat(),
            const.DATA_CONFIG_LAST_COMPLETION: result.last_completion,
        }

    @staticmethod
    def reconcile_records(
        records: Sequence[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        """Return new records with every item's progress fields recomputed.

        Items whose config cannot be interpreted keep their stored values and
        are logged. The completion fraction of each record is refreshed too.
        """
        reconciled: list[dict[str, Any]] = []
        for record in records:
            updated: dict[str, Any] = dict(record)
            record_date = record.get(const.DATA_RECORD_DATE)
            for section, item_id, config in record_utils.iter_configured_items(record):
                try:
                    fields = ProgressEngine.calculate_item_progress(
                        records, section, item_id, config, record_date
                    )
                except Exception as err:  # pylint: disable=broad-exception-caught
                    const.LOGGER.warning(
                        "WARNING: Skipping progress for %s.%s in record %s: %s",
                        section,
                        item_id,
                        record_utils.get_record_id(record),
                        err,
                    )
                    continue
                updated = record_utils.with_item_config(updated, section, item_id, fields)
            reconciled.append(
                record_utils.with_completion_fraction(
                    updated, ProgressEngine.calculate_completion(updated, records)
                )
            )
        return reconciled

    @staticmethod
    def is_progress_current(config: Mapping[str, Any], day: str | date) -> bool:
        """Return True if the stored counter's window still contains `day`."""
        start = dt_utils.dt_parse_date(config.get(const.DATA_CONFIG_PERIOD_START))
        end = dt_utils.dt_parse_date(config.get(const.DATA_CONFIG_PERIOD_END))
        check = dt_utils.to_local_date(day)
        if start is None or end is None or check is None:
            return False
        return start <= check <= end

    @staticmethod
    def is_item_visible(
        record: Mapping[str, Any],
        section: str,
        item_id: str,
        records: Sequence[Mapping[str, Any]] | None = None,
    ) -> bool:
        """Return whether an item is shown on its record's own day.

        Applies the evaluator's rules with the record date as "today", so a
        checked item stays visible. Items without a config are shown, inactive
        ones are not. If the config cannot be interpreted the item is shown.

        Args:
            record: Record holding the item
            section: Section id
            item_id: Item id
            records: Every loaded record, for completion history
                (default: just `record`)
        """
        config = record_utils.get_item_config(record, section, item_id)
        if config is None:
            return True
        if not config.get(const.DATA_CONFIG_ACTIVE, True):
            return False

        try:
            record_date = dt_utils.day_key(record.get(const.DATA_RECORD_DATE))
            normalized = PeriodEngine.normalize_config(dict(config))
            window = PeriodEngine.window_for_config(normalized, record_date)
            live_completed = record_utils.get_live_flag(record, section, item_id)
            result = CompletionEngine.reconcile(
                window,
                normalized[const.DATA_CONFIG_REQUIRED_COUNT],
                section_id=section,
                item_id=item_id,
                history=CompletionEngine.collect_history(
                    records if records is not None else [record], section, item_id
                ),
                live_completed=live_completed,
                reference_day=record_date,
                today=record_date,
                up_to=record_date,
            )
            _, show, _ = classify_item(
                normalized,
                result.progress,
                live_completed=live_completed,
                scheduled_period=PeriodEngine.is_scheduled_period(normalized, record_date),
                scheduled_day=PeriodEngine.is_scheduled_day(normalized, record_date),
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Counting %s.%s as visible in record %s: %s",
                section,
                item_id,
                record_utils.get_record_id(record),
                err,
            )
            return True
        return show

    @staticmethod
    def calculate_section_stats(
        record: Mapping[str, Any],
        records: Sequence[Mapping[str, Any]] | None = None,
    ) -> dict[str, SectionStats]:
        """Return checked/visible counts for every section of a record.

        Hidden items (inactive, quota met, not scheduled) are left out of both
        counts.
        """
        stats: dict[str, SectionStats] = {}
        for section, items in record_utils.iter_sections(record):
            visible = [
                item_id
                for item_id in items
                if ProgressEngine.is_item_visible(record, section, item_id, records)
            ]
            completed = sum(1 for item_id in visible if items[item_id])
            stats[section] = SectionStats(
                completed=completed,
                total=len(visible),
                percentage=calculate_percentage(completed, len(visible)),
            )
        return stats

    @staticmethod
    def calculate_completion(
        record: Mapping[str, Any],
        records: Sequence[Mapping[str, Any]] | None = None,
    ) -> float:
        """Return the fraction (0..1) of visible items that are checked."""
        stats = ProgressEngine.calculate_section_stats(record, records).values()
        total = sum(section.total for section in stats)
        if not total:
            return 0.0
        return round(sum(section.completed for section in stats) / total, 4)
