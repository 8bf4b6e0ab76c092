"""Completion Engine - Pure logic for merging completion history.

This engine provides stateless, pure Python functions for:
- Collecting completion days for an item from every loaded routine record
- Merging the live "completed today" flag with historical completions
- Deduplicating completions per calendar day inside a period window
- Building the progress summary (completed / required / percentage)

A day counts once no matter how many sources report it: completions are
gathered into a set of calendar-day keys before counting.

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils import dt_utils, record_utils
from ..utils.math_utils import calculate_percentage

if TYPE_CHECKING:
    from .period_engine import PeriodWindow


@dataclass(frozen=True)
class CompletionRecord:
    """One completion report for an item on a calendar day."""

    item_id: str
    section_id: str
    date: str
    completed: bool
    source: str = const.COMPLETION_SOURCE_HISTORICAL


@dataclass(frozen=True)
class ItemProgress:
    """Progress of an item against its quota for one period."""

    completed: int
    required: int
    percentage: int
    is_quota_fulfilled: bool

    def as_dict(self) -> dict[str, Any]:
        """Serialize for service responses."""
        return {
            "completed": self.completed,
            "required": self.required,
            "percentage": self.percentage,
            "is_quota_fulfilled": self.is_quota_fulfilled,
        }


@dataclass(frozen=True)
class ReconciliationResult:
    """Progress plus the sorted calendar days that produced it."""

    progress: ItemProgress
    completion_days: tuple[str, ...]

    @property
    def last_completion(self) -> str | None:
        """Most recent completion day in the window, if any."""
        return self.completion_days[-1] if self.completion_days else None


# Accepted history shapes:
#   {day: bool}                      flat per-item map
#   {day: {item_id: bool}}           section map from historical_completions
#   Iterable[CompletionRecord]
HistoryInput = Mapping[str, Any] | Iterable[CompletionRecord] | None


class CompletionEngine:
    """Pure logic engine for completion history reconciliation.

    All methods are static - no instance state.
    """

    @staticmethod
    def build_progress(completed: int, required: int) -> ItemProgress:
        """Build an ItemProgress with a clamped, rounded percentage."""
        required = max(1, int(required))
        return ItemProgress(
            completed=completed,
            required=required,
            percentage=calculate_percentage(completed, required),
            is_quota_fulfilled=completed >= required,
        )

    @staticmethod
    def iter_history(
        history: HistoryInput, section_id: str, item_id: str
    ) -> Iterable[tuple[str, bool]]:
        """Yield `(day, completed)` pairs for one item from any history shape."""
        if not history:
            return
        if isinstance(history, Mapping):
            for day, value in history.items():
                if isinstance(value, Mapping):
                    yield day, bool(value.get(item_id, False))
                else:
                    yield day, bool(value)
            return
        for entry in history:
            if not isinstance(entry, CompletionRecord):
                continue
            if entry.item_id == item_id and entry.section_id == section_id:
                yield entry.date, entry.completed

    @staticmethod
    def collect_history(
        records: Iterable[Mapping[str, Any]], section_id: str, item_id: str
    ) -> dict[str, bool]:
        """Flatten every loaded record into a `{day: completed}` map for one item.

        Each record contributes its own live flag at its own date plus its
        historical completions for the section. A day reported as completed by
        any source stays completed.
        """
        collected: dict[str, bool] = {}

        def _merge(day: str, completed: bool) -> None:
            try:
                key = dt_utils.day_key(day)
            except ValueError:
                const.LOGGER.warning(
                    "WARNING: Ignoring completion with invalid date '%s' for %s.%s",
                    day,
                    section_id,
                    item_id,
                )
                return
            collected[key] = collected.get(key, False) or completed

        for record in records:
            record_date = record.get(const.DATA_RECORD_DATE)
            if record_date and item_id in record_utils.get_section_items(
                record, section_id
            ):
                _merge(
                    record_date,
                    record_utils.get_live_flag(record, section_id, item_id),
                )
            section_history = record_utils.get_section_history(record, section_id)
            if not isinstance(section_history, Mapping):
                continue
            for day, completed in CompletionEngine.iter_history(
                section_history, section_id, item_id
            ):
                _merge(day, completed)

        return collected

    @staticmethod
    def collect_completion_days(
        window: PeriodWindow,
        *,
        section_id: str,
        item_id: str,
        history: HistoryInput,
        live_completed: bool = False,
        reference_day: str | date | None = None,
        today: str | date | None = None,
        up_to: str | date | None = None,
    ) -> set[str]:
        """Return the deduplicated set of completion days inside `window`.

        Args:
            window: Period window to count within
            section_id: Section of the item
            item_id: Item id
            history: Historical completions (see HistoryInput)
            live_completed: Live "completed today" flag
            reference_day: Day the live flag belongs to
            today: Current day; the live flag only counts when it equals
                `reference_day`
            up_to: Optional last day to count (inclusive)
        """
        days: set[str] = set()
        limit = dt_utils.to_local_date(up_to, window.tz) if up_to else None

        if live_completed and reference_day is not None and today is not None:
            ref_key = dt_utils.day_key(reference_day, window.tz)
            if ref_key == dt_utils.day_key(today, window.tz):
                days.add(ref_key)

        for day, completed in CompletionEngine.iter_history(
            history, section_id, item_id
        ):
            if not completed:
                continue
            parsed = dt_utils.to_local_date(day, window.tz)
            if parsed is None:
                const.LOGGER.debug(
                    "DEBUG: Skipping unparseable history day '%s' for %s.%s",
                    day,
                    section_id,
                    item_id,
                )
                continue
            if limit is not None and parsed > limit:
                continue
            if window.start <= parsed <= window.end:
                days.add(parsed.isoformat())

        return days

    @staticmethod
    def reconcile(
        window: PeriodWindow,
        required_count: int,
        *,
        section_id: str,
        item_id: str,
        history: HistoryInput,
        live_completed: bool = False,
        reference_day: str | date | None = None,
        today: str | date | None = None,
        up_to: str | date | None = None,
    ) -> ReconciliationResult:
        """Count completion days in `window` and compare against the quota."""
        days = CompletionEngine.collect_completion_days(
            window,
            section_id=section_id,
            item_id=item_id,
            history=history,
            live_completed=live_completed,
            reference_day=reference_day,
            today=today,
            up_to=up_to,
        )
        return ReconciliationResult(
            progress=CompletionEngine.build_progress(len(days), required_count),
            completion_days=tuple(sorted(days)),
        )
