"""Type definitions for Routine Cadence data structures.

TypedDict for structures with fixed keys (recurrence config, pending change
entries, storage root), plain `dict[str, Any]` where keys are runtime ids
(section ids, item ids, calendar days).

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime validation and defaults live
in the engines (see PeriodEngine.normalize_config).

IMPORTANT: This file must NOT import from coordinator.py or managers to avoid
circular dependencies.
"""

from typing import Any, Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

SectionId = str
ItemId = str
RecordId = str
ISODate = str  # ISO 8601 date string "2024-01-05"
ISODatetime = str  # ISO 8601 datetime string "2024-01-05T08:30:00+00:00"

CadenceType = Literal["daily", "weekly", "monthly", "custom"]
PeriodUnit = Literal["day", "week", "month"]
Weekday = Literal["mon", "tue", "wed", "thu", "fri", "sat", "sun"]
ItemState = Literal["pending", "completed_today", "quota_fulfilled", "inactive"]
CompletionSource = Literal["live", "historical"]


# =============================================================================
# Routine Records
# =============================================================================


class RecurrenceConfig(TypedDict):
    """Recurrence rule of one checklist item.

    The progress fields are written only by ProgressEngine.reconcile_records().
    """

    cadence_type: CadenceType
    required_count: int
    active: bool
    period_unit: NotRequired[PeriodUnit]
    interval: NotRequired[int]
    anchor_date: NotRequired[ISODate]
    days_of_week: NotRequired[list[Weekday]]
    days_of_month: NotRequired[list[int]]
    current_progress: NotRequired[int]
    period_start: NotRequired[ISODate]
    period_end: NotRequired[ISODate]
    last_completion: NotRequired[ISODate | None]


# {section_id: {item_id: checked}}
SectionsMap = dict[SectionId, dict[ItemId, bool]]

# {section_id: {item_id: RecurrenceConfig}}
SectionConfigMap = dict[SectionId, dict[ItemId, RecurrenceConfig]]

# {section_id: {day: {item_id: completed}}}
HistoricalCompletionsMap = dict[SectionId, dict[ISODate, dict[ItemId, bool]]]


class RoutineRecord(TypedDict):
    """One dated routine checklist, as read from the backend."""

    id: RecordId
    date: ISODate
    sections: SectionsMap
    config: NotRequired[SectionConfigMap]
    historical_completions: NotRequired[HistoricalCompletionsMap]
    completion: NotRequired[float]


# =============================================================================
# Pending Local Changes
# =============================================================================


class PendingChangeEntry(TypedDict, total=False):
    """Whitelisted config fields awaiting remote confirmation."""

    cadence_type: CadenceType
    required_count: int
    period_unit: PeriodUnit
    registered_at: ISODatetime


# {section_id: {item_id: PendingChangeEntry}}
PendingChangesMap = dict[SectionId, dict[ItemId, PendingChangeEntry]]


# =============================================================================
# Storage Root
# =============================================================================


class StorageMeta(TypedDict):
    """Metadata block of the routine storage file."""

    schema_version: int


class RoutineStorageData(TypedDict):
    """Root structure of the routine storage file."""

    meta: StorageMeta
    records: dict[RecordId, RoutineRecord]


# =============================================================================
# Service Responses
# =============================================================================


class ConfigUpdateResult(TypedDict):
    """Result of RoutineManager.async_update_recurrence_config()."""

    updated: bool
    config: dict[str, Any]
    error: NotRequired[str]
