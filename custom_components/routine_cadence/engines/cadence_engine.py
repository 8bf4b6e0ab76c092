"""Cadence Engine - Decides whether a recurring item is due.

CadenceEvaluator combines an item's recurrence config with its completion
progress and returns an ItemEvaluation. Rules, in priority order:

1. config inactive             -> inactive, hidden
2. live flag set for the day   -> completed_today, shown (so it can be unchecked)
3. daily cadence               -> pending, shown (required_count is ignored)
4. custom, period not due      -> quota_fulfilled, hidden ("not scheduled")
5. quota met                   -> quota_fulfilled, hidden
6. day outside days_of_week /
   days_of_month               -> pending, hidden ("not scheduled today")
7. otherwise                   -> pending, shown

Rules 2-7 live in classify_item() so routine statistics can apply the same
visibility without going through the async evaluator.

Rollover needs no reset step: a new reference date yields a new window and
completions from the previous period fall outside it.

Errors:
- ValidationError (missing section, item or config) -> inactive evaluation
- ComputationError (anything else)                  -> fail open to pending

Computation errors never leave async_evaluate() and are never cached.

ARCHITECTURE: Pure Python, NO Home Assistant dependencies. The history
provider and the cache are injected by the coordinator.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils import dt_utils, record_utils
from ..utils.math_utils import coerce_positive_int
from .completion_engine import CompletionEngine, HistoryInput, ItemProgress
from .period_engine import PeriodEngine, PeriodWindow

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from .result_cache import ResultCache

HistoryProvider = Callable[
    [str, str, PeriodWindow, Mapping[str, Any]], Awaitable[HistoryInput]
]


class ValidationError(Exception):
    """Raised when an evaluation request names no configured item.

    Attributes:
        section: Requested section id
        item_id: Requested item id
    """

    def __init__(self, section: str, item_id: str, message: str) -> None:
        """Initialize ValidationError."""
        self.section = section
        self.item_id = item_id
        super().__init__(f"{section}.{item_id}: {message}")


class ComputationError(Exception):
    """Raised when period or progress math fails unexpectedly.

    Attributes:
        section: Evaluated section id
        item_id: Evaluated item id
    """

    def __init__(self, section: str, item_id: str, cause: Exception) -> None:
        """Initialize ComputationError."""
        self.section = section
        self.item_id = item_id
        super().__init__(f"{section}.{item_id}: {type(cause).__name__}: {cause}")


@dataclass(frozen=True)
class ItemEvaluation:
    """Outcome of evaluating one item for one reference day."""

    should_show: bool
    state: str
    progress: ItemProgress
    reason: str
    status_text: str = ""
    period: PeriodWindow | None = None
    frequency_label: str = ""

    def as_dict(self) -> dict[str, Any]:
        """Serialize for service responses."""
        return {
            "should_show": self.should_show,
            "state": self.state,
            "progress": self.progress.as_dict(),
            "reason": self.reason,
            "status_text": self.status_text,
            "frequency_label": self.frequency_label,
            "period": self.period.as_dict() if self.period else None,
        }


def build_status_text(progress: ItemProgress, window: PeriodWindow | None) -> str:
    """Return the short progress line, e.g. "2 of 3 this week"."""
    label = window.label if window else const.PERIOD_LABEL_DAY
    return f"{progress.completed} of {progress.required} {label}"


def build_frequency_label(config: Mapping[str, Any]) -> str:
    """Return how often a normalized config recurs, in words.

    Examples:
        daily                        -> "daily"
        weekly, 3                    -> "3 times per week"
        weekly, 1, Mon/Wed           -> "once per week (Mon, Wed)"
        monthly, 2, days 1 and 15    -> "2 times per month (days 1, 15)"
        custom, 1, every 2 weeks     -> "every 2 weeks"
    """
    cadence = config.get(const.DATA_CONFIG_CADENCE_TYPE, const.CADENCE_DAILY)
    if cadence == const.CADENCE_DAILY:
        return const.FREQUENCY_LABEL_DAILY

    unit = config.get(const.DATA_CONFIG_PERIOD_UNIT, const.PERIOD_UNIT_DAY)
    required = coerce_positive_int(config.get(const.DATA_CONFIG_REQUIRED_COUNT))
    interval = coerce_positive_int(config.get(const.DATA_CONFIG_INTERVAL))
    times = "once" if required == 1 else f"{required} times"

    if cadence == const.CADENCE_CUSTOM and interval > 1:
        label = f"every {interval} {unit}s"
        if required > 1:
            label = f"{times} {label}"
    else:
        label = f"{times} per {unit}"

    weekdays = PeriodEngine.normalize_weekdays(config.get(const.DATA_CONFIG_DAYS_OF_WEEK))
    month_days = PeriodEngine.normalize_month_days(
        config.get(const.DATA_CONFIG_DAYS_OF_MONTH)
    )
    if unit == const.PERIOD_UNIT_WEEK and weekdays:
        names = ", ".join(
            const.WEEKDAY_LABELS[const.WEEKDAY_KEYS.index(key)] for key in weekdays
        )
        label = f"{label} ({names})"
    elif unit == const.PERIOD_UNIT_MONTH and month_days:
        if len(month_days) <= const.FREQUENCY_LABEL_MAX_LISTED_DAYS:
            label = f"{label} (days {', '.join(str(day) for day in month_days)})"
        else:
            label = f"{label} ({len(month_days)} days)"
    return label


def classify_item(
    config: Mapping[str, Any],
    progress: ItemProgress,
    *,
    live_completed: bool,
    scheduled_period: bool,
    scheduled_day: bool,
) -> tuple[str, bool, str]:
    """Return `(state, should_show, reason)` for an active, normalized config."""
    if live_completed:
        return const.ITEM_STATE_COMPLETED_TODAY, True, const.REASON_COMPLETED_TODAY
    if config.get(const.DATA_CONFIG_CADENCE_TYPE) == const.CADENCE_DAILY:
        return const.ITEM_STATE_PENDING, True, const.REASON_DAILY_PENDING
    if not scheduled_period:
        return const.ITEM_STATE_QUOTA_FULFILLED, False, const.REASON_NOT_SCHEDULED
    if progress.is_quota_fulfilled:
        return const.ITEM_STATE_QUOTA_FULFILLED, False, const.REASON_QUOTA_FULFILLED
    if not scheduled_day:
        return const.ITEM_STATE_PENDING, False, const.REASON_NOT_SCHEDULED_TODAY
    return const.ITEM_STATE_PENDING, True, const.REASON_QUOTA_PENDING


class CadenceEvaluator:
    """Evaluates items against their cadence, with optional result caching."""

    def __init__(
        self,
        history_provider: HistoryProvider,
        *,
        cache: ResultCache | None = None,
        tz: ZoneInfo | None = None,
    ) -> None:
        """Initialize the evaluator.

        Args:
            history_provider: Async callable returning an item's completion
                history as `{day: bool}` (or any CompletionEngine history shape)
            cache: Optional result cache shared with the mutation paths
            tz: Zone override (default: dt_utils default zone)
        """
        self._history_provider = history_provider
        self._cache = cache
        self._tz = tz

    async def async_evaluate(
        self,
        section: str,
        item_id: str,
        record: Mapping[str, Any],
        *,
        today: str | date | None = None,
    ) -> ItemEvaluation:
        """Evaluate one item of a routine record.

        The reference day is the record's own date. `today` defaults to the
        current local date and only matters for whether the live flag counts
        as a completion.
        """
        try:
            config = self._require_config(section, item_id, record)
        except ValidationError as err:
            const.LOGGER.debug("DEBUG: Evaluation skipped: %s", err)
            return self._inactive(const.REASON_NOT_CONFIGURED, None)

        try:
            live_completed = record_utils.get_live_flag(record, section, item_id)
            reference_day = dt_utils.day_key(record.get(const.DATA_RECORD_DATE), self._tz)
            today_key = dt_utils.day_key(
                today or dt_utils.dt_today_local(self._tz), self._tz
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            return self._fail_open(ComputationError(section, item_id, err), config)

        async def _compute() -> ItemEvaluation:
            return await self._async_compute(
                section, item_id, record, config, live_completed, reference_day, today_key
            )

        try:
            if self._cache is None:
                return await _compute()
            key = self._cache.make_key(section, item_id, reference_day, live_completed)
            return await self._cache.async_get_or_compute(key, _compute)
        except ComputationError as err:
            return self._fail_open(err, config)

    @staticmethod
    def _require_config(
        section: str, item_id: str, record: Mapping[str, Any]
    ) -> dict[str, Any]:
        if not section or not item_id:
            raise ValidationError(section, item_id, "section and item id are required")
        if not isinstance(record, Mapping) or not record:
            raise ValidationError(section, item_id, "no routine record")
        config = record_utils.get_item_config(record, section, item_id)
        if not isinstance(config, dict):
            raise ValidationError(section, item_id, "item has no recurrence config")
        return config

    async def _async_compute(
        self,
        section: str,
        item_id: str,
        record: Mapping[str, Any],
        raw_config: dict[str, Any],
        live_completed: bool,
        reference_day: str,
        today_key: str,
    ) -> ItemEvaluation:
        if not raw_config.get(const.DATA_CONFIG_ACTIVE, True):
            return self._inactive(
                const.REASON_INACTIVE,
                None,
                coerce_positive_int(raw_config.get(const.DATA_CONFIG_REQUIRED_COUNT)),
            )

        try:
            config = PeriodEngine.normalize_config(raw_config)
            window = PeriodEngine.window_for_config(config, reference_day, self._tz)
            required = config[const.DATA_CONFIG_REQUIRED_COUNT]
            history = await self._history_provider(section, item_id, window, record)
            result = CompletionEngine.reconcile(
                window,
                required,
                section_id=section,
                item_id=item_id,
                history=history,
                live_completed=live_completed,
                reference_day=reference_day,
                today=today_key,
            )
            state, show, reason = classify_item(
                config,
                result.progress,
                live_completed=live_completed,
                scheduled_period=PeriodEngine.is_scheduled_period(
                    config, reference_day, self._tz
                ),
                scheduled_day=PeriodEngine.is_scheduled_day(
                    config, reference_day, self._tz
                ),
            )
            frequency_label = build_frequency_label(config)
        except Exception as err:  # pylint: disable=broad-exception-caught
            raise ComputationError(section, item_id, err) from err

        progress = result.progress

        const.LOGGER.debug(
            "DEBUG: Evaluated %s.%s on %s: state=%s progress=%s/%s",
            section,
            item_id,
            reference_day,
            state,
            progress.completed,
            progress.required,
        )
        return ItemEvaluation(
            should_show=show,
            state=state,
            progress=progress,
            reason=reason,
            status_text=build_status_text(progress, window),
            period=window,
            frequency_label=frequency_label,
        )

    @staticmethod
    def _inactive(
        reason: str, window: PeriodWindow | None, required: int = 1
    ) -> ItemEvaluation:
        return ItemEvaluation(
            should_show=False,
            state=const.ITEM_STATE_INACTIVE,
            progress=CompletionEngine.build_progress(0, required),
            reason=reason,
            status_text="",
            period=window,
        )

    @staticmethod
    def _fail_open(err: ComputationError, config: Mapping[str, Any]) -> ItemEvaluation:
        const.LOGGER.warning("WARNING: Evaluation failed open for %s", err)
        required = coerce_positive_int(config.get(const.DATA_CONFIG_REQUIRED_COUNT))
        return ItemEvaluation(
            should_show=True,
            state=const.ITEM_STATE_PENDING,
            progress=CompletionEngine.build_progress(0, required),
            reason=const.REASON_EVALUATION_ERROR,
        )
