"""Period Engine - Pure logic for cadence period windows.

This engine provides stateless, pure Python functions for:
- Resolving the period window (day/week/month) that contains a reference date
- Normalizing recurrence configs (cadence names, counts, base units)
- Deciding whether a custom "every N units" cadence is due in a period
- Restricting weekly/monthly items to chosen weekdays or days of month

Windows are built from calendar dates in the resolved IANA zone and all
membership tests compare calendar-day keys, never raw timestamps, so DST
transitions cannot shift a completion into the wrong period.

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils import dt_utils
from ..utils.math_utils import coerce_positive_int

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class PeriodWindow:
    """One cadence period: an inclusive range of calendar days.

    Attributes:
        start: First calendar day of the period
        end: Last calendar day of the period (inclusive)
        label: Human label used in status text ("this week")
        unit: Base unit the window was built from (day/week/month)
        tz: Zone the calendar days are expressed in
    """

    start: date
    end: date
    label: str
    unit: str
    tz: ZoneInfo | None = field(default=None, compare=False)

    @property
    def key(self) -> str:
        """Stable period key: YYYY-MM-DD, YYYY-Www or YYYY-MM."""
        if self.unit == const.PERIOD_UNIT_WEEK:
            iso_year, iso_week, _ = self.start.isocalendar()
            return f"{iso_year}-W{iso_week:02d}"
        if self.unit == const.PERIOD_UNIT_MONTH:
            return self.start.strftime("%Y-%m")
        return self.start.isoformat()

    @property
    def start_dt(self) -> datetime:
        """Timezone-aware first instant of the window."""
        return dt_utils.start_of_local_day(self.start, self.tz)

    @property
    def end_dt(self) -> datetime:
        """Timezone-aware last instant of the window."""
        return dt_utils.end_of_local_day(self.end, self.tz)

    def contains(self, value: str | date | datetime) -> bool:
        """Return True if the calendar day of `value` falls inside the window."""
        day = dt_utils.to_local_date(value, self.tz)
        if day is None:
            return False
        return self.start <= day <= self.end

    def as_dict(self) -> dict[str, str]:
        """Serialize for service responses."""
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "label": self.label,
            "key": self.key,
        }


class PeriodEngine:
    """Pure logic engine for period windows and recurrence config rules.

    All methods are static - no instance state.

    Week convention: weeks start on Monday and span 7 days.
    Custom cadence: the window always uses the base unit. An `interval` > 1
    only decides which base periods are scheduled (see is_scheduled_period).
    """

    @staticmethod
    def day_key(value: str | date | datetime, tz: ZoneInfo | None = None) -> str:
        """Return the stable calendar-day key (YYYY-MM-DD) in the given zone."""
        return dt_utils.day_key(value, tz)

    @staticmethod
    def resolve_unit(cadence_type: str, period_unit: str | None = None) -> str:
        """Return the base unit used for counting a cadence.

        Raises:
            ValueError: For an unknown cadence type.
        """
        cadence = str(cadence_type).lower()
        if cadence not in const.DEFAULT_PERIOD_UNIT_BY_CADENCE:
            raise ValueError(f"Unknown cadence type: {cadence_type}")
        if cadence == const.CADENCE_CUSTOM and period_unit in const.PERIOD_UNITS:
            return period_unit
        return const.DEFAULT_PERIOD_UNIT_BY_CADENCE[cadence]

    @staticmethod
    def window_for(
        cadence_type: str,
        reference: str | date | datetime,
        *,
        period_unit: str | None = None,
        tz: ZoneInfo | None = None,
    ) -> PeriodWindow:
        """Return the period window of `cadence_type` containing `reference`.

        Args:
            cadence_type: daily/weekly/monthly/custom
            reference: Reference date (str, date or aware datetime)
            period_unit: Base unit for custom cadences
            tz: Zone for interpreting aware datetimes (default: dt_utils zone)

        Raises:
            ValueError: For an unknown cadence type or an unparseable reference.
        """
        unit = PeriodEngine.resolve_unit(cadence_type, period_unit)
        day = dt_utils.to_local_date(reference, tz)
        if day is None:
            raise ValueError(f"Invalid reference date: {reference!r}")

        if unit == const.PERIOD_UNIT_WEEK:
            start, end = dt_utils.start_of_week(day), dt_utils.end_of_week(day)
        elif unit == const.PERIOD_UNIT_MONTH:
            start, end = dt_utils.start_of_month(day), dt_utils.end_of_month(day)
        else:
            start = end = day

        return PeriodWindow(
            start=start,
            end=end,
            label=const.PERIOD_LABELS[unit],
            unit=unit,
            tz=tz or dt_utils.get_default_timezone(),
        )

    @staticmethod
    def window_for_config(
        config: dict[str, Any],
        reference: str | date | datetime,
        tz: ZoneInfo | None = None,
    ) -> PeriodWindow:
        """Return the counting window of a recurrence config."""
        return PeriodEngine.window_for(
            config.get(const.DATA_CONFIG_CADENCE_TYPE, const.CADENCE_DAILY),
            reference,
            period_unit=config.get(const.DATA_CONFIG_PERIOD_UNIT),
            tz=tz,
        )

    @staticmethod
    def is_scheduled_period(
        config: dict[str, Any],
        reference: str | date | datetime,
        tz: ZoneInfo | None = None,
    ) -> bool:
        """Return True if a custom "every N units" item is due in this period.

        The base period containing `reference` is scheduled when the number of
        whole base units between the anchor's period and the reference period
        is a non-negative multiple of `interval`. Non-custom cadences, an
        interval of 1 and a missing anchor are always scheduled.
        """
        cadence = str(config.get(const.DATA_CONFIG_CADENCE_TYPE, "")).lower()
        if cadence != const.CADENCE_CUSTOM:
            return True
        interval = coerce_positive_int(config.get(const.DATA_CONFIG_INTERVAL))
        if interval <= 1:
            return True
        anchor = dt_utils.to_local_date(config.get(const.DATA_CONFIG_ANCHOR_DATE), tz)
        if anchor is None:
            return True
        day = dt_utils.to_local_date(reference, tz)
        if day is None:
            raise ValueError(f"Invalid reference date: {reference!r}")

        unit = PeriodEngine.resolve_unit(cadence, config.get(const.DATA_CONFIG_PERIOD_UNIT))
        elapsed = dt_utils.units_between(anchor, day, unit)
        return elapsed >= 0 and elapsed % interval == 0

    @staticmethod
    def normalize_weekdays(values: Any) -> list[str]:
        """Return weekday keys ("mon".."sun") in calendar order.

        Accepts key or full names ("Monday") and 0-6 indexes with 0 = Monday.
        Unknown entries are dropped.
        """
        if isinstance(values, (str, int)):
            values = [values]
        if not isinstance(values, (list, tuple, set)):
            return []
        keys: set[str] = set()
        for value in values:
            if isinstance(value, bool):
                continue
            if isinstance(value, int) and 0 <= value < len(const.WEEKDAY_KEYS):
                keys.add(const.WEEKDAY_KEYS[value])
            elif isinstance(value, str):
                key = value.strip().lower()[:3]
                if key in const.WEEKDAY_KEYS:
                    keys.add(key)
        return sorted(keys, key=const.WEEKDAY_KEYS.index)

    @staticmethod
    def normalize_month_days(values: Any) -> list[int]:
        """Return sorted unique days of month (1-31); other entries are dropped."""
        if isinstance(values, (str, int)):
            values = [values]
        if not isinstance(values, (list, tuple, set)):
            return []
        days: set[int] = set()
        for value in values:
            if isinstance(value, bool):
                continue
            try:
                day = int(value)
            except (TypeError, ValueError):
                continue
            if const.MONTH_DAY_MIN <= day <= const.MONTH_DAY_MAX:
                days.add(day)
        return sorted(days)

    @staticmethod
    def is_scheduled_day(
        config: dict[str, Any],
        reference: str | date | datetime,
        tz: ZoneInfo | None = None,
    ) -> bool:
        """Return True if the item may be shown on the reference day.

        days_of_week restricts items counted per week, days_of_month items
        counted per month. A day of month that a month lacks (31 in April)
        never matches in that month. Without a restriction every day is
        scheduled.

        Raises:
            ValueError: For an unknown cadence or an unparseable reference.
        """
        unit = PeriodEngine.resolve_unit(
            config.get(const.DATA_CONFIG_CADENCE_TYPE) or const.CADENCE_DAILY,
            config.get(const.DATA_CONFIG_PERIOD_UNIT),
        )
        day = dt_utils.to_local_date(reference, tz)
        if day is None:
            raise ValueError(f"Invalid reference date: {reference!r}")

        if unit == const.PERIOD_UNIT_WEEK:
            weekdays = PeriodEngine.normalize_weekdays(
                config.get(const.DATA_CONFIG_DAYS_OF_WEEK)
            )
            return not weekdays or const.WEEKDAY_KEYS[day.weekday()] in weekdays
        if unit == const.PERIOD_UNIT_MONTH:
            month_days = PeriodEngine.normalize_month_days(
                config.get(const.DATA_CONFIG_DAYS_OF_MONTH)
            )
            return not month_days or day.day in month_days
        return True

    @staticmethod
    def default_config(record_date: str | None = None) -> dict[str, Any]:
        """Return the config an item gets when it is first configured."""
        config: dict[str, Any] = {
            const.DATA_CONFIG_CADENCE_TYPE: const.CADENCE_DAILY,
            const.DATA_CONFIG_REQUIRED_COUNT: const.DEFAULT_REQUIRED_COUNT,
            const.DATA_CONFIG_PERIOD_UNIT: const.PERIOD_UNIT_DAY,
            const.DATA_CONFIG_INTERVAL: const.DEFAULT_INTERVAL,
            const.DATA_CONFIG_ACTIVE: True,
        }
        if record_date:
            config[const.DATA_CONFIG_ANCHOR_DATE] = record_date
        return config

    @staticmethod
    def normalize_config(
        config: dict[str, Any], *, record_date: str | None = None
    ) -> dict[str, Any]:
        """Return a normalized copy of a recurrence config.

        - cadence names are lower-cased
        - required_count and interval become ints >= 1
        - period_unit is resolved from the cadence (custom keeps a valid unit)
        - active defaults to True
        - days_of_week / days_of_month become sorted lists, dropped when empty
        - anchor_date falls back to `record_date` when missing or invalid

        Unknown keys (including progress fields) are kept unchanged.

        Raises:
            ValueError: For an unknown cadence type.
        """
        normalized = dict(config)
        cadence = str(
            normalized.get(const.DATA_CONFIG_CADENCE_TYPE) or const.CADENCE_DAILY
        ).lower()
        unit = PeriodEngine.resolve_unit(
            cadence, normalized.get(const.DATA_CONFIG_PERIOD_UNIT)
        )

        normalized[const.DATA_CONFIG_CADENCE_TYPE] = cadence
        normalized[const.DATA_CONFIG_PERIOD_UNIT] = unit
        normalized[const.DATA_CONFIG_REQUIRED_COUNT] = coerce_positive_int(
            normalized.get(const.DATA_CONFIG_REQUIRED_COUNT, const.DEFAULT_REQUIRED_COUNT)
        )
        normalized[const.DATA_CONFIG_INTERVAL] = coerce_positive_int(
            normalized.get(const.DATA_CONFIG_INTERVAL, const.DEFAULT_INTERVAL)
        )
        normalized[const.DATA_CONFIG_ACTIVE] = bool(
            normalized.get(const.DATA_CONFIG_ACTIVE, True)
        )
        for key, normalize in (
            (const.DATA_CONFIG_DAYS_OF_WEEK, PeriodEngine.normalize_weekdays),
            (const.DATA_CONFIG_DAYS_OF_MONTH, PeriodEngine.normalize_month_days),
        ):
            values = normalize(normalized.get(key))
            if values:
                normalized[key] = values
            else:
                normalized.pop(key, None)

        anchor = normalized.get(const.DATA_CONFIG_ANCHOR_DATE)
        if dt_utils.dt_parse_date(anchor) is None:
            if record_date:
                normalized[const.DATA_CONFIG_ANCHOR_DATE] = record_date
            else:
                normalized.pop(const.DATA_CONFIG_ANCHOR_DATE, None)

        return normalized
