# File: utils/dt_utils.py
"""Calendar-day helpers for cadence windows.

Everything here works on calendar dates in one configured zone and has no
Home Assistant imports, so the engines can use it directly.

UTILS PURITY: NO `homeassistant.*` imports allowed.

Functions:
    - dt_today_local / dt_today_iso: Today in the configured zone
    - dt_now_utc: Aware UTC timestamp (pending-change registration)
    - start_of_local_day / end_of_local_day: Zoned day boundaries
    - dt_parse_date: Parse date strings
    - to_local_date: Normalize str/date/datetime to a calendar date
    - day_key: Stable calendar-day key (YYYY-MM-DD)
    - start_of_week / end_of_week: Monday-based week boundaries
    - start_of_month / end_of_month: Calendar month boundaries
    - units_between: Whole day/week/month periods between two dates
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
import logging
from zoneinfo import ZoneInfo

# Third-party date utilities (no HA dependency)
from dateutil.relativedelta import relativedelta

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# These mirror const.py values but are defined locally for purity.
# ==============================================================================

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

# Base units
UNIT_DAY = "day"
UNIT_WEEK = "week"
UNIT_MONTH = "month"

# Weeks start on Monday (date.weekday() == 0)
WEEK_START_WEEKDAY = 0


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_today_local(tz: ZoneInfo | None = None) -> date:
    """Return today's date in local timezone as a `datetime.date`.

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Example:
        datetime.date(2024, 1, 5)
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info).date()


def dt_today_iso(tz: ZoneInfo | None = None) -> str:
    """Return today's date in local timezone as ISO string (YYYY-MM-DD)."""
    return dt_today_local(tz).isoformat()


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def start_of_local_day(day: date, tz: ZoneInfo | None = None) -> datetime:
    """Return 00:00:00 of a calendar day in the given timezone.

    DST-safe: the wall-clock time is attached to the zone, so days that are
    23 or 25 hours long still start at local midnight.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.combine(day, time.min, tzinfo=tz_info)


def end_of_local_day(day: date, tz: ZoneInfo | None = None) -> datetime:
    """Return 23:59:59.999999 of a calendar day in the given timezone."""
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.combine(day, time.max, tzinfo=tz_info)


# ==============================================================================
# Date Parsing / Keys
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts formats:
    - "2024-01-05" (ISO date)
    - "2024-01-05T10:30:00+00:00" (ISO datetime, date portion in local tz)
    - "01/05/2024" (US format)

    Returns:
        datetime.date or None if parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    try:
        return to_local_date(datetime.fromisoformat(date_str))
    except ValueError:
        pass

    for fmt in ("%m/%d/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    _LOGGER.debug("dt_parse_date: Could not parse '%s'", date_str)
    return None


def to_local_date(
    value: str | date | datetime | None, tz: ZoneInfo | None = None
) -> date | None:
    """Normalize a str/date/datetime to a calendar date in the given timezone.

    Aware datetimes are converted to the zone before the date is taken, so an
    instant late in the UTC day can land on the next local day. Naive
    datetimes are taken as already local.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz or DEFAULT_TIME_ZONE).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return dt_parse_date(value)
    return None


def day_key(value: str | date | datetime, tz: ZoneInfo | None = None) -> str:
    """Return the stable calendar-day key (YYYY-MM-DD) for a value.

    Raises:
        ValueError: If the value cannot be interpreted as a date.
    """
    day = to_local_date(value, tz)
    if day is None:
        raise ValueError(f"Cannot derive a calendar day from {value!r}")
    return day.isoformat()


# ==============================================================================
# Period Boundaries
# ==============================================================================


def start_of_week(day: date) -> date:
    """Return the Monday of the week containing `day`."""
    return day - timedelta(days=(day.weekday() - WEEK_START_WEEKDAY) % 7)


def end_of_week(day: date) -> date:
    """Return the Sunday of the week containing `day`."""
    return start_of_week(day) + timedelta(days=6)


def start_of_month(day: date) -> date:
    """Return the first day of the month containing `day`."""
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    """Return the last day of the month containing `day`."""
    return start_of_month(day) + relativedelta(months=1) - timedelta(days=1)


# ==============================================================================
# Interval Calculations
# ==============================================================================


def units_between(start: date, end: date, unit: str) -> int:
    """Count whole base periods from the period of `start` to that of `end`.

    Both dates are first snapped to the start of their day/week/month, so the
    result is the period index of `end` relative to `start` (negative when
    `end` is earlier).

    Raises:
        ValueError: For an unknown unit.
    """
    if unit == UNIT_DAY:
        return (end - start).days
    if unit == UNIT_WEEK:
        return (start_of_week(end) - start_of_week(start)).days // 7
    if unit == UNIT_MONTH:
        return (end.year - start.year) * 12 + (end.month - start.month)
    raise ValueError(f"Unknown period unit: {unit}")
