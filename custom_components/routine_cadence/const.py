# File: const.py
"""Constants for the Routine Cadence integration.

This file centralizes configuration keys, defaults, storage keys, data keys,
signal suffixes and service names for consistency across the integration.
"""

import logging
from zoneinfo import ZoneInfo

from .utils import dt_utils


def set_default_timezone(hass):
    """Set the default timezone based on the Home Assistant configuration."""
    global DEFAULT_TIME_ZONE
    DEFAULT_TIME_ZONE = ZoneInfo(hass.config.time_zone)
    dt_utils.set_default_timezone(DEFAULT_TIME_ZONE)


# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
# Integration Name
ROUTINE_CADENCE_TITLE = "Routine Cadence"

# Integration Domain
DOMAIN = "routine_cadence"

# Logger
LOGGER = logging.getLogger(__package__)

# No entity platforms: output is exposed through services and coordinator data
PLATFORMS: list = []

# Coordinator
COORDINATOR = "coordinator"
COORDINATOR_SUFFIX = "_coordinator"

# Storage and Versioning
STORE = "store"
STORAGE_KEY = "routine_cadence_data"
STORAGE_KEY_PENDING_CHANGES = "routine_cadence_pending_changes"
STORAGE_VERSION = 1

# Default timezone: initially None, to be set once hass is available.
DEFAULT_TIME_ZONE = None

# ------------------------------------------------------------------------------------------------
# Configuration Keys (options flow)
# ------------------------------------------------------------------------------------------------
CONF_UPDATE_INTERVAL = "update_interval"
CONF_CACHE_TTL = "cache_ttl"
CONF_PENDING_SAVE_DELAY = "pending_save_delay"

DEFAULT_UPDATE_INTERVAL = 5  # minutes
DEFAULT_CACHE_TTL = 5  # seconds
DEFAULT_PENDING_SAVE_DELAY = 0.5  # seconds

MIN_CACHE_TTL = 1
MAX_CACHE_TTL = 60
MIN_UPDATE_INTERVAL = 1

CONFIG_FLOW_STEP_USER = "user"
OPTIONS_FLOW_STEP_INIT = "init"

# ------------------------------------------------------------------------------------------------
# Cadence Types / Period Units
# ------------------------------------------------------------------------------------------------
CADENCE_DAILY = "daily"
CADENCE_WEEKLY = "weekly"
CADENCE_MONTHLY = "monthly"
CADENCE_CUSTOM = "custom"

CADENCE_TYPES = [CADENCE_DAILY, CADENCE_WEEKLY, CADENCE_MONTHLY, CADENCE_CUSTOM]

PERIOD_UNIT_DAY = "day"
PERIOD_UNIT_WEEK = "week"
PERIOD_UNIT_MONTH = "month"

PERIOD_UNITS = [PERIOD_UNIT_DAY, PERIOD_UNIT_WEEK, PERIOD_UNIT_MONTH]

# Base unit used for counting when a cadence does not name one
DEFAULT_PERIOD_UNIT_BY_CADENCE = {
    CADENCE_DAILY: PERIOD_UNIT_DAY,
    CADENCE_WEEKLY: PERIOD_UNIT_WEEK,
    CADENCE_MONTHLY: PERIOD_UNIT_MONTH,
    CADENCE_CUSTOM: PERIOD_UNIT_DAY,
}

# Period window labels (used in status text)
PERIOD_LABEL_DAY = "today"
PERIOD_LABEL_WEEK = "this week"
PERIOD_LABEL_MONTH = "this month"

PERIOD_LABELS = {
    PERIOD_UNIT_DAY: PERIOD_LABEL_DAY,
    PERIOD_UNIT_WEEK: PERIOD_LABEL_WEEK,
    PERIOD_UNIT_MONTH: PERIOD_LABEL_MONTH,
}

# Weekday keys (same order and spelling as homeassistant.const.WEEKDAYS)
WEEKDAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

MONTH_DAY_MIN = 1
MONTH_DAY_MAX = 31

# Frequency label pieces ("3 times per week", "every 2 weeks")
FREQUENCY_LABEL_DAILY = "daily"
FREQUENCY_LABEL_MAX_LISTED_DAYS = 3

# ------------------------------------------------------------------------------------------------
# Item Evaluation States / Reasons
# ------------------------------------------------------------------------------------------------
ITEM_STATE_PENDING = "pending"
ITEM_STATE_COMPLETED_TODAY = "completed_today"
ITEM_STATE_QUOTA_FULFILLED = "quota_fulfilled"
ITEM_STATE_INACTIVE = "inactive"

REASON_INACTIVE = "item inactive"
REASON_NOT_CONFIGURED = "item not configured"
REASON_COMPLETED_TODAY = "completed today"
REASON_DAILY_PENDING = "daily item not completed"
REASON_QUOTA_PENDING = "quota pending"
REASON_QUOTA_FULFILLED = "quota fulfilled"
REASON_NOT_SCHEDULED = "not scheduled this period"
REASON_NOT_SCHEDULED_TODAY = "not scheduled today"
REASON_EVALUATION_ERROR = "evaluation error"

COMPLETION_SOURCE_LIVE = "live"
COMPLETION_SOURCE_HISTORICAL = "historical"

# ------------------------------------------------------------------------------------------------
# Data Keys (storage / routine records)
# ------------------------------------------------------------------------------------------------
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"
DATA_RECORDS = "records"

SCHEMA_VERSION_CURRENT = 1

DATA_RECORD_ID = "id"
DATA_RECORD_DATE = "date"
DATA_RECORD_SECTIONS = "sections"
DATA_RECORD_CONFIG = "config"
DATA_RECORD_HISTORICAL = "historical_completions"
DATA_RECORD_COMPLETION = "completion"

DATA_CONFIG_CADENCE_TYPE = "cadence_type"
DATA_CONFIG_REQUIRED_COUNT = "required_count"
DATA_CONFIG_PERIOD_UNIT = "period_unit"
DATA_CONFIG_INTERVAL = "interval"
DATA_CONFIG_ACTIVE = "active"
DATA_CONFIG_ANCHOR_DATE = "anchor_date"
DATA_CONFIG_DAYS_OF_WEEK = "days_of_week"
DATA_CONFIG_DAYS_OF_MONTH = "days_of_month"
DATA_CONFIG_CURRENT_PROGRESS = "current_progress"
DATA_CONFIG_PERIOD_START = "period_start"
DATA_CONFIG_PERIOD_END = "period_end"
DATA_CONFIG_LAST_COMPLETION = "last_completion"

# Fields a user may edit through update_recurrence_config
EDITABLE_CONFIG_FIELDS = (
    DATA_CONFIG_CADENCE_TYPE,
    DATA_CONFIG_REQUIRED_COUNT,
    DATA_CONFIG_PERIOD_UNIT,
    DATA_CONFIG_INTERVAL,
    DATA_CONFIG_ACTIVE,
    DATA_CONFIG_DAYS_OF_WEEK,
    DATA_CONFIG_DAYS_OF_MONTH,
)

# Fields preserved over incoming snapshots while a change is pending
DEFAULT_PRESERVE_FIELDS = (
    DATA_CONFIG_CADENCE_TYPE,
    DATA_CONFIG_REQUIRED_COUNT,
    DATA_CONFIG_PERIOD_UNIT,
)

DATA_PENDING_REGISTERED_AT = "registered_at"

DEFAULT_REQUIRED_COUNT = 1
DEFAULT_INTERVAL = 1

# ------------------------------------------------------------------------------------------------
# Event Signals (instance-scoped dispatcher suffixes)
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_ITEM_TOGGLED = "item_toggled"
SIGNAL_SUFFIX_ROUTINE_UPDATED = "routine_updated"
SIGNAL_SUFFIX_CONFIG_UPDATED = "config_updated"

# Event payload keys (besides section / item_id / record_id)
EVENT_PAYLOAD_COMPLETED = "completed"
EVENT_PAYLOAD_PERSISTED = "persisted"
EVENT_PAYLOAD_ROLLED_BACK = "rolled_back"
EVENT_PAYLOAD_RECORD_COUNT = "record_count"

# Cache invalidation event names (passed to cache listeners)
CACHE_EVENT_ITEM_TOGGLED = "item_toggled"
CACHE_EVENT_ROUTINE_UPDATED = "routine_updated"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_TOGGLE_COMPLETION = "toggle_completion"
SERVICE_UPDATE_RECURRENCE_CONFIG = "update_recurrence_config"
SERVICE_EVALUATE_ITEM = "evaluate_item"
SERVICE_CLEAR_PENDING_CHANGES = "clear_pending_changes"
SERVICE_RELOAD = "reload"

FIELD_SECTION = "section"
FIELD_ITEM_ID = "item_id"
FIELD_RECORD_ID = "record_id"
FIELD_PERSIST_LOCALLY = "persist_locally"
FIELD_PERSIST_GLOBALLY = "persist_globally"

RESULT_UPDATED = "updated"
RESULT_CONFIG = "config"
RESULT_ERROR = "error"

# ------------------------------------------------------------------------------------------------
# Translation Keys / Messages
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"
TRANS_KEY_ERROR_RECORD_NOT_FOUND = "record_not_found"
TRANS_KEY_ERROR_NO_ENTRY = "no_entry_found"
TRANS_KEY_ERROR_ITEM_NOT_FOUND = "item_not_found"
TRANS_KEY_ERROR_INVALID_CONFIG = "invalid_config"

MSG_NO_ENTRY_FOUND = "No Routine Cadence entry found"
ERROR_RECORD_NOT_FOUND_FMT = "Routine record '{}' not found"
ERROR_ITEM_NOT_FOUND_FMT = "Item '{}' not found in section '{}'"
ERROR_PERSISTENCE_FMT = "Failed to persist {} for {}.{}: {}"
