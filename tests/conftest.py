"""Shared fixtures for Routine Cadence tests."""

import copy
from typing import Any
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.routine_cadence.const import (
    CONF_CACHE_TTL,
    CONF_PENDING_SAVE_DELAY,
    CONF_UPDATE_INTERVAL,
    DATA_META,
    DATA_META_SCHEMA_VERSION,
    DATA_RECORDS,
    DEFAULT_CACHE_TTL,
    DEFAULT_PENDING_SAVE_DELAY,
    DEFAULT_UPDATE_INTERVAL,
    DOMAIN,
    SCHEMA_VERSION_CURRENT,
    STORAGE_KEY_PENDING_CHANGES,
)
from custom_components.routine_cadence.managers.base_manager import get_event_signal
from custom_components.routine_cadence.utils import dt_utils

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name

SECTION = "fitness"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture(autouse=True)
def reset_default_timezone() -> Any:
    """Restore the dt_utils default zone after each test."""
    yield
    dt_utils.set_default_timezone(ZoneInfo("UTC"))


def make_config(
    cadence_type: str = "weekly", required_count: int = 3, **extra: Any
) -> dict[str, Any]:
    """Create a recurrence config for testing."""
    return {
        "cadence_type": cadence_type,
        "required_count": required_count,
        "active": True,
        **extra,
    }


def make_record(
    day: str,
    items: dict[str, bool] | None = None,
    config: dict[str, dict[str, Any]] | None = None,
    section: str = SECTION,
    historical: dict[str, dict[str, bool]] | None = None,
) -> dict[str, Any]:
    """Create a routine record with one section for testing."""
    record: dict[str, Any] = {
        "id": f"r-{day}",
        "date": day,
        "sections": {section: dict(items or {})},
        "config": {section: copy.deepcopy(config or {})},
    }
    if historical:
        record["historical_completions"] = {section: copy.deepcopy(historical)}
    return record


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry."""
    return MockConfigEntry(
        domain=DOMAIN,
        title="Routine Cadence",
        data={},
        options={
            CONF_UPDATE_INTERVAL: DEFAULT_UPDATE_INTERVAL,
            CONF_CACHE_TTL: DEFAULT_CACHE_TTL,
            CONF_PENDING_SAVE_DELAY: DEFAULT_PENDING_SAVE_DELAY,
        },
        entry_id="test_entry_id",
        unique_id="test_unique_id",
    )


@pytest.fixture
def mock_routine_data() -> dict[str, Any]:
    """Return storage data: the gym week of 2024-01-01 plus a reading item."""
    gym = make_config("weekly", 3)
    read = make_config("daily", 1)
    records = [
        make_record("2024-01-02", {"gym": True, "read": True}, {"gym": gym, "read": read}),
        make_record("2024-01-04", {"gym": True, "read": False}, {"gym": gym, "read": read}),
        make_record("2024-01-05", {"gym": False, "read": False}, {"gym": gym, "read": read}),
    ]
    return {
        DATA_META: {DATA_META_SCHEMA_VERSION: SCHEMA_VERSION_CURRENT},
        DATA_RECORDS: {record["id"]: record for record in records},
    }


@pytest.fixture
def mock_pending_data() -> dict[str, Any] | None:
    """Return the stored pending-changes map (None: nothing stored)."""
    return None


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,  # pylint: disable=redefined-outer-name
    mock_routine_data: dict[str, Any],  # pylint: disable=redefined-outer-name
    mock_pending_data: dict[str, Any] | None,  # pylint: disable=redefined-outer-name
) -> MockConfigEntry:
    """Set up the Routine Cadence integration for testing with mocked storage."""
    mock_config_entry.add_to_hass(hass)

    async def _load(store: Any) -> Any:
        if store.key == STORAGE_KEY_PENDING_CHANGES:
            return copy.deepcopy(mock_pending_data)
        return copy.deepcopy(mock_routine_data)

    with patch(
        "homeassistant.helpers.storage.Store.async_load",
        autospec=True,
        side_effect=_load,
    ):
        assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
        await hass.async_block_till_done()

    return mock_config_entry


def get_coordinator(hass: HomeAssistant, entry: MockConfigEntry) -> Any:
    """Return the coordinator of a loaded entry."""
    return hass.data[DOMAIN][entry.entry_id]["coordinator"]


def capture_events(
    hass: HomeAssistant, entry: MockConfigEntry, suffix: str
) -> list[dict[str, Any]]:
    """Collect payloads of an instance-scoped signal."""
    events: list[dict[str, Any]] = []

    @callback
    def _capture(payload: dict[str, Any]) -> None:
        events.append(payload)

    async_dispatcher_connect(hass, get_event_signal(entry.entry_id, suffix), _capture)
    return events
