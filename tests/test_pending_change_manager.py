"""Tests for PendingChangeManager.

Covers:
- Whitelisting and coercion of registered fields
- Pending fields laid over fresh snapshots (and only over configured items)
- Survival across a full reload until the save is confirmed
- Clearing by item, section, item across sections, or everything
- Recovery from and failures of the durable store
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.routine_cadence import const
from custom_components.routine_cadence.managers import PendingChangeManager

from tests.conftest import SECTION, get_coordinator, make_config, make_record


def make_store(**overrides: Any) -> MagicMock:
    """Return a mock durable store."""
    store = MagicMock()
    store.async_load = AsyncMock(return_value=None)
    store.async_save = AsyncMock()
    for name, value in overrides.items():
        setattr(store, name, value)
    return store


# =============================================================================
# Registering and merging
# =============================================================================


async def test_register_keeps_only_whitelisted_fields(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Unlisted fields are dropped, counts and cadences are normalized."""
    manager = get_coordinator(hass, init_integration).pending_manager

    stored = manager.register_change(
        SECTION, "gym", {"required_count": "5", "cadence_type": "MONTHLY", "interval": 9}
    )

    assert stored == {"required_count": 5, "cadence_type": "monthly"}
    change = manager.get_change(SECTION, "gym")
    assert change["required_count"] == 5
    assert "interval" not in change
    assert const.DATA_PENDING_REGISTERED_AT in change


async def test_register_without_preservable_fields_is_ignored(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """A change with nothing to preserve registers nothing."""
    manager = get_coordinator(hass, init_integration).pending_manager

    assert manager.register_change(SECTION, "gym", {"active": False}) == {}
    assert not manager.has_pending()


async def test_apply_changes_overrides_only_pending_fields(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Pending required_count wins, everything else comes from the snapshot."""
    manager = get_coordinator(hass, init_integration).pending_manager
    manager.register_change(SECTION, "gym", {"required_count": 3})
    snapshot = make_record(
        "2024-01-06",
        {"gym": True, "run": False},
        {
            "gym": make_config("custom", 1, period_unit="week", interval=2),
            "run": make_config("daily", 1),
        },
    )

    merged = manager.apply_changes(snapshot)

    gym = merged["config"][SECTION]["gym"]
    assert gym["required_count"] == 3
    assert gym["cadence_type"] == "custom"
    assert gym["period_unit"] == "week"
    assert gym["interval"] == 2
    assert merged["config"][SECTION]["run"] == make_config("daily", 1)
    assert merged["sections"] == snapshot["sections"]
    assert snapshot["config"][SECTION]["gym"]["required_count"] == 1


async def test_apply_changes_skips_items_missing_from_snapshot(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Pending entries never create configs the snapshot does not have."""
    manager = get_coordinator(hass, init_integration).pending_manager
    manager.register_change(SECTION, "swim", {"required_count": 2})
    snapshot = make_record("2024-01-06", {"gym": False}, {"gym": make_config()})

    merged = manager.apply_changes(snapshot)

    assert "swim" not in merged["config"][SECTION]
    assert manager.has_pending(SECTION, "swim")


async def test_register_reflects_into_coordinator_view(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Registered fields show up immediately in every record configuring the item."""
    coordinator = get_coordinator(hass, init_integration)

    coordinator.pending_manager.register_change(SECTION, "gym", {"required_count": 5})

    assert [
        record["config"][SECTION]["gym"]["required_count"]
        for record in coordinator.records
    ] == [5, 5, 5]
    assert coordinator.get_item_config(SECTION, "read")["required_count"] == 1


async def test_pending_change_survives_full_reload(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """A reload from the backend does not revert an unconfirmed edit."""
    coordinator = get_coordinator(hass, init_integration)
    coordinator.pending_manager.register_change(SECTION, "gym", {"required_count": 5})

    await coordinator.async_refresh()

    config = coordinator.get_item_config(SECTION, "gym")
    assert config["required_count"] == 5
    assert config["current_progress"] == 2


# =============================================================================
# Confirmation and clearing
# =============================================================================


@pytest.mark.parametrize(("persisted", "still_pending"), [(True, False), (False, True)])
async def test_config_updated_signal_clears_on_confirmation(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    persisted: bool,
    still_pending: bool,
) -> None:
    """Only a persisted config update clears the entry."""
    coordinator = get_coordinator(hass, init_integration)
    coordinator.pending_manager.register_change(SECTION, "gym", {"required_count": 5})

    coordinator.routine_manager.emit(
        const.SIGNAL_SUFFIX_CONFIG_UPDATED,
        section=SECTION,
        item_id="gym",
        record_id="r-2024-01-05",
        persisted=persisted,
    )
    await hass.async_block_till_done()

    assert coordinator.pending_manager.has_pending(SECTION, "gym") is still_pending


@pytest.mark.parametrize(
    ("section", "item_id", "removed", "remaining"),
    [
        (SECTION, "gym", 1, 2),
        (SECTION, None, 2, 1),
        (None, "gym", 2, 1),
        (None, None, 3, 0),
    ],
)
async def test_clear_changes_scopes(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    section: str | None,
    item_id: str | None,
    removed: int,
    remaining: int,
) -> None:
    """Clearing works per item, per section, per item id, or globally."""
    manager = get_coordinator(hass, init_integration).pending_manager
    manager.register_change(SECTION, "gym", {"required_count": 4})
    manager.register_change(SECTION, "read", {"cadence_type": "weekly"})
    manager.register_change("home", "gym", {"required_count": 2})

    assert manager.clear_changes(section, item_id) == removed
    assert sum(len(items) for items in manager.pending_changes.values()) == remaining


async def test_pending_changes_view_is_read_only(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Callers cannot mutate the pending map through the snapshot."""
    manager = get_coordinator(hass, init_integration).pending_manager
    manager.register_change(SECTION, "gym", {"required_count": 4})

    view = manager.pending_changes
    with pytest.raises(TypeError):
        view["home"] = {}  # type: ignore[index]
    view[SECTION]["gym"]["required_count"] = 99

    assert manager.get_change(SECTION, "gym")["required_count"] == 4


# =============================================================================
# Durable store
# =============================================================================


@pytest.mark.parametrize(
    "mock_pending_data",
    [
        {
            SECTION: {
                "gym": {
                    "required_count": 5,
                    "interval": 3,
                    "registered_at": "2024-01-05T08:00:00+00:00",
                }
            }
        }
    ],
)
async def test_recovers_pending_changes_on_setup(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Stored edits are reloaded at setup and applied to the first refresh."""
    coordinator = get_coordinator(hass, init_integration)

    assert coordinator.pending_manager.get_change(SECTION, "gym") == {
        "required_count": 5,
        "registered_at": "2024-01-05T08:00:00+00:00",
    }
    assert coordinator.get_item_config(SECTION, "gym")["required_count"] == 5


@pytest.mark.parametrize(
    "mock_pending_data",
    [
        {
            SECTION: {"gym": "weekly", "read": {"cadence_type": "weekly"}},
            "home": ["dishes"],
        }
    ],
)
async def test_malformed_pending_entries_are_skipped(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Entries of the wrong shape are logged and skipped, the rest recover."""
    coordinator = get_coordinator(hass, init_integration)
    manager = coordinator.pending_manager

    assert init_integration.state is ConfigEntryState.LOADED
    assert not manager.has_pending(SECTION, "gym")
    assert not manager.has_pending("home")
    assert manager.get_change(SECTION, "read")["cadence_type"] == "weekly"
    setup_log = "\n".join(record.getMessage() for record in caplog.get_records("setup"))
    assert "skipping fitness.gym: unexpected type str" in setup_log
    assert "skipping section 'home': unexpected type list" in setup_log


async def test_writes_are_debounced(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Registering schedules a delayed write of the whole map."""
    store = make_store()
    manager = PendingChangeManager(
        hass, get_coordinator(hass, init_integration), save_delay=2, store=store
    )
    await manager.async_setup()

    manager.register_change(SECTION, "gym", {"required_count": 3})

    store.async_delay_save.assert_called_once()
    data_func, delay = store.async_delay_save.call_args.args
    assert delay == 2
    assert data_func()[SECTION]["gym"]["required_count"] == 3


async def test_write_failure_keeps_memory_authoritative(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A failing durable write is logged and the change is kept in memory."""
    store = make_store(async_delay_save=MagicMock(side_effect=HomeAssistantError("ro")))
    manager = PendingChangeManager(
        hass, get_coordinator(hass, init_integration), store=store
    )
    await manager.async_setup()

    manager.register_change(SECTION, "gym", {"required_count": 3})

    assert manager.has_pending(SECTION, "gym")
    assert "Pending changes storage unavailable" in caplog.text


@pytest.mark.parametrize(
    "store_kwargs",
    [
        {"async_load": AsyncMock(side_effect=OSError("corrupt"))},
        {"async_load": AsyncMock(return_value=["not", "a", "map"])},
    ],
)
async def test_load_failure_starts_empty(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    caplog: pytest.LogCaptureFixture,
    store_kwargs: dict[str, Any],
) -> None:
    """Unreadable storage is logged and the session starts without pending edits."""
    manager = PendingChangeManager(
        hass, get_coordinator(hass, init_integration), store=make_store(**store_kwargs)
    )

    await manager.async_setup()

    assert not manager.has_pending()
    assert "Pending changes storage unavailable" in caplog.text


async def test_flush_writes_immediately(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Flushing saves the current map right away."""
    store = make_store()
    manager = PendingChangeManager(
        hass, get_coordinator(hass, init_integration), store=store
    )
    manager.register_change(SECTION, "gym", {"required_count": 3})

    await manager.async_flush()

    saved = store.async_save.await_args.args[0]
    assert saved[SECTION]["gym"]["required_count"] == 3
