"""Tests for RoutineCadenceCoordinator."""

from unittest.mock import AsyncMock, patch

from freezegun import freeze_time
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.routine_cadence import const
from custom_components.routine_cadence.engines import PeriodEngine
from custom_components.routine_cadence.store import RoutinePersistenceError

from tests.conftest import SECTION, capture_events, get_coordinator, make_record


async def test_first_refresh_reconciles_progress(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Every record carries progress as of its own date after loading."""
    coordinator = get_coordinator(hass, init_integration)

    assert [
        record["config"][SECTION]["gym"]["current_progress"]
        for record in coordinator.records
    ] == [1, 2, 2]
    assert coordinator.get_record("r-2024-01-02")["completion"] == 1.0
    assert coordinator.get_record("r-2024-01-04")["completion"] == 0.5
    assert coordinator.get_record("r-2024-01-05")["completion"] == 0.0


async def test_default_record_is_latest_without_today(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Without a record for today the latest record is used."""
    coordinator = get_coordinator(hass, init_integration)

    assert coordinator.get_record()["id"] == "r-2024-01-05"
    assert coordinator.get_record("missing") is None


@freeze_time("2024-01-04 20:00:00", tz_offset=0)
async def test_default_record_is_today(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Today's record (in the configured zone) is the default target."""
    coordinator = get_coordinator(hass, init_integration)

    evaluation = await coordinator.async_evaluate_item(SECTION, "gym")

    assert coordinator.get_record()["id"] == "r-2024-01-04"
    assert evaluation.state == const.ITEM_STATE_COMPLETED_TODAY
    assert evaluation.status_text == "2 of 3 this week"


async def test_history_covers_all_loaded_records(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """The history provider merges live flags of every record."""
    coordinator = get_coordinator(hass, init_integration)
    window = PeriodEngine.window_for("weekly", "2024-01-05")

    # pylint: disable=protected-access
    history = await coordinator._async_history_for_item(
        SECTION, "gym", window, coordinator.get_record()
    )
    unsaved = await coordinator._async_history_for_item(
        SECTION, "gym", window, make_record("2024-01-06", {"gym": True})
    )

    assert history == {"2024-01-02": True, "2024-01-04": True, "2024-01-05": False}
    assert unsaved["2024-01-06"] is True


async def test_refresh_clears_cache_and_signals(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """A full reload drops cached evaluations and announces itself."""
    coordinator = get_coordinator(hass, init_integration)
    events = capture_events(hass, init_integration, const.SIGNAL_SUFFIX_ROUTINE_UPDATED)
    await coordinator.async_evaluate_item(SECTION, "gym")
    assert len(coordinator.cache) == 1

    await coordinator.async_refresh()

    assert len(coordinator.cache) == 0
    assert events == [{"record_count": 3}]


async def test_refresh_failure_keeps_data(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """A failing backend marks the update failed and keeps the last view."""
    coordinator = get_coordinator(hass, init_integration)

    with patch.object(
        coordinator.backend,
        "async_load_records",
        AsyncMock(side_effect=RoutinePersistenceError("backend offline")),
    ):
        await coordinator.async_refresh()

    assert coordinator.last_update_success is False
    assert len(coordinator.records) == 3
