"""Tests for the Routine Cadence config and options flows."""

from unittest.mock import patch

from homeassistant import config_entries
from homeassistant.core import HomeAssistant
from homeassistant.data_entry_flow import FlowResultType
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.routine_cadence import const

from tests.conftest import get_coordinator


async def test_user_flow_creates_entry(hass: HomeAssistant) -> None:
    """Confirming the form creates the entry with default options."""
    result = await hass.config_entries.flow.async_init(
        const.DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    assert result["type"] == FlowResultType.FORM
    assert result["step_id"] == const.CONFIG_FLOW_STEP_USER

    with patch(
        "custom_components.routine_cadence.async_setup_entry", return_value=True
    ) as mock_setup:
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], user_input={}
        )
        await hass.async_block_till_done()

    assert result["type"] == FlowResultType.CREATE_ENTRY
    assert result["title"] == const.ROUTINE_CADENCE_TITLE
    assert result["options"] == {
        const.CONF_UPDATE_INTERVAL: const.DEFAULT_UPDATE_INTERVAL,
        const.CONF_CACHE_TTL: const.DEFAULT_CACHE_TTL,
        const.CONF_PENDING_SAVE_DELAY: const.DEFAULT_PENDING_SAVE_DELAY,
    }
    assert len(mock_setup.mock_calls) == 1


async def test_single_instance(
    hass: HomeAssistant, mock_config_entry: MockConfigEntry
) -> None:
    """A second entry is refused."""
    mock_config_entry.add_to_hass(hass)

    result = await hass.config_entries.flow.async_init(
        const.DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    assert result["type"] == FlowResultType.ABORT
    assert result["reason"] == const.TRANS_KEY_ERROR_SINGLE_INSTANCE


async def test_options_flow_updates_and_reloads(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Saved options are applied after the entry reloads."""
    result = await hass.config_entries.options.async_init(init_integration.entry_id)
    assert result["type"] == FlowResultType.FORM
    assert result["step_id"] == const.OPTIONS_FLOW_STEP_INIT

    result = await hass.config_entries.options.async_configure(
        result["flow_id"],
        user_input={
            const.CONF_UPDATE_INTERVAL: 10,
            const.CONF_CACHE_TTL: 30,
            const.CONF_PENDING_SAVE_DELAY: 1.5,
        },
    )
    await hass.async_block_till_done()

    assert result["type"] == FlowResultType.CREATE_ENTRY
    assert init_integration.options[const.CONF_CACHE_TTL] == 30
    coordinator = get_coordinator(hass, init_integration)
    assert coordinator.cache.ttl == 30
    assert coordinator.update_interval.total_seconds() == 600
