# File: services.py
"""Defines custom services for the Routine Cadence integration.

These services allow direct actions through scripts, automations and
dashboards: toggling an item, editing its recurrence config, evaluating it,
and managing pending local changes.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.exceptions import ServiceValidationError
from homeassistant.helpers import config_validation as cv

from . import const
from .coordinator import RoutineCadenceCoordinator

# --- Service Schemas ---
ITEM_SCHEMA_FIELDS = {
    vol.Required(const.FIELD_SECTION): cv.string,
    vol.Required(const.FIELD_ITEM_ID): cv.string,
    vol.Optional(const.FIELD_RECORD_ID): cv.string,
}

TOGGLE_COMPLETION_SCHEMA = vol.Schema(ITEM_SCHEMA_FIELDS)

UPDATE_RECURRENCE_CONFIG_SCHEMA = vol.Schema(
    {
        **ITEM_SCHEMA_FIELDS,
        vol.Optional(const.DATA_CONFIG_CADENCE_TYPE): vol.All(
            vol.Lower, vol.In(const.CADENCE_TYPES)
        ),
        vol.Optional(const.DATA_CONFIG_REQUIRED_COUNT): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(const.DATA_CONFIG_PERIOD_UNIT): vol.All(
            vol.Lower, vol.In(const.PERIOD_UNITS)
        ),
        vol.Optional(const.DATA_CONFIG_INTERVAL): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(const.DATA_CONFIG_ACTIVE): cv.boolean,
        vol.Optional(const.DATA_CONFIG_DAYS_OF_WEEK): cv.weekdays,
        vol.Optional(const.DATA_CONFIG_DAYS_OF_MONTH): vol.All(
            cv.ensure_list,
            [
                vol.All(
                    vol.Coerce(int),
                    vol.Range(min=const.MONTH_DAY_MIN, max=const.MONTH_DAY_MAX),
                )
            ],
        ),
        vol.Optional(const.FIELD_PERSIST_LOCALLY, default=True): cv.boolean,
        vol.Optional(const.FIELD_PERSIST_GLOBALLY, default=True): cv.boolean,
    }
)

EVALUATE_ITEM_SCHEMA = vol.Schema(ITEM_SCHEMA_FIELDS)

CLEAR_PENDING_CHANGES_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_SECTION): cv.string,
        vol.Optional(const.FIELD_ITEM_ID): cv.string,
    }
)

RELOAD_SCHEMA = vol.Schema({})


def _get_coordinator(hass: HomeAssistant) -> RoutineCadenceCoordinator:
    """Return the coordinator of the (single) loaded entry."""
    for entry_data in hass.data.get(const.DOMAIN, {}).values():
        return entry_data[const.COORDINATOR]
    const.LOGGER.warning("WARNING: %s", const.MSG_NO_ENTRY_FOUND)
    raise ServiceValidationError(
        translation_domain=const.DOMAIN,
        translation_key=const.TRANS_KEY_ERROR_NO_ENTRY,
    )


def async_setup_services(hass: HomeAssistant) -> None:
    """Register Routine Cadence services."""

    async def handle_toggle_completion(call: ServiceCall) -> None:
        """Handle toggling an item's completion."""
        coordinator = _get_coordinator(hass)
        completed = await coordinator.routine_manager.async_toggle_completion(
            call.data[const.FIELD_SECTION],
            call.data[const.FIELD_ITEM_ID],
            call.data.get(const.FIELD_RECORD_ID),
        )
        const.LOGGER.debug(
            "DEBUG: Toggle Completion: %s.%s -> %s",
            call.data[const.FIELD_SECTION],
            call.data[const.FIELD_ITEM_ID],
            completed,
        )

    async def handle_update_recurrence_config(call: ServiceCall) -> ServiceResponse:
        """Handle editing an item's recurrence config."""
        coordinator = _get_coordinator(hass)
        changes: dict[str, Any] = {
            key: call.data[key]
            for key in const.EDITABLE_CONFIG_FIELDS
            if key in call.data
        }
        result = await coordinator.routine_manager.async_update_recurrence_config(
            call.data[const.FIELD_SECTION],
            call.data[const.FIELD_ITEM_ID],
            changes,
            record_id=call.data.get(const.FIELD_RECORD_ID),
            persist_locally=call.data[const.FIELD_PERSIST_LOCALLY],
            persist_globally=call.data[const.FIELD_PERSIST_GLOBALLY],
        )
        return dict(result)

    async def handle_evaluate_item(call: ServiceCall) -> ServiceResponse:
        """Handle evaluating an item; returns ItemEvaluation as a dict."""
        coordinator = _get_coordinator(hass)
        record_id = call.data.get(const.FIELD_RECORD_ID)
        coordinator.routine_manager.require_record(record_id)
        evaluation = await coordinator.async_evaluate_item(
            call.data[const.FIELD_SECTION],
            call.data[const.FIELD_ITEM_ID],
            record_id,
        )
        return evaluation.as_dict()

    async def handle_clear_pending_changes(call: ServiceCall) -> None:
        """Handle clearing pending local changes."""
        coordinator = _get_coordinator(hass)
        removed = coordinator.pending_manager.clear_changes(
            call.data.get(const.FIELD_SECTION), call.data.get(const.FIELD_ITEM_ID)
        )
        const.LOGGER.info("INFO: Cleared %s pending routine changes", removed)

    async def handle_reload(call: ServiceCall) -> None:
        """Handle a full reload of routine records."""
        coordinator = _get_coordinator(hass)
        await coordinator.async_refresh()

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_TOGGLE_COMPLETION,
        handle_toggle_completion,
        schema=TOGGLE_COMPLETION_SCHEMA,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_UPDATE_RECURRENCE_CONFIG,
        handle_update_recurrence_config,
        schema=UPDATE_RECURRENCE_CONFIG_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_EVALUATE_ITEM,
        handle_evaluate_item,
        schema=EVALUATE_ITEM_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CLEAR_PENDING_CHANGES,
        handle_clear_pending_changes,
        schema=CLEAR_PENDING_CHANGES_SCHEMA,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_RELOAD,
        handle_reload,
        schema=RELOAD_SCHEMA,
    )

    const.LOGGER.info("INFO: Routine Cadence services have been registered successfully")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister Routine Cadence services when unloading the integration."""
    services = [
        const.SERVICE_TOGGLE_COMPLETION,
        const.SERVICE_UPDATE_RECURRENCE_CONFIG,
        const.SERVICE_EVALUATE_ITEM,
        const.SERVICE_CLEAR_PENDING_CHANGES,
        const.SERVICE_RELOAD,
    ]

    for service in services:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: Routine Cadence services have been unregistered")
