# File: config_flow.py
"""Config flow for the Routine Cadence integration.

Single-instance: the user confirms once and the entry is created with default
options. Tunables live in the options flow.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from .options_flow import RoutineCadenceOptionsFlowHandler


class RoutineCadenceConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for Routine Cadence."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        """Confirm and create the single Routine Cadence entry."""
        if self._async_current_entries():
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        if user_input is not None:
            return self.async_create_entry(
                title=const.ROUTINE_CADENCE_TITLE,
                data={},
                options={
                    const.CONF_UPDATE_INTERVAL: const.DEFAULT_UPDATE_INTERVAL,
                    const.CONF_CACHE_TTL: const.DEFAULT_CACHE_TTL,
                    const.CONF_PENDING_SAVE_DELAY: const.DEFAULT_PENDING_SAVE_DELAY,
                },
            )

        return self.async_show_form(
            step_id=const.CONFIG_FLOW_STEP_USER, data_schema=vol.Schema({})
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return RoutineCadenceOptionsFlowHandler()
