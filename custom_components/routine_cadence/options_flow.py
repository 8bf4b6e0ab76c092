# File: options_flow.py
"""Options Flow for the Routine Cadence integration.

Edits the refresh interval, evaluation cache TTL and the debounce delay of
pending-change writes. Saving options reloads the entry (see __init__.py).
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries

from . import const


def build_options_schema(options: dict[str, Any]) -> vol.Schema:
    """Return the options form schema prefilled with current values."""
    return vol.Schema(
        {
            vol.Required(
                const.CONF_UPDATE_INTERVAL,
                default=options.get(
                    const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=const.MIN_UPDATE_INTERVAL)),
            vol.Required(
                const.CONF_CACHE_TTL,
                default=options.get(const.CONF_CACHE_TTL, const.DEFAULT_CACHE_TTL),
            ): vol.All(
                vol.Coerce(int),
                vol.Range(min=const.MIN_CACHE_TTL, max=const.MAX_CACHE_TTL),
            ),
            vol.Required(
                const.CONF_PENDING_SAVE_DELAY,
                default=options.get(
                    const.CONF_PENDING_SAVE_DELAY, const.DEFAULT_PENDING_SAVE_DELAY
                ),
            ): vol.All(vol.Coerce(float), vol.Range(min=0)),
        }
    )


class RoutineCadenceOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for Routine Cadence tunables."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        """Show and save the options form."""
        if user_input is not None:
            const.LOGGER.debug("DEBUG: Saving Routine Cadence options: %s", user_input)
            return self.async_create_entry(title="", data=user_input)

        return self.async_show_form(
            step_id=const.OPTIONS_FLOW_STEP_INIT,
            data_schema=build_options_schema(dict(self.config_entry.options)),
        )
