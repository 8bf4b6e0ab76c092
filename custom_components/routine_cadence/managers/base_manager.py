"""Base manager class for Routine Cadence managers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.dispatcher import (
    async_dispatcher_connect,
    async_dispatcher_send,
)

from .. import const

if TYPE_CHECKING:
    from collections.abc import Callable

    from homeassistant.core import HomeAssistant

    from ..coordinator import RoutineCadenceCoordinator


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Return the dispatcher signal of one config entry.

    Format: 'routine_cadence_{entry_id}_{suffix}'. Two entries never hear each
    other's toggles or config updates.
    """
    return f"{const.DOMAIN}_{entry_id}_{suffix}"


class BaseManager(ABC):
    """Common plumbing for managers owned by a RoutineCadenceCoordinator.

    Managers talk to each other only through signals scoped to their config
    entry. Subscriptions made with listen() are dropped when the entry unloads.
    """

    def __init__(
        self, hass: HomeAssistant, coordinator: RoutineCadenceCoordinator
    ) -> None:
        """Bind the manager to its coordinator.

        Args:
            hass: Home Assistant instance
            coordinator: Coordinator that owns this manager
        """
        self.hass = hass
        self.coordinator = coordinator
        self.entry_id = coordinator.config_entry.entry_id

    def emit(self, suffix: str, **payload: Any) -> None:
        """Send a signal for this entry.

        The keyword payload reaches listeners as one dict argument.
        """
        const.LOGGER.debug(
            "DEBUG: Signal '%s' (entry %s) payload: %s",
            suffix,
            self.entry_id,
            payload,
        )
        async_dispatcher_send(
            self.hass, get_event_signal(self.entry_id, suffix), payload
        )

    def listen(self, suffix: str, handler: Callable[[dict[str, Any]], Any]) -> None:
        """Subscribe `handler` to a signal of this entry until it unloads."""
        unsubscribe = async_dispatcher_connect(
            self.hass, get_event_signal(self.entry_id, suffix), handler
        )
        self.coordinator.config_entry.async_on_unload(unsubscribe)
        const.LOGGER.debug(
            "DEBUG: %s subscribed to '%s' (entry %s)",
            type(self).__name__,
            suffix,
            self.entry_id,
        )

    @abstractmethod
    async def async_setup(self) -> None:
        """Load state and subscribe to signals.

        Awaited once by the coordinator before its first refresh.
        """
