"""Manager modules for Routine Cadence integration.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .base_manager import BaseManager, get_event_signal
from .pending_change_manager import DurableStoreError, PendingChangeManager
from .routine_manager import RoutineManager

__all__ = [
    "BaseManager",
    "DurableStoreError",
    "PendingChangeManager",
    "RoutineManager",
    "get_event_signal",
]
