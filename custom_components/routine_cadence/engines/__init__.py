"""Engine modules for Routine Cadence integration.

Contains pure computation engines (no Home Assistant imports):
- period_engine: Period windows and recurrence config rules
- completion_engine: Per-day completion history reconciliation
- progress_engine: Canonical progress counters and routine statistics
- cadence_engine: Item evaluation state machine
- result_cache: Short-TTL evaluation cache with explicit invalidation
"""

# Use relative imports within package to avoid mypy module resolution issues
from .cadence_engine import (
    CadenceEvaluator,
    ComputationError,
    ItemEvaluation,
    ValidationError,
)
from .completion_engine import (
    CompletionEngine,
    CompletionRecord,
    ItemProgress,
    ReconciliationResult,
)
from .period_engine import PeriodEngine, PeriodWindow
from .progress_engine import ProgressEngine, SectionStats
from .result_cache import CacheStats, ResultCache

__all__ = [
    "CacheStats",
    "CadenceEvaluator",
    "CompletionEngine",
    "CompletionRecord",
    "ComputationError",
    "ItemEvaluation",
    "ItemProgress",
    "PeriodEngine",
    "PeriodWindow",
    "ProgressEngine",
    "ReconciliationResult",
    "ResultCache",
    "SectionStats",
    "ValidationError",
]
