from core.cleanup.collector import GarbageCollector, SweepInProgressError
from core.cleanup.ledger import CleanupLedger
from core.cleanup.types import CleanupRecord, CleanupStats, SweepResult

__all__ = [
    "CleanupLedger",
    "CleanupRecord",
    "CleanupStats",
    "GarbageCollector",
    "SweepInProgressError",
    "SweepResult",
]
