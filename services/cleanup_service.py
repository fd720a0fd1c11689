from __future__ import annotations

import hmac

from core.cleanup.collector import GarbageCollector, SweepInProgressError
from core.cleanup.ledger import CleanupLedger
from core.cleanup.types import CleanupStats, SweepResult
from core.errors import cleanup_in_progress, cleanup_unauthorized


def verify_cron_key(*, expected: str | None, provided: str | None) -> None:
    if not expected or not provided:
        raise cleanup_unauthorized()
    if not hmac.compare_digest(expected.encode(), provided.encode()):
        raise cleanup_unauthorized()


def run_sweep(collector: GarbageCollector) -> SweepResult:
    try:
        return collector.sweep()
    except SweepInProgressError as err:
        raise cleanup_in_progress() from err


def cleanup_stats(ledger: CleanupLedger) -> CleanupStats:
    return ledger.stats()
