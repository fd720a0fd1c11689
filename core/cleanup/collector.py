from __future__ import annotations

import logging
from threading import Lock

from core.cleanup.ledger import CleanupLedger
from core.cleanup.types import CleanupRecord, SweepResult, utcnow
from core.storage.manager import FileStorageManager
from core.storage.types import DeleteOutcome

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


class SweepInProgressError(RuntimeError):
    pass


class GarbageCollector:
    """Reclaims storage held by expired uploads.

    A sweep walks every expired, uncleaned ledger row oldest first, deletes
    the stored object from the backend recorded at upload time and marks the
    row cleaned. Deletes run one at a time. A failing record stays uncleaned
    and is retried by the next sweep; it never aborts the batch.
    """

    def __init__(
        self,
        *,
        ledger: CleanupLedger,
        storage: FileStorageManager,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        self._ledger = ledger
        self._storage = storage
        self._retention_days = retention_days
        self._sweep_lock = Lock()

    @property
    def is_running(self) -> bool:
        return self._sweep_lock.locked()

    def sweep(self) -> SweepResult:
        if not self._sweep_lock.acquire(blocking=False):
            raise SweepInProgressError("a cleanup sweep is already running")
        try:
            return self._run()
        finally:
            self._sweep_lock.release()

    def _run(self) -> SweepResult:
        result = SweepResult(started_at=utcnow())
        result.stats_before = self._ledger.stats()
        logger.info("Starting cleanup sweep; stats before: %s", result.stats_before.as_dict())

        expired = self._ledger.get_expired()
        result.expired_records = len(expired)

        for record in expired:
            self._clean_record(record, result)

        result.pruned = self._ledger.prune_older_than(self._retention_days)
        result.stats = self._ledger.stats()
        result.completed_at = utcnow()
        logger.info(
            "Cleanup sweep finished in %.2fs: deleted=%s not_found=%s skipped=%s failed=%s pruned=%s",
            result.duration_seconds,
            result.deleted,
            result.not_found,
            result.skipped,
            result.failed,
            result.pruned,
        )
        return result

    def _clean_record(self, record: CleanupRecord, result: SweepResult) -> None:
        try:
            if not record.has_stored_object:
                self._ledger.mark_cleaned(record.document_id)
                result.skipped += 1
                return

            outcome = self._storage.delete_file(record.backend_id, record.storage_provider)
            self._ledger.mark_cleaned(record.document_id)
        except Exception as exc:
            result.failed += 1
            message = f"Failed to clean up {record.document_id}: {exc}"
            result.errors.append(message)
            logger.error(message)
            return

        if outcome is DeleteOutcome.NOT_FOUND:
            result.not_found += 1
        else:
            result.deleted += 1
