from __future__ import annotations

import logging
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator

from core.cleanup.types import CleanupRecord, CleanupStats, from_timestamp, to_timestamp, utcnow
from core.storage.types import StorageProvider

logger = logging.getLogger(__name__)

DEFAULT_DB_FILE = "cleanup.db"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS cleanup_records (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        document_id TEXT UNIQUE NOT NULL,
        session_id TEXT NOT NULL,
        backend_id TEXT,
        storage_provider TEXT NOT NULL DEFAULT 'local',
        uploaded_at TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        is_anonymous INTEGER NOT NULL,
        file_name TEXT NOT NULL,
        file_type TEXT NOT NULL,
        file_size INTEGER NOT NULL,
        cleaned INTEGER NOT NULL DEFAULT 0,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_expires_cleaned ON cleanup_records(expires_at, cleaned)",
    "CREATE INDEX IF NOT EXISTS idx_session_anonymous ON cleanup_records(session_id, is_anonymous)",
)

_UPSERT = """
    INSERT INTO cleanup_records (
        document_id, session_id, backend_id, storage_provider, uploaded_at, expires_at,
        is_anonymous, file_name, file_type, file_size, cleaned
    )
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
    ON CONFLICT(document_id) DO UPDATE SET
        session_id = excluded.session_id,
        backend_id = excluded.backend_id,
        storage_provider = excluded.storage_provider,
        uploaded_at = excluded.uploaded_at,
        expires_at = excluded.expires_at,
        is_anonymous = excluded.is_anonymous,
        file_name = excluded.file_name,
        file_type = excluded.file_type,
        file_size = excluded.file_size,
        cleaned = 0
"""


def _row_to_record(row: sqlite3.Row) -> CleanupRecord:
    return CleanupRecord(
        id=row["id"],
        document_id=row["document_id"],
        session_id=row["session_id"],
        backend_id=row["backend_id"],
        storage_provider=StorageProvider(row["storage_provider"]),
        uploaded_at=from_timestamp(row["uploaded_at"]),
        expires_at=from_timestamp(row["expires_at"]),
        is_anonymous=bool(row["is_anonymous"]),
        file_name=row["file_name"],
        file_type=row["file_type"],
        file_size=row["file_size"],
        cleaned=bool(row["cleaned"]),
        created_at=row["created_at"],
    )


class CleanupLedger:
    """Durable record of uploads, their expiry and their cleanup state.

    Backed by a single SQLite file. Every operation opens its own connection
    and relies on SQLite's locking for writer exclusion.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        logger.info("Cleanup ledger ready at %s", self._db_path)

    @classmethod
    def in_directory(cls, data_dir: str | Path) -> "CleanupLedger":
        return cls(Path(data_dir) / DEFAULT_DB_FILE)

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self._db_path, timeout=30)) as conn:
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    def add_record(self, record: CleanupRecord) -> None:
        if record.expires_at <= record.uploaded_at:
            raise ValueError(
                f"expires_at must be after uploaded_at for document {record.document_id}"
            )
        with self._connect() as conn:
            conn.execute(
                _UPSERT,
                (
                    record.document_id,
                    record.session_id,
                    record.backend_id,
                    StorageProvider(record.storage_provider).value,
                    to_timestamp(record.uploaded_at),
                    to_timestamp(record.expires_at),
                    int(record.is_anonymous),
                    record.file_name,
                    record.file_type,
                    record.file_size,
                ),
            )
        logger.info("Added cleanup record %s", record.document_id)

    def get_record(self, document_id: str) -> CleanupRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM cleanup_records WHERE document_id = ?",
                (document_id,),
            ).fetchone()
        return _row_to_record(row) if row is not None else None

    def get_expired(self, now: datetime | None = None) -> list[CleanupRecord]:
        cutoff = to_timestamp(now or utcnow())
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM cleanup_records
                WHERE expires_at <= ? AND cleaned = 0
                ORDER BY uploaded_at ASC, id ASC
                """,
                (cutoff,),
            ).fetchall()
        logger.info("Found %s expired cleanup records", len(rows))
        return [_row_to_record(row) for row in rows]

    def get_by_session(self, session_id: str) -> list[CleanupRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM cleanup_records
                WHERE session_id = ? AND cleaned = 0
                ORDER BY uploaded_at DESC, id DESC
                """,
                (session_id,),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def mark_cleaned(self, document_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE cleanup_records SET cleaned = 1 WHERE document_id = ?",
                (document_id,),
            )
        if cursor.rowcount > 0:
            logger.info("Marked cleanup record %s as cleaned", document_id)
            return True
        logger.warning("No cleanup record found to mark as cleaned: %s", document_id)
        return False

    def prune_older_than(self, days: int = 30, now: datetime | None = None) -> int:
        cutoff = to_timestamp((now or utcnow()) - timedelta(days=days))
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM cleanup_records WHERE cleaned = 1 AND expires_at < ?",
                (cutoff,),
            )
        deleted = cursor.rowcount
        logger.info("Pruned %s cleaned records older than %s days", deleted, days)
        return deleted

    def stats(self, now: datetime | None = None) -> CleanupStats:
        current = to_timestamp(now or utcnow())
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(cleaned = 1), 0) AS cleaned,
                    COALESCE(SUM(cleaned = 0 AND expires_at <= ?), 0) AS expired
                FROM cleanup_records
                """,
                (current,),
            ).fetchone()
        total, cleaned, expired = row["total"], row["cleaned"], row["expired"]
        pending = total - cleaned
        return CleanupStats(
            total=total,
            cleaned=cleaned,
            pending=pending,
            expired=expired,
            active=pending - expired,
        )


def add_cleanup_record(ledger: CleanupLedger, record: CleanupRecord) -> None:
    ledger.add_record(record)


def get_expired_records(ledger: CleanupLedger) -> list[CleanupRecord]:
    return ledger.get_expired()


def get_records_by_session(ledger: CleanupLedger, session_id: str) -> list[CleanupRecord]:
    return ledger.get_by_session(session_id)


def mark_record_cleaned(ledger: CleanupLedger, document_id: str) -> bool:
    return ledger.mark_cleaned(document_id)


def delete_old_cleaned_records(ledger: CleanupLedger, older_than_days: int = 30) -> int:
    return ledger.prune_older_than(older_than_days)


def get_cleanup_stats(ledger: CleanupLedger) -> CleanupStats:
    return ledger.stats()
