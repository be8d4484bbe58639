"""SQLite datastore for fingerprints, media records and scan jobs.

One connection in WAL mode is shared by the batch writer, the coordinator
and the job tracker; a lock serialises access to it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from omnimedia.datastore.base import WriteEntry
from omnimedia.jobs.models import ScanJob
from omnimedia.scanner.models import (
    FileFingerprint,
    FingerprintStatus,
    MediaRecord,
    MediaType,
    fingerprint_key,
)
from omnimedia.shared.errors import (
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    create_datastore_unavailable_error,
)
from omnimedia.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS file_fingerprints (
    fingerprint_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    category_id TEXT NOT NULL,
    path TEXT NOT NULL,
    content_hash TEXT NOT NULL,
    size INTEGER NOT NULL,
    mtime REAL NOT NULL,
    last_scanned REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'ok',

    UNIQUE (user_id, path),
    CHECK (length(path) > 0)
);

CREATE INDEX IF NOT EXISTS idx_fingerprints_user_category
    ON file_fingerprints(user_id, category_id);

CREATE TABLE IF NOT EXISTS media_records (
    fingerprint_id TEXT PRIMARY KEY
        REFERENCES file_fingerprints(fingerprint_id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    category_id TEXT NOT NULL,
    media_type TEXT NOT NULL,
    title TEXT,
    record_data TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_media_records_type ON media_records(media_type);

CREATE TABLE IF NOT EXISTS scan_jobs (
    job_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    status TEXT NOT NULL,
    job_data TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
);
"""

_UPSERT_FINGERPRINT_SQL = """
INSERT INTO file_fingerprints (
    fingerprint_id, user_id, category_id, path, content_hash,
    size, mtime, last_scanned, status
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(fingerprint_id) DO UPDATE SET
    category_id = excluded.category_id,
    content_hash = excluded.content_hash,
    size = excluded.size,
    mtime = excluded.mtime,
    last_scanned = excluded.last_scanned,
    status = excluded.status
"""

_UPSERT_RECORD_SQL = """
INSERT OR REPLACE INTO media_records (
    fingerprint_id, user_id, category_id, media_type, title, record_data, updated_at
) VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
"""

_FINGERPRINT_COLUMNS = (
    "user_id, category_id, path, content_hash, size, mtime, last_scanned, status"
)


def _row_to_fingerprint(row: sqlite3.Row | tuple[Any, ...]) -> FileFingerprint:
    return FileFingerprint(
        user_id=row[0],
        category_id=row[1],
        path=row[2],
        content_hash=row[3],
        size=row[4],
        mtime=row[5],
        last_scanned=row[6],
        status=FingerprintStatus(row[7]),
    )


def _fingerprint_params(fp: FileFingerprint) -> tuple[Any, ...]:
    return (
        fp.fingerprint_id,
        fp.user_id,
        fp.category_id,
        fp.path,
        fp.content_hash,
        fp.size,
        fp.mtime,
        fp.last_scanned,
        fp.status.value,
    )


def _record_params(record: MediaRecord) -> tuple[Any, ...]:
    return (
        record.fingerprint_id,
        record.user_id,
        record.category_id,
        record.media_type.value,
        record.title,
        json.dumps(record.to_dict(), ensure_ascii=False, default=str),
    )


class SQLiteDatastore:
    """SQLite implementation of ScanDatastore and JobStore.

    Example:
        >>> store = SQLiteDatastore("data/omnimedia.db")
        >>> store.list_fingerprints("user-1", "tv")
        []
        >>> store.close()
    """

    def __init__(self, db_path: Path | str) -> None:
        """Open (and create if needed) the database.

        Raises:
            DatastoreUnavailableError: If the database cannot be opened.
        """
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self.conn: sqlite3.Connection | None = None
        self._initialize_db()

    def _initialize_db(self) -> None:
        context = ErrorContext(
            operation="initialize_db",
            additional_data={"db_path": str(self.db_path)},
        )
        try:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                isolation_level=None,
                timeout=5.0,
            )
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
            self.conn.execute("PRAGMA foreign_keys=ON")
            self.conn.executescript(SCHEMA_SQL)
            self.conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
        except (sqlite3.Error, OSError) as e:
            error = create_datastore_unavailable_error(
                f"Failed to open SQLite datastore: {e!s}",
                operation="initialize_db",
                original_error=e,
            )
            log_operation_error(
                logger=logger,
                error=error,
                operation="initialize_db",
                additional_context=context.additional_data,
            )
            raise error from e

        log_operation_success(
            logger=logger,
            operation="initialize_db",
            duration_ms=0,
            context=context.additional_data,
        )

    @contextmanager
    def _connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Serialise access and translate sqlite errors."""
        with self._lock:
            if self.conn is None:
                raise create_datastore_unavailable_error(
                    "SQLite datastore is closed",
                    operation=operation,
                )
            try:
                yield self.conn
            except sqlite3.OperationalError as e:
                # Locked or unreachable database files are worth a retry
                raise create_datastore_unavailable_error(
                    f"SQLite operation failed: {e!s}",
                    operation=operation,
                    original_error=e,
                ) from e
            except sqlite3.Error as e:
                raise InfrastructureError(
                    ErrorCode.DATASTORE_ERROR,
                    f"SQLite operation failed: {e!s}",
                    ErrorContext(operation=operation),
                    e,
                ) from e

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._connection(operation) as conn:
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                # A failed COMMIT leaves the transaction open on the shared connection
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def get_fingerprint(self, user_id: str, path: str) -> FileFingerprint | None:
        with self._connection("get_fingerprint") as conn:
            row = conn.execute(
                f"SELECT {_FINGERPRINT_COLUMNS} FROM file_fingerprints WHERE fingerprint_id = ?",
                (fingerprint_key(user_id, path),),
            ).fetchone()
        return _row_to_fingerprint(row) if row else None

    def list_fingerprints(self, user_id: str, category_id: str) -> list[FileFingerprint]:
        with self._connection("list_fingerprints") as conn:
            rows = conn.execute(
                f"SELECT {_FINGERPRINT_COLUMNS} FROM file_fingerprints "
                "WHERE user_id = ? AND category_id = ?",
                (user_id, category_id),
            ).fetchall()
        return [_row_to_fingerprint(row) for row in rows]

    def upsert_fingerprint(self, fingerprint: FileFingerprint) -> None:
        with self._connection("upsert_fingerprint") as conn:
            conn.execute(_UPSERT_FINGERPRINT_SQL, _fingerprint_params(fingerprint))

    def upsert_media_record(self, record: MediaRecord) -> None:
        with self._connection("upsert_media_record") as conn:
            conn.execute(_UPSERT_RECORD_SQL, _record_params(record))

    def get_media_record(self, fingerprint_id: str) -> MediaRecord | None:
        with self._connection("get_media_record") as conn:
            row = conn.execute(
                "SELECT record_data FROM media_records WHERE fingerprint_id = ?",
                (fingerprint_id,),
            ).fetchone()
        if row is None:
            return None
        data = json.loads(row[0])
        data["media_type"] = MediaType(data["media_type"])
        return MediaRecord(**data)

    def batch_write(self, entries: Sequence[WriteEntry]) -> None:
        if not entries:
            return
        with self._transaction("batch_write") as conn:
            conn.executemany(
                _UPSERT_FINGERPRINT_SQL,
                [_fingerprint_params(entry.fingerprint) for entry in entries],
            )
            conn.executemany(
                _UPSERT_RECORD_SQL,
                [_record_params(entry.record) for entry in entries if entry.record is not None],
            )

    def delete_fingerprints(self, fingerprint_ids: Sequence[str]) -> int:
        if not fingerprint_ids:
            return 0
        params = [(fingerprint_id,) for fingerprint_id in fingerprint_ids]
        with self._transaction("delete_fingerprints") as conn:
            conn.executemany("DELETE FROM media_records WHERE fingerprint_id = ?", params)
            before = conn.total_changes
            conn.executemany("DELETE FROM file_fingerprints WHERE fingerprint_id = ?", params)
            return conn.total_changes - before

    def save_job(self, job: ScanJob) -> None:
        with self._connection("save_job") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO scan_jobs (job_id, user_id, status, job_data, updated_at) "
                "VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)",
                (job.job_id, job.user_id, job.status.value, json.dumps(job.to_dict())),
            )

    def get_job(self, job_id: str) -> ScanJob | None:
        with self._connection("get_job") as conn:
            row = conn.execute(
                "SELECT job_data FROM scan_jobs WHERE job_id = ?",
                (job_id,),
            ).fetchone()
        return ScanJob.from_dict(json.loads(row[0])) if row else None

    def close(self) -> None:
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                logger.debug("Closed SQLite datastore: %s", self.db_path)

    def __enter__(self) -> SQLiteDatastore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
