"""SQLite-backed storage for per-vault index entries and crawl status."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
import json
import logging
import sqlite3
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..models.index import IndexState, IndexStatus, VaultIndexEntry, WikiLink
from ..models.vault import VaultKey
from .database import DatabaseService
from .errors import PersistenceFailureError

logger = logging.getLogger(__name__)

KEY_CLAUSE = "user_id = ? AND owner = ? AND repo = ? AND branch = ?"
STATUS_COLUMNS = {
    "status",
    "total_files",
    "indexed_files",
    "failed_files",
    "error_message",
    "started_at",
    "completed_at",
}


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False)


class IndexStore:
    """Keyed persistence for one vault's index entries and IndexStatus."""

    def __init__(self, vault_key: VaultKey, db_service: DatabaseService | None = None) -> None:
        self.vault_key = vault_key
        self.db_service = db_service or DatabaseService()

    @property
    def _key(self) -> tuple:
        key = self.vault_key
        return (key.user_id, key.owner, key.repo, key.branch)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self.db_service.connect()
        except sqlite3.Error as exc:
            raise PersistenceFailureError(f"Index storage unavailable: {exc}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error(
                "Index storage operation failed",
                extra={"vault": self._key, "error": str(exc)},
            )
            raise PersistenceFailureError(f"Index storage error: {exc}") from exc
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def upsert_entry(self, entry: VaultIndexEntry) -> VaultIndexEntry:
        """Insert or fully replace the record for ``entry.file_path``."""
        now_iso = _utcnow_iso()
        with self._connection() as conn:
            conn.execute(
                f"""
                INSERT INTO vault_index (
                    user_id, owner, repo, branch, file_path,
                    file_name, file_sha, tags, wikilinks, frontmatter,
                    is_private, indexed_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, owner, repo, branch, file_path) DO UPDATE SET
                    file_name = excluded.file_name,
                    file_sha = excluded.file_sha,
                    tags = excluded.tags,
                    wikilinks = excluded.wikilinks,
                    frontmatter = excluded.frontmatter,
                    is_private = excluded.is_private,
                    updated_at = excluded.updated_at
                """,
                (
                    *self._key,
                    entry.file_path,
                    entry.file_name,
                    entry.file_sha,
                    _dumps(entry.tags),
                    _dumps([link.model_dump() for link in entry.wikilinks]),
                    _dumps(entry.frontmatter),
                    1 if entry.is_private else 0,
                    now_iso,
                    now_iso,
                ),
            )
            row = conn.execute(
                f"SELECT * FROM vault_index WHERE {KEY_CLAUSE} AND file_path = ?",
                (*self._key, entry.file_path),
            ).fetchone()
        return self._row_to_entry(row)

    def get_entry(self, file_path: str) -> Optional[VaultIndexEntry]:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT * FROM vault_index WHERE {KEY_CLAUSE} AND file_path = ?",
                (*self._key, file_path),
            ).fetchone()
        return self._row_to_entry(row) if row else None

    def delete_entry(self, file_path: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM vault_index WHERE {KEY_CLAUSE} AND file_path = ?",
                (*self._key, file_path),
            )
        return cursor.rowcount > 0

    def delete_entries(self, file_paths: Iterable[str]) -> int:
        paths = list(file_paths)
        if not paths:
            return 0
        with self._connection() as conn:
            cursor = conn.executemany(
                f"DELETE FROM vault_index WHERE {KEY_CLAUSE} AND file_path = ?",
                [(*self._key, path) for path in paths],
            )
        return cursor.rowcount

    def delete_all_entries(self) -> None:
        with self._connection() as conn:
            conn.execute(f"DELETE FROM vault_index WHERE {KEY_CLAUSE}", self._key)

    def list_entries(self, public_only: bool = False) -> List[VaultIndexEntry]:
        """All entries of the vault ordered by path; ``public_only`` drops private ones."""
        query = f"SELECT * FROM vault_index WHERE {KEY_CLAUSE}"
        if public_only:
            query += " AND is_private = 0"
        query += " ORDER BY file_path"
        with self._connection() as conn:
            rows = conn.execute(query, self._key).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_shas(self) -> Dict[str, str]:
        """Map of indexed file path to the blob sha it was indexed at."""
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT file_path, file_sha FROM vault_index WHERE {KEY_CLAUSE}",
                self._key,
            ).fetchall()
        return {row["file_path"]: row["file_sha"] for row in rows}

    def count_entries(self) -> int:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) AS count FROM vault_index WHERE {KEY_CLAUSE}",
                self._key,
            ).fetchone()
        return int(row["count"])

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> Optional[IndexStatus]:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT * FROM vault_index_status WHERE {KEY_CLAUSE}", self._key
            ).fetchone()
        if row is None:
            return None
        return IndexStatus(
            state=IndexState(row["status"]),
            total_files=row["total_files"],
            indexed_files=row["indexed_files"],
            failed_files=row["failed_files"],
            started_at=_parse_timestamp(row["started_at"]),
            completed_at=_parse_timestamp(row["completed_at"]),
            error_message=row["error_message"],
        )

    def set_status(self, **fields: Any) -> IndexStatus:
        """Upsert the status row, changing only the given columns."""
        unknown = set(fields) - STATUS_COLUMNS
        if unknown:
            raise ValueError(f"Unknown status fields: {sorted(unknown)}")
        if isinstance(fields.get("status"), IndexState):
            fields["status"] = fields["status"].value

        now_iso = _utcnow_iso()
        columns = list(fields)
        insert_columns = ["user_id", "owner", "repo", "branch", *columns, "created_at", "updated_at"]
        placeholders = ", ".join("?" for _ in insert_columns)
        updates = ", ".join(f"{column} = excluded.{column}" for column in [*columns, "updated_at"])
        with self._connection() as conn:
            conn.execute(
                f"""
                INSERT INTO vault_index_status ({", ".join(insert_columns)})
                VALUES ({placeholders})
                ON CONFLICT(user_id, owner, repo, branch) DO UPDATE SET {updates}
                """,
                (*self._key, *fields.values(), now_iso, now_iso),
            )
        status = self.get_status()
        if status is None:
            raise PersistenceFailureError("Index status was not persisted")
        return status

    def mark_pending(self) -> IndexStatus:
        return self.set_status(status=IndexState.PENDING, error_message=None, completed_at=None)

    def start_indexing(self, total_files: int) -> IndexStatus:
        return self.set_status(
            status=IndexState.INDEXING,
            total_files=total_files,
            indexed_files=0,
            failed_files=0,
            error_message=None,
            started_at=_utcnow_iso(),
            completed_at=None,
        )

    def add_progress(self, indexed: int, failed: int) -> IndexStatus:
        """
        Add batch counts to the persisted totals.

        Read-then-write without compare-and-swap: two batches racing on the
        same vault can lose an update.
        """
        current = self.get_status()
        indexed_total = (current.indexed_files if current else 0) + indexed
        failed_total = (current.failed_files if current else 0) + failed
        return self.set_status(indexed_files=indexed_total, failed_files=failed_total)

    def complete_indexing(self, indexed_files: int, failed_files: int) -> IndexStatus:
        return self.set_status(
            status=IndexState.COMPLETED,
            indexed_files=indexed_files,
            failed_files=failed_files,
            completed_at=_utcnow_iso(),
        )

    def fail_indexing(self, error_message: str) -> IndexStatus:
        return self.set_status(
            status=IndexState.FAILED,
            error_message=error_message,
            completed_at=_utcnow_iso(),
        )

    def _row_to_entry(self, row: sqlite3.Row) -> VaultIndexEntry:
        return VaultIndexEntry(
            file_path=row["file_path"],
            file_name=row["file_name"],
            file_sha=row["file_sha"],
            tags=json.loads(row["tags"]),
            wikilinks=[WikiLink(**link) for link in json.loads(row["wikilinks"])],
            frontmatter=json.loads(row["frontmatter"]),
            is_private=bool(row["is_private"]),
            indexed_at=_parse_timestamp(row["indexed_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


__all__ = ["IndexStore"]
