"""Batch crawler that builds the vault index from the remote content store."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, List, Optional, Sequence

from ..models.index import (
    BatchResult,
    FileIndexResult,
    FileToIndex,
    IndexingProgress,
    IndexState,
    IndexStatus,
    StartIndexingResult,
    VaultIndexEntry,
)
from .content_store import ContentStore
from .errors import (
    ConflictError,
    ParseFailureError,
    PersistenceFailureError,
    RateLimitedError,
    UnauthorizedError,
    VaultError,
)
from .index_store import IndexStore
from .notes import is_markdown, note_name, parse_frontmatter
from .privacy import check_privacy, filter_private_paths
from .wikilinks import extract, frontmatter_tags, merge_tags

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10

# Errors that stop the batch untouched so the caller can back off or re-authenticate.
ABORTING_ERRORS = (RateLimitedError, UnauthorizedError)


def batches(files: Sequence[FileToIndex], size: int = DEFAULT_BATCH_SIZE) -> Iterator[List[FileToIndex]]:
    """Split the candidate list into consecutive batches of at most ``size`` files."""
    if size < 1:
        raise ValueError("Batch size must be positive")
    for start in range(0, len(files), size):
        yield list(files[start : start + size])


def build_entry(path: str, name: str, sha: str, content: str) -> VaultIndexEntry:
    """
    Parse one note into its index record.

    Pure and deterministic: the same inputs always produce the same entry.
    Raises ParseFailureError for malformed frontmatter.
    """
    privacy = check_privacy(path, content)
    metadata, _ = parse_frontmatter(content)
    extracted = extract(content)
    return VaultIndexEntry(
        file_path=path,
        file_name=note_name(name or path),
        file_sha=sha,
        tags=merge_tags(frontmatter_tags(metadata.tags), extracted.inline_tags),
        wikilinks=extracted.wikilinks,
        frontmatter=metadata.to_dict(),
        is_private=privacy.is_private,
    )


class BatchIndexer:
    """Drive full or incremental crawls of one vault in bounded batches."""

    def __init__(self, store: ContentStore, index: IndexStore) -> None:
        self.store = store
        self.index = index

    # ------------------------------------------------------------------
    # Crawl start
    # ------------------------------------------------------------------

    def list_candidates(self) -> List[FileToIndex]:
        """Public Markdown files at the current branch head."""
        objects = filter_private_paths(self.store.list_tree())
        return [
            FileToIndex(path=obj.path, name=obj.name, sha=obj.content_hash)
            for obj in objects
            if obj.kind == "file" and obj.content_hash and is_markdown(obj.path)
        ]

    def start_indexing(self, rebuild: bool = False) -> StartIndexingResult:
        """
        Begin a crawl and hand the files to process back to the caller.

        ``rebuild`` clears the index and reprocesses every file. Otherwise only
        new and modified files are returned, and entries for files that no
        longer exist are dropped.
        """
        current = self.index.get_status()
        state = current.state if current else IndexState.NONE

        if state == IndexState.INDEXING and not rebuild:
            return self._resume(current)
        if state == IndexState.FAILED and not rebuild:
            raise ConflictError(
                "Previous indexing failed; a rebuild is required",
                detail={"error_message": current.error_message if current else None},
            )

        candidates = self.list_candidates()
        self.index.mark_pending()

        if rebuild:
            self.index.delete_all_entries()
            self.index.start_indexing(len(candidates))
            if not candidates:
                self.index.complete_indexing(0, 0)
            logger.info(
                "Index rebuild started",
                extra={"vault": self.index.vault_key.model_dump(), "total_files": len(candidates)},
            )
            return StartIndexingResult(
                status="started" if candidates else "completed",
                mode="rebuild",
                total_files=len(candidates),
                new_files=len(candidates),
                files=candidates,
            )

        existing = self.index.get_shas()
        current_paths = {candidate.path for candidate in candidates}
        new_files = [c for c in candidates if c.path not in existing]
        modified_files = [
            c for c in candidates if c.path in existing and existing[c.path] != c.sha
        ]
        unchanged = len(candidates) - len(new_files) - len(modified_files)
        deleted = [path for path in existing if path not in current_paths]
        self.index.delete_entries(deleted)

        to_process = new_files + modified_files
        self.index.start_indexing(len(to_process))
        if not to_process:
            self.index.complete_indexing(0, 0)

        logger.info(
            "Index refresh started",
            extra={
                "vault": self.index.vault_key.model_dump(),
                "new_files": len(new_files),
                "modified_files": len(modified_files),
                "deleted_files": len(deleted),
                "unchanged_files": unchanged,
            },
        )
        return StartIndexingResult(
            status="started" if to_process else "completed",
            mode="refresh",
            total_files=len(candidates),
            new_files=len(new_files),
            modified_files=len(modified_files),
            deleted_files=len(deleted),
            unchanged_files=unchanged,
            files=to_process,
        )

    def _resume(self, status: IndexStatus) -> StartIndexingResult:
        """Report the running crawl along with the files it has not indexed yet."""
        existing = self.index.get_shas()
        remaining = [
            candidate
            for candidate in self.list_candidates()
            if existing.get(candidate.path) != candidate.sha
        ]
        return StartIndexingResult(
            status="already_indexing",
            total_files=status.total_files,
            files=remaining,
            progress=IndexingProgress(indexed=status.indexed_files, total=status.total_files),
        )

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def process_batch(
        self, files: Sequence[FileToIndex], total_files: int, current_index: int = 0
    ) -> BatchResult:
        """
        Index one batch and advance the persisted counters.

        A file that cannot be read or parsed is counted as failed and the batch
        continues. Rate limiting and credential errors abort the batch before
        any counter moves, so the same batch can be resubmitted later. Any
        other escaping error marks the crawl failed.
        """
        status = self.index.get_status()
        if status is None or status.state != IndexState.INDEXING:
            raise ConflictError(
                "No indexing in progress for this vault",
                detail={"state": status.state.value if status else IndexState.NONE.value},
            )
        if total_files != status.total_files:
            logger.debug(
                "Batch total differs from persisted total",
                extra={"requested_total": total_files, "persisted_total": status.total_files},
            )

        start_time = time.time()
        try:
            indexed, failed = self._index_files(files)
            status = self.index.add_progress(indexed, failed)
            processed = status.indexed_files + status.failed_files
            is_complete = processed >= status.total_files
            if is_complete:
                status = self.index.complete_indexing(status.indexed_files, status.failed_files)
        except ABORTING_ERRORS:
            raise
        except Exception as exc:
            logger.exception("Batch processing failed: %s", exc)
            self._fail(str(exc))
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Batch indexed",
            extra={
                "vault": self.index.vault_key.model_dump(),
                "current_index": current_index,
                "indexed": indexed,
                "failed": failed,
                "is_complete": is_complete,
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return BatchResult(
            status="completed" if is_complete else "in_progress",
            indexed=indexed,
            failed=failed,
            total_indexed=status.indexed_files,
            total_files=status.total_files,
            is_complete=is_complete,
        )

    def _index_files(self, files: Sequence[FileToIndex]) -> tuple[int, int]:
        indexed = 0
        failed = 0
        for file in files:
            try:
                stored = self.store.read(file.path)
                try:
                    content = stored.text
                except UnicodeDecodeError as exc:
                    raise ParseFailureError(f"{file.path} is not valid UTF-8") from exc
                entry = build_entry(file.path, file.name, stored.content_hash, content)
                self.index.upsert_entry(entry)
                indexed += 1
            except (*ABORTING_ERRORS, PersistenceFailureError):
                raise
            except VaultError as exc:
                failed += 1
                logger.warning(
                    "Failed to index file",
                    extra={"path": file.path, "error": exc.error, "reason": exc.message},
                )
        return indexed, failed

    def _fail(self, message: str) -> None:
        try:
            self.index.fail_indexing(message)
        except PersistenceFailureError:
            logger.error("Could not record indexing failure", extra={"error_message": message})

    # ------------------------------------------------------------------
    # Client-side driver
    # ------------------------------------------------------------------

    def crawl(
        self,
        rebuild: bool = False,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        should_continue: Optional[Callable[[BatchResult], bool]] = None,
    ) -> IndexStatus:
        """
        Run a crawl to completion the way a client would: start, then submit
        batches until done. ``should_continue`` returning False stops issuing
        batches, leaving the crawl resumable.
        """
        started = self.start_indexing(rebuild=rebuild)
        total = started.progress.total if started.progress else len(started.files)
        offset = started.progress.indexed if started.progress else 0
        for batch in batches(started.files, batch_size):
            result = self.process_batch(batch, total, offset)
            offset += len(batch)
            if result.is_complete:
                break
            if should_continue is not None and not should_continue(result):
                break
        return self.get_index_status()

    # ------------------------------------------------------------------
    # Single-file maintenance
    # ------------------------------------------------------------------

    def upsert_single_file(self, path: str, name: Optional[str], sha: str, content: str) -> FileIndexResult:
        """Re-index one file after a save, without a crawl."""
        entry = build_entry(path, name or path, sha, content)
        self.index.upsert_entry(entry)
        logger.info(
            "Single file indexed",
            extra={"path": path, "tags_count": len(entry.tags), "wikilinks_count": len(entry.wikilinks)},
        )
        return FileIndexResult(
            status="indexed",
            path=path,
            tags_count=len(entry.tags),
            wikilinks_count=len(entry.wikilinks),
            is_private=entry.is_private,
        )

    def delete_file_from_index(self, path: str) -> FileIndexResult:
        removed = self.index.delete_entry(path)
        if not removed:
            logger.info("Deleted file was not indexed", extra={"path": path})
        return FileIndexResult(status="deleted", path=path)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_index_status(self) -> IndexStatus:
        status = self.index.get_status()
        if status is None:
            return IndexStatus(state=IndexState.NONE)
        if status.state == IndexState.COMPLETED:
            entry_count = self.index.count_entries()
            return status.model_copy(update={"has_index": entry_count > 0})
        return status


__all__ = ["BatchIndexer", "build_entry", "batches", "DEFAULT_BATCH_SIZE"]
