import pytest

from gitvault.models.index import FileToIndex, IndexState
from gitvault.models.vault import RateLimitInfo
from gitvault.services.errors import (
    ConflictError,
    RateLimitedError,
    RemoteStoreError,
)
from gitvault.services.index_store import IndexStore
from gitvault.services.indexer import BatchIndexer, batches, build_entry


@pytest.fixture()
def indexer(content_store, index_store: IndexStore) -> BatchIndexer:
    content_store.put("notes/a.md", "---\ntags: [Alpha]\n---\nLinks to [[b]] #todo")
    content_store.put("notes/b.md", "Back to [[notes/a]] and ![[diagram.png]]")
    content_store.put("c.md", "Standalone")
    content_store.put("_private/secret.md", "[[notes/a]]")
    content_store.put("images/diagram.png", b"\x89PNG")
    return BatchIndexer(content_store, index_store)


def _run_all(indexer: BatchIndexer, started, size: int = 2):
    result = None
    offset = 0
    for batch in batches(started.files, size):
        result = indexer.process_batch(batch, started.total_files, offset)
        offset += len(batch)
    return result


def test_build_entry_is_deterministic() -> None:
    content = "---\ntags: Alpha, beta\nauthor: me\n---\nSee [[X|x]] #Gamma"

    first = build_entry("folder/note.md", "note.md", "sha", content)
    second = build_entry("folder/note.md", "note.md", "sha", content)

    assert first == second
    assert first.file_name == "note"
    assert first.tags == ["alpha", "beta", "gamma"]
    assert first.frontmatter == {"tags": "Alpha, beta", "author": "me"}
    assert [link.target for link in first.wikilinks] == ["X"]
    assert not first.is_private


def test_build_entry_marks_private_content() -> None:
    entry = build_entry("a.md", "a.md", "sha", "---\nprivate: true\n---\nhidden")

    assert entry.is_private


def test_batches_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        list(batches([], 0))


def test_list_candidates_skips_private_and_non_markdown(indexer: BatchIndexer) -> None:
    paths = [candidate.path for candidate in indexer.list_candidates()]

    assert paths == ["c.md", "notes/a.md", "notes/b.md"]


def test_full_crawl_completes_exactly_once(indexer: BatchIndexer, index_store: IndexStore) -> None:
    started = indexer.start_indexing(rebuild=True)

    assert started.status == "started"
    assert started.mode == "rebuild"
    assert started.total_files == 3
    assert index_store.get_status().state == IndexState.INDEXING

    first = indexer.process_batch(started.files[:2], 3, 0)
    assert not first.is_complete
    assert first.status == "in_progress"
    assert index_store.get_status().state == IndexState.INDEXING

    last = indexer.process_batch(started.files[2:], 3, 2)
    assert last.is_complete
    assert last.total_indexed == 3

    status = indexer.get_index_status()
    assert status.state == IndexState.COMPLETED
    assert status.has_index
    assert (status.indexed_files, status.failed_files) == (3, 0)


def test_reindex_is_idempotent(indexer: BatchIndexer, index_store: IndexStore) -> None:
    _run_all(indexer, indexer.start_indexing(rebuild=True))
    before = {e.file_path: e.model_dump(exclude={"indexed_at", "updated_at"}) for e in index_store.list_entries()}

    _run_all(indexer, indexer.start_indexing(rebuild=True))
    after = {e.file_path: e.model_dump(exclude={"indexed_at", "updated_at"}) for e in index_store.list_entries()}

    assert before == after


def test_per_file_failure_is_counted(indexer: BatchIndexer, content_store, index_store: IndexStore) -> None:
    content_store.errors["notes/b.md"] = RemoteStoreError("server error")
    content_store.put("broken.md", "---\ntags: [unclosed\n---\nbody")
    started = indexer.start_indexing(rebuild=True)

    result = indexer.process_batch(started.files, started.total_files, 0)

    assert result.is_complete
    assert (result.indexed, result.failed) == (2, 2)
    status = index_store.get_status()
    assert status.state == IndexState.COMPLETED
    assert status.failed_files == 2
    assert index_store.get_entry("broken.md") is None


def test_undecodable_file_is_counted_as_failed(indexer: BatchIndexer, content_store) -> None:
    content_store.put("latin.md", "café".encode("latin-1"))
    started = indexer.start_indexing(rebuild=True)

    result = indexer.process_batch(started.files, started.total_files, 0)

    assert result.failed == 1


def test_binary_frontmatter_is_counted_as_failed(indexer: BatchIndexer, content_store, index_store: IndexStore) -> None:
    content_store.put("blob.md", "---\nblob: !!binary /w==\n---\nbody")
    started = indexer.start_indexing(rebuild=True)

    result = indexer.process_batch(started.files, started.total_files, 0)

    assert result.is_complete
    assert (result.indexed, result.failed) == (3, 1)
    assert index_store.get_status().state == IndexState.COMPLETED
    assert index_store.get_entry("blob.md") is None


def test_rebuild_without_candidates_completes(content_store, index_store: IndexStore) -> None:
    content_store.put("images/a.png", b"\x89PNG")
    indexer = BatchIndexer(content_store, index_store)

    started = indexer.start_indexing(rebuild=True)

    assert started.status == "completed"
    assert started.files == []
    status = index_store.get_status()
    assert status.state == IndexState.COMPLETED
    assert (status.total_files, status.indexed_files) == (0, 0)
    assert indexer.start_indexing().status == "completed"


def test_rate_limit_aborts_batch_without_progress(indexer: BatchIndexer, content_store, index_store: IndexStore) -> None:
    started = indexer.start_indexing(rebuild=True)
    content_store.errors["notes/a.md"] = RateLimitedError(
        "quota", rate_limit=RateLimitInfo(limit=5000, remaining=0, reset=1700000000)
    )

    with pytest.raises(RateLimitedError) as excinfo:
        indexer.process_batch(started.files, started.total_files, 0)

    assert excinfo.value.detail["reset"] == 1700000000
    status = index_store.get_status()
    assert status.state == IndexState.INDEXING
    assert (status.indexed_files, status.failed_files) == (0, 0)

    del content_store.errors["notes/a.md"]
    resumed = indexer.start_indexing()
    assert resumed.status == "already_indexing"
    assert resumed.progress.total == 3

    result = indexer.process_batch(started.files, started.total_files, 0)
    assert result.is_complete


def test_unexpected_error_marks_crawl_failed(indexer: BatchIndexer, content_store, index_store: IndexStore) -> None:
    started = indexer.start_indexing(rebuild=True)
    content_store.errors["c.md"] = RuntimeError("disk on fire")

    with pytest.raises(RuntimeError):
        indexer.process_batch(started.files, started.total_files, 0)

    status = index_store.get_status()
    assert status.state == IndexState.FAILED
    assert "disk on fire" in status.error_message

    with pytest.raises(ConflictError):
        indexer.start_indexing()
    assert indexer.start_indexing(rebuild=True).status == "started"


def test_batch_without_running_crawl_is_rejected(indexer: BatchIndexer) -> None:
    with pytest.raises(ConflictError):
        indexer.process_batch([FileToIndex(path="c.md", name="c.md", sha="x")], 1, 0)


def test_refresh_detects_new_modified_and_deleted(indexer: BatchIndexer, content_store, index_store: IndexStore) -> None:
    _run_all(indexer, indexer.start_indexing(rebuild=True))

    content_store.put("notes/a.md", "changed [[c]]")
    content_store.put("new.md", "fresh")
    del content_store.files["c.md"]

    started = indexer.start_indexing()

    assert started.mode == "refresh"
    assert (started.new_files, started.modified_files, started.deleted_files, started.unchanged_files) == (1, 1, 1, 1)
    assert sorted(f.path for f in started.files) == ["new.md", "notes/a.md"]
    assert index_store.get_entry("c.md") is None

    _run_all(indexer, started)
    assert index_store.get_entry("notes/a.md").file_sha == content_store.sha("notes/a.md")
    assert indexer.get_index_status().state == IndexState.COMPLETED


def test_refresh_without_changes_completes_immediately(indexer: BatchIndexer, content_store) -> None:
    _run_all(indexer, indexer.start_indexing(rebuild=True))
    content_store.reads.clear()

    started = indexer.start_indexing()

    assert started.status == "completed"
    assert started.files == []
    assert content_store.reads == []
    assert indexer.get_index_status().state == IndexState.COMPLETED


def test_crawl_driver_runs_to_completion(indexer: BatchIndexer) -> None:
    status = indexer.crawl(rebuild=True, batch_size=1)

    assert status.state == IndexState.COMPLETED
    assert status.indexed_files == 3


def test_crawl_driver_can_stop_early(indexer: BatchIndexer) -> None:
    status = indexer.crawl(rebuild=True, batch_size=1, should_continue=lambda result: False)

    assert status.state == IndexState.INDEXING
    assert status.indexed_files == 1

    resumed = indexer.crawl(batch_size=1)
    assert resumed.state == IndexState.COMPLETED
    assert resumed.indexed_files == 3


def test_single_file_upsert_and_delete(indexer: BatchIndexer, index_store: IndexStore) -> None:
    result = indexer.upsert_single_file("d.md", "d.md", "sha-d", "[[a]] [[b]] #tag")

    assert result.status == "indexed"
    assert (result.tags_count, result.wikilinks_count) == (1, 2)
    assert index_store.get_entry("d.md").file_sha == "sha-d"

    assert indexer.delete_file_from_index("d.md").status == "deleted"
    assert index_store.get_entry("d.md") is None
    assert indexer.delete_file_from_index("never.md").status == "deleted"


def test_status_none_before_first_crawl(indexer: BatchIndexer) -> None:
    status = indexer.get_index_status()

    assert status.state == IndexState.NONE
    assert not status.has_index
