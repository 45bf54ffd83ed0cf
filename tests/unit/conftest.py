from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

from gitvault.models.vault import CommitInfo, ContentObject, RateLimitInfo, StoredContent, VaultKey
from gitvault.services.database import DatabaseService
from gitvault.services.errors import ConflictError, NotFoundError
from gitvault.services.index_store import IndexStore


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


class InMemoryContentStore:
    """ContentStore double holding files in a dict; ``errors`` forces read failures."""

    def __init__(self, files: Optional[Dict[str, Union[str, bytes]]] = None) -> None:
        self.files: Dict[str, bytes] = {}
        self.errors: Dict[str, Exception] = {}
        self.reads: List[str] = []
        self.rate_limit: Optional[RateLimitInfo] = RateLimitInfo(limit=5000, remaining=4999, reset=0, used=1)
        for path, content in (files or {}).items():
            self.put(path, content)

    def put(self, path: str, content: Union[str, bytes]) -> str:
        raw = content.encode("utf-8") if isinstance(content, str) else content
        self.files[path] = raw
        return blob_sha(raw)

    def sha(self, path: str) -> str:
        return blob_sha(self.files[path])

    def list_tree(self) -> List[ContentObject]:
        objects: List[ContentObject] = []
        dirs = set()
        for path, raw in sorted(self.files.items()):
            parts = path.split("/")
            for depth in range(1, len(parts)):
                dirs.add("/".join(parts[:depth]))
            objects.append(
                ContentObject(path=path, name=parts[-1], kind="file", content_hash=blob_sha(raw), size=len(raw))
            )
        objects.extend(
            ContentObject(path=path, name=path.rsplit("/", 1)[-1], kind="dir") for path in sorted(dirs)
        )
        return objects

    def read(self, path: str) -> StoredContent:
        self.reads.append(path)
        if path in self.errors:
            raise self.errors[path]
        if path not in self.files:
            raise NotFoundError(f"Not found: {path}")
        raw = self.files[path]
        return StoredContent(path=path, content=raw, content_hash=blob_sha(raw), size=len(raw))

    def write(self, path, content, expected_hash=None, *, encoding="utf-8", message=None) -> str:
        current = self.files.get(path)
        if current is not None and expected_hash != blob_sha(current):
            raise ConflictError(f"Stale hash for {path}")
        if current is None and expected_hash:
            raise ConflictError(f"{path} does not exist")
        return self.put(path, content)

    def delete(self, path, expected_hash, *, message=None) -> None:
        if path not in self.files:
            raise NotFoundError(f"Not found: {path}")
        if blob_sha(self.files[path]) != expected_hash:
            raise ConflictError(f"Stale hash for {path}")
        del self.files[path]

    def history(self, path: str, limit: int = 20) -> List[CommitInfo]:
        return [CommitInfo(sha="abc123", message=f"Update {path}", author="Tester")][:limit]


@pytest.fixture()
def db_service(tmp_path: Path) -> DatabaseService:
    service = DatabaseService(tmp_path / "index.db")
    service.initialize()
    return service


@pytest.fixture()
def vault_key() -> VaultKey:
    return VaultKey(user_id="local-dev", owner="alice", repo="notes", branch="main")


@pytest.fixture()
def index_store(vault_key: VaultKey, db_service: DatabaseService) -> IndexStore:
    return IndexStore(vault_key, db_service)


@pytest.fixture()
def content_store() -> InMemoryContentStore:
    return InMemoryContentStore()
