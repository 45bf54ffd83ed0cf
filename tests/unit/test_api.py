from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from gitvault.api.dependencies import VaultContext, get_vault_context
from gitvault.api.main import app
from gitvault.models.vault import RateLimitInfo
from gitvault.services import config as config_module
from gitvault.services.database import DatabaseService, init_database
from gitvault.services.errors import RateLimitedError
from gitvault.services.index_store import IndexStore

client = TestClient(app)


@pytest.fixture()
def vault(content_store, index_store: IndexStore, vault_key):
    content_store.put("notes/a.md", "Links to [[b]] #todo")
    content_store.put("notes/b.md", "Back to [[a]]")
    content_store.put("private/secret.md", "[[a]]")
    context = VaultContext(vault_key=vault_key, store=content_store, index=index_store)
    app.dependency_overrides[get_vault_context] = lambda: context
    yield context
    app.dependency_overrides = {}


def _crawl() -> None:
    started = client.post("/api/vault/index", json={"rebuild": True}).json()
    client.post(
        "/api/vault/index/batch",
        json={"files": started["files"], "total_files": started["total_files"], "current_index": 0},
    )


def test_health() -> None:
    assert client.get("/health").json() == {"status": "healthy"}


def test_index_flow(vault: VaultContext) -> None:
    status = client.get("/api/vault/index/status").json()
    assert status["state"] == "none"

    started = client.post("/api/vault/index", json={"rebuild": True})
    assert started.status_code == 200
    body = started.json()
    assert body["status"] == "started"
    assert [f["path"] for f in body["files"]] == ["notes/a.md", "notes/b.md"]

    batch = client.post(
        "/api/vault/index/batch",
        json={"files": body["files"], "total_files": body["total_files"], "current_index": 0},
    )
    assert batch.status_code == 200
    assert batch.json()["is_complete"] is True

    status = client.get("/api/vault/index/status").json()
    assert status["state"] == "completed"
    assert status["has_index"] is True


def test_start_without_body_refreshes(vault: VaultContext) -> None:
    _crawl()

    response = client.post("/api/vault/index")

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["mode"] == "refresh"


def test_batch_requires_files(vault: VaultContext) -> None:
    response = client.post("/api/vault/index/batch", json={"files": [], "total_files": 0})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_batch_without_crawl_is_conflict(vault: VaultContext) -> None:
    response = client.post(
        "/api/vault/index/batch",
        json={"files": [{"path": "notes/a.md", "name": "a.md", "sha": "x"}], "total_files": 1},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "version_conflict"


def test_batch_rate_limited(vault: VaultContext) -> None:
    started = client.post("/api/vault/index", json={"rebuild": True}).json()
    vault.store.errors["notes/a.md"] = RateLimitedError(
        "quota", rate_limit=RateLimitInfo(limit=5000, remaining=0, reset=1700000000)
    )

    response = client.post(
        "/api/vault/index/batch",
        json={"files": started["files"], "total_files": started["total_files"]},
    )

    assert response.status_code == 429
    assert response.json()["error"] == "rate_limited"
    assert response.json()["detail"]["remaining"] == 0
    assert response.headers["X-RateLimit-Reset"] == "1700000000"


def test_backlinks_and_graph_need_index(vault: VaultContext) -> None:
    backlinks = client.get("/api/vault/backlinks", params={"path": "notes/b"}).json()
    graph = client.get("/api/vault/graph").json()

    assert backlinks["needs_index"] is True
    assert backlinks["backlinks"] == []
    assert graph["needs_index"] is True
    assert graph["nodes"] == []


def test_backlinks_and_graph_after_crawl(vault: VaultContext) -> None:
    _crawl()

    backlinks = client.get("/api/vault/backlinks", params={"path": "notes/b"}).json()
    graph = client.get("/api/vault/graph", params={"includeOrphans": "true"}).json()

    assert backlinks["backlinks"] == [{"path": "notes/a.md", "name": "a", "route": "/note/notes/a"}]
    assert {node["id"] for node in graph["nodes"]} == {"notes/a", "notes/b"}
    assert {node["route"] for node in graph["nodes"]} == {"/note/notes/a", "/note/notes/b"}
    assert len(graph["links"]) == 2
    assert graph["orphan_notes"] == 0


def test_file_index_endpoint(vault: VaultContext) -> None:
    indexed = client.post(
        "/api/vault/index/file",
        json={"path": "c.md", "name": "c.md", "sha": "s", "content": "[[a]] #x"},
    )
    assert indexed.json() == {
        "status": "indexed",
        "path": "c.md",
        "tags_count": 1,
        "wikilinks_count": 1,
        "is_private": False,
    }
    assert vault.index.get_entry("c.md") is not None

    deleted = client.post("/api/vault/index/file", json={"path": "c.md", "deleted": True})
    assert deleted.json()["status"] == "deleted"
    assert vault.index.get_entry("c.md") is None

    missing = client.post("/api/vault/index/file", json={"path": "c.md", "sha": "s"})
    assert missing.status_code == 400


def test_tree_hides_private_paths(vault: VaultContext) -> None:
    body = client.get("/api/vault/tree").json()

    assert [node["path"] for node in body["tree"]] == ["notes"]
    assert body["rate_limit"]["remaining"] == 4999


def test_read_save_delete_round_trip(vault: VaultContext) -> None:
    read = client.get("/api/vault/files", params={"path": "notes/a.md"})
    assert read.status_code == 200
    sha = read.json()["sha"]

    saved = client.put(
        "/api/vault/files",
        json={"path": "notes/a.md", "content": "Now links [[c]]", "sha": sha},
    )
    assert saved.status_code == 200
    assert saved.json()["indexed"] is True
    entry = vault.index.get_entry("notes/a.md")
    assert [link.target for link in entry.wikilinks] == ["c"]
    assert entry.file_sha == saved.json()["sha"]

    stale = client.put(
        "/api/vault/files",
        json={"path": "notes/a.md", "content": "lost update", "sha": sha},
    )
    assert stale.status_code == 409
    assert vault.store.files["notes/a.md"] == b"Now links [[c]]"

    deleted = client.request(
        "DELETE", "/api/vault/files", json={"path": "notes/a.md", "sha": saved.json()["sha"]}
    )
    assert deleted.status_code == 204
    assert vault.index.get_entry("notes/a.md") is None


def test_save_succeeds_when_index_is_unavailable(vault: VaultContext, vault_key, tmp_path: Path) -> None:
    broken = VaultContext(
        vault_key=vault_key,
        store=vault.store,
        index=IndexStore(vault_key, DatabaseService(tmp_path / "empty.db")),
    )
    app.dependency_overrides[get_vault_context] = lambda: broken
    sha = vault.store.sha("notes/a.md")

    saved = client.put(
        "/api/vault/files",
        json={"path": "notes/a.md", "content": "Saved without index", "sha": sha},
    )

    assert saved.status_code == 200
    assert saved.json()["indexed"] is False
    assert vault.store.files["notes/a.md"] == b"Saved without index"


def test_read_missing_file(vault: VaultContext) -> None:
    response = client.get("/api/vault/files", params={"path": "nope.md"})

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_save_rejects_traversal(vault: VaultContext) -> None:
    response = client.put("/api/vault/files", json={"path": "../etc/passwd", "content": "x"})

    assert response.status_code == 400


def test_history(vault: VaultContext) -> None:
    body = client.get("/api/vault/history", params={"path": "notes/a.md"}).json()

    assert body["count"] == 1
    assert body["history"][0]["sha"] == "abc123"


@pytest.fixture()
def configured_env(monkeypatch, tmp_path: Path):
    db_path = tmp_path / "index.db"
    monkeypatch.setenv("INDEX_DB_PATH", str(db_path))
    monkeypatch.setenv("ENABLE_LOCAL_MODE", "true")
    monkeypatch.setenv("LOCAL_DEV_TOKEN", "local-dev-token")
    monkeypatch.setenv("GITHUB_REPO_OWNER", "alice")
    monkeypatch.setenv("GITHUB_REPO_NAME", "notes")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
    config_module.reload_config()
    init_database(db_path)
    yield
    monkeypatch.undo()
    config_module.reload_config()


def test_missing_authorization_is_rejected(configured_env) -> None:
    response = client.get("/api/vault/index/status")

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


def test_invalid_token_is_rejected(configured_env) -> None:
    response = client.get(
        "/api/vault/index/status",
        headers={"Authorization": "Bearer nope", "X-GitHub-Token": "gh"},
    )

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"


def test_missing_github_credential_is_rejected(configured_env) -> None:
    response = client.get(
        "/api/vault/index/status", headers={"Authorization": "Bearer local-dev-token"}
    )

    assert response.status_code == 401
    assert "GitHub credential" in response.json()["message"]


def test_authorized_status_request(configured_env) -> None:
    response = client.get(
        "/api/vault/index/status",
        headers={"Authorization": "Bearer local-dev-token", "X-GitHub-Token": "gh"},
    )

    assert response.status_code == 200
    assert response.json()["state"] == "none"
