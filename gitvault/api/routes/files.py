"""HTTP API routes for reading and writing vault files."""

from __future__ import annotations

import base64
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ...models.files import (
    DeleteFileRequest,
    FileContent,
    HistoryResponse,
    SaveFileRequest,
    SaveFileResponse,
    TreeResponse,
)
from ...services.errors import ParseFailureError, PersistenceFailureError
from ...services.indexer import BatchIndexer
from ...services.notes import is_markdown
from ...services.privacy import is_private_path
from ...services.tree import build_tree
from ..dependencies import VaultContext, get_vault_context

logger = logging.getLogger(__name__)

router = APIRouter()

Vault = Annotated[VaultContext, Depends(get_vault_context)]
PathQuery = Annotated[str, Query(min_length=1, description="File path relative to the vault root")]


@router.get("/api/vault/tree", response_model=TreeResponse)
def get_tree(vault: Vault) -> TreeResponse:
    """Vault hierarchy with private folders and files removed."""
    objects = vault.store.list_tree()
    tree = build_tree(objects, is_private=is_private_path)
    return TreeResponse(tree=tree, rate_limit=vault.store.rate_limit)


@router.get("/api/vault/files", response_model=FileContent)
def read_file(vault: Vault, path: PathQuery) -> FileContent:
    stored = vault.store.read(path)
    try:
        content, encoding = stored.text, "utf-8"
    except UnicodeDecodeError:
        content, encoding = base64.b64encode(stored.content).decode("ascii"), "base64"
    return FileContent(
        path=stored.path,
        content=content,
        sha=stored.content_hash,
        size=stored.size,
        encoding=encoding,
        rate_limit=vault.store.rate_limit,
    )


@router.put("/api/vault/files", response_model=SaveFileResponse)
def save_file(vault: Vault, request: SaveFileRequest) -> SaveFileResponse:
    """
    Create or update a file, then refresh its index entry.

    A stale ``sha`` surfaces as 409 so the client can refetch and retry. An
    index refresh failure never fails the save itself.
    """
    new_sha = vault.store.write(
        request.path,
        request.content,
        request.sha,
        encoding=request.encoding,
        message=request.message,
    )

    indexed = False
    if request.encoding == "utf-8" and is_markdown(request.path):
        try:
            BatchIndexer(vault.store, vault.index).upsert_single_file(
                request.path, None, new_sha, request.content
            )
            indexed = True
        except (ParseFailureError, PersistenceFailureError) as exc:
            logger.warning(
                "Saved file could not be indexed",
                extra={"path": request.path, "reason": exc.message},
            )

    return SaveFileResponse(
        path=request.path,
        sha=new_sha,
        indexed=indexed,
        rate_limit=vault.store.rate_limit,
    )


@router.delete("/api/vault/files", status_code=204)
def delete_file(vault: Vault, request: DeleteFileRequest) -> None:
    vault.store.delete(request.path, request.sha, message=request.message)
    if is_markdown(request.path):
        BatchIndexer(vault.store, vault.index).delete_file_from_index(request.path)


@router.get("/api/vault/history", response_model=HistoryResponse)
def get_history(
    vault: Vault,
    path: PathQuery,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> HistoryResponse:
    history = vault.store.history(path, limit=limit)
    return HistoryResponse(path=path, history=history, count=len(history))


__all__ = ["router"]
