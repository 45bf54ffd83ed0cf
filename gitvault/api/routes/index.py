"""HTTP API routes for the vault index crawl."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.index import (
    BatchRequest,
    BatchResult,
    FileIndexRequest,
    FileIndexResult,
    IndexStatus,
    StartIndexingRequest,
    StartIndexingResult,
)
from ...services.indexer import BatchIndexer
from ..dependencies import VaultContext, get_vault_context

router = APIRouter()

Vault = Annotated[VaultContext, Depends(get_vault_context)]


def _indexer(vault: VaultContext) -> BatchIndexer:
    return BatchIndexer(vault.store, vault.index)


@router.post("/api/vault/index", response_model=StartIndexingResult)
def start_indexing(vault: Vault, request: Optional[StartIndexingRequest] = None) -> StartIndexingResult:
    """Start (or resume) a crawl and return the files the client should submit in batches."""
    rebuild = request.rebuild if request else False
    return _indexer(vault).start_indexing(rebuild=rebuild)


@router.get("/api/vault/index/status", response_model=IndexStatus)
def get_index_status(vault: Vault) -> IndexStatus:
    return _indexer(vault).get_index_status()


@router.post("/api/vault/index/batch", response_model=BatchResult)
def process_batch(vault: Vault, request: BatchRequest) -> BatchResult:
    return _indexer(vault).process_batch(
        request.files, request.total_files, request.current_index
    )


@router.post("/api/vault/index/file", response_model=FileIndexResult)
def update_file_index(vault: Vault, request: FileIndexRequest) -> FileIndexResult:
    """Refresh or drop one entry after an individual save or delete."""
    indexer = _indexer(vault)
    if request.deleted:
        return indexer.delete_file_from_index(request.path)
    if request.content is None or not request.sha:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "validation_error",
                "message": "content and sha are required unless deleted is true",
            },
        )
    return indexer.upsert_single_file(request.path, request.name, request.sha, request.content)


__all__ = ["router"]
