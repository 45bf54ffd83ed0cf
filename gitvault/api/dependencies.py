"""Request-scoped collaborators for the vault routes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Iterator

from fastapi import Depends

from ..models.vault import VaultKey
from ..services.config import get_config
from ..services.content_store import ContentStore, GitHubContentStore
from ..services.database import DatabaseService
from ..services.index_store import IndexStore
from .middleware import AuthContext, get_auth_context


@dataclass
class VaultContext:
    """Everything a route needs to act on the caller's vault."""

    vault_key: VaultKey
    store: ContentStore
    index: IndexStore


def get_vault_context(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> Iterator[VaultContext]:
    config = get_config()
    store = GitHubContentStore.from_config(config, auth.github_token)
    vault_key = VaultKey(
        user_id=auth.user_id,
        owner=store.owner,
        repo=store.repo,
        branch=store.branch,
    )
    index = IndexStore(vault_key, DatabaseService(config.database_path))
    try:
        yield VaultContext(vault_key=vault_key, store=store, index=index)
    finally:
        store.close()


__all__ = ["VaultContext", "get_vault_context"]
