"""Service layer: content store adapter, index, crawler and link queries."""

from .auth import AuthError, AuthService
from .backlinks import BacklinkResolver
from .config import AppConfig, get_config, reload_config
from .content_store import ContentStore, GitHubContentStore
from .database import DatabaseService, init_database
from .errors import (
    ConflictError,
    IndexUnavailableError,
    NotFoundError,
    ParseFailureError,
    PersistenceFailureError,
    RateLimitedError,
    RemoteStoreError,
    UnauthorizedError,
    VaultError,
)
from .graph import GraphBuilder
from .index_store import IndexStore
from .indexer import BatchIndexer, build_entry
from .tree import build_tree

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "DatabaseService",
    "init_database",
    "AuthService",
    "AuthError",
    "ContentStore",
    "GitHubContentStore",
    "IndexStore",
    "BatchIndexer",
    "build_entry",
    "BacklinkResolver",
    "GraphBuilder",
    "build_tree",
    "VaultError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "IndexUnavailableError",
    "RateLimitedError",
    "ParseFailureError",
    "PersistenceFailureError",
    "RemoteStoreError",
]
