"""Pydantic models for data validation and serialization."""

from .auth import JWTPayload
from .files import (
    DeleteFileRequest,
    FileContent,
    HistoryResponse,
    SaveFileRequest,
    SaveFileResponse,
    TreeResponse,
)
from .graph import Backlink, BacklinksResponse, GraphData, GraphLink, GraphNode
from .index import (
    BatchRequest,
    BatchResult,
    FileIndexRequest,
    FileIndexResult,
    FileToIndex,
    Frontmatter,
    IndexState,
    IndexStatus,
    StartIndexingRequest,
    StartIndexingResult,
    VaultIndexEntry,
    WikiLink,
)
from .vault import (
    CommitInfo,
    ContentObject,
    RateLimitInfo,
    StoredContent,
    TreeNode,
    VaultKey,
)

__all__ = [
    "JWTPayload",
    "VaultKey",
    "ContentObject",
    "StoredContent",
    "TreeNode",
    "CommitInfo",
    "RateLimitInfo",
    "WikiLink",
    "Frontmatter",
    "VaultIndexEntry",
    "IndexState",
    "IndexStatus",
    "FileToIndex",
    "StartIndexingRequest",
    "StartIndexingResult",
    "BatchRequest",
    "BatchResult",
    "FileIndexRequest",
    "FileIndexResult",
    "GraphNode",
    "GraphLink",
    "GraphData",
    "Backlink",
    "BacklinksResponse",
    "FileContent",
    "SaveFileRequest",
    "SaveFileResponse",
    "DeleteFileRequest",
    "TreeResponse",
    "HistoryResponse",
]
