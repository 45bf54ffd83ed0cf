"""Vault identity, remote content objects, and tree models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ObjectKind = Literal["file", "dir"]


class VaultKey(BaseModel):
    """Composite key partitioning all index state for one vault."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "user_id": "alice",
                "owner": "alice",
                "repo": "notes",
                "branch": "main",
            }
        },
    )

    user_id: str = Field(..., min_length=1)
    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    branch: str = Field("main", min_length=1)


class ContentObject(BaseModel):
    """Metadata for one path in the remote store, as returned by a listing."""

    path: str
    name: str
    kind: ObjectKind = "file"
    content_hash: Optional[str] = Field(None, description="Blob sha; null for directories")
    size: Optional[int] = Field(None, ge=0)


class StoredContent(BaseModel):
    """Raw content of a file read from the remote store."""

    path: str
    content: bytes
    content_hash: str
    size: int = Field(..., ge=0)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


class TreeNode(BaseModel):
    """Hierarchical view of the vault."""

    name: str
    path: str
    kind: ObjectKind
    content_hash: Optional[str] = None
    children: Optional[List["TreeNode"]] = None


class CommitInfo(BaseModel):
    """One commit touching a file."""

    sha: str
    message: str
    date: Optional[datetime] = None
    author: str = "Unknown"


class RateLimitInfo(BaseModel):
    """Last-observed remote API quota."""

    limit: int = 0
    remaining: int = 0
    reset: int = Field(0, description="Epoch seconds when the quota window resets")
    used: int = 0


TreeNode.model_rebuild()


__all__ = [
    "ObjectKind",
    "VaultKey",
    "ContentObject",
    "StoredContent",
    "TreeNode",
    "CommitInfo",
    "RateLimitInfo",
]
