"""Request/response models for remote file operations."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .vault import CommitInfo, RateLimitInfo, TreeNode


class FileContent(BaseModel):
    """Decoded file content with its current version token."""

    path: str
    content: str
    sha: str
    size: int = Field(..., ge=0)
    encoding: Literal["utf-8", "base64"] = "utf-8"
    rate_limit: Optional[RateLimitInfo] = None


class SaveFileRequest(BaseModel):
    """Create or update a file. Omit ``sha`` to create a new file."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "path": "Notes/Roadmap.md",
                "content": "# Roadmap\n\nSee [[Ideas]].",
                "sha": "3b18e512dba79e4c8300dd08aeb37f8e728b8dad",
            }
        }
    )

    path: str = Field(..., min_length=1, max_length=1024)
    content: str
    sha: Optional[str] = Field(None, description="Hash the caller believes is current")
    message: Optional[str] = None
    encoding: Literal["utf-8", "base64"] = "utf-8"

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        if ".." in value.split("/"):
            raise ValueError("Path must not contain '..'")
        if "\\" in value:
            raise ValueError("Path must use Unix-style separators (/)")
        if value.startswith("/"):
            raise ValueError("Path must be relative (no leading /)")
        return value


class SaveFileResponse(BaseModel):
    path: str
    sha: str
    indexed: bool = False
    rate_limit: Optional[RateLimitInfo] = None


class DeleteFileRequest(BaseModel):
    path: str = Field(..., min_length=1)
    sha: str = Field(..., min_length=1)
    message: Optional[str] = None


class TreeResponse(BaseModel):
    tree: List[TreeNode]
    rate_limit: Optional[RateLimitInfo] = None


class HistoryResponse(BaseModel):
    path: str
    history: List[CommitInfo]
    count: int


__all__ = [
    "FileContent",
    "SaveFileRequest",
    "SaveFileResponse",
    "DeleteFileRequest",
    "TreeResponse",
    "HistoryResponse",
]
