"""Index entry, indexing status, and batch request/response models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class WikiLink(BaseModel):
    """Outbound reference extracted from a note body."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "raw_text": "[[Projects/Roadmap|roadmap]]",
                "target": "Projects/Roadmap",
                "display": "roadmap",
                "is_embed": False,
            }
        },
    )

    raw_text: str
    target: str
    display: Optional[str] = None
    is_embed: bool = False


class Frontmatter(BaseModel):
    """YAML frontmatter: the fields the indexer reads, everything else passed through."""

    model_config = ConfigDict(extra="allow")

    tags: Any = None
    private: Any = None

    @property
    def is_private(self) -> bool:
        return self.private is True

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict containing exactly the keys that were present in the source."""
        dumped = self.model_dump(mode="json")
        present = set(self.model_fields_set) | set(self.model_extra or {})
        return {key: value for key, value in dumped.items() if key in present}


class VaultIndexEntry(BaseModel):
    """Per-file index record keyed by (vault key, file path)."""

    file_path: str
    file_name: str
    file_sha: str
    tags: List[str] = Field(default_factory=list)
    wikilinks: List[WikiLink] = Field(default_factory=list)
    frontmatter: Dict[str, Any] = Field(default_factory=dict)
    is_private: bool = False
    indexed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IndexState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    INDEXING = "indexing"
    COMPLETED = "completed"
    FAILED = "failed"


class IndexStatus(BaseModel):
    """Crawl progress for one vault."""

    state: IndexState = IndexState.NONE
    total_files: int = Field(0, ge=0)
    indexed_files: int = Field(0, ge=0)
    failed_files: int = Field(0, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    has_index: bool = False


class FileToIndex(BaseModel):
    """Candidate file handed to the batch driver."""

    path: str
    name: str
    sha: str


class StartIndexingRequest(BaseModel):
    rebuild: bool = False


class IndexingProgress(BaseModel):
    indexed: int
    total: int


class StartIndexingResult(BaseModel):
    """Outcome of a crawl start request."""

    status: Literal["started", "completed", "already_indexing"]
    mode: Optional[Literal["rebuild", "refresh"]] = None
    total_files: int = 0
    new_files: int = 0
    modified_files: int = 0
    deleted_files: int = 0
    unchanged_files: int = 0
    files: List[FileToIndex] = Field(default_factory=list)
    progress: Optional[IndexingProgress] = None


class BatchRequest(BaseModel):
    files: List[FileToIndex] = Field(..., min_length=1)
    total_files: int = Field(..., ge=0)
    current_index: int = Field(0, ge=0)


class BatchResult(BaseModel):
    status: Literal["completed", "in_progress"]
    indexed: int
    failed: int
    total_indexed: int
    total_files: int
    is_complete: bool


class FileIndexRequest(BaseModel):
    """Single-file index maintenance after a save or delete."""

    path: str = Field(..., min_length=1)
    name: Optional[str] = None
    sha: Optional[str] = None
    content: Optional[str] = None
    deleted: bool = False


class FileIndexResult(BaseModel):
    status: Literal["indexed", "deleted"]
    path: str
    tags_count: int = 0
    wikilinks_count: int = 0
    is_private: bool = False


__all__ = [
    "WikiLink",
    "Frontmatter",
    "VaultIndexEntry",
    "IndexState",
    "IndexStatus",
    "FileToIndex",
    "StartIndexingRequest",
    "IndexingProgress",
    "StartIndexingResult",
    "BatchRequest",
    "BatchResult",
    "FileIndexRequest",
    "FileIndexResult",
]
