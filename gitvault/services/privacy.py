"""
Privacy rules for excluding notes from public index queries.

A note is private if any of these hold:

- a path segment is a private folder marker (``_private/secret.md``,
  ``private/journal.md``) or starts with ``_private.``
- its frontmatter sets ``private: true``
- its body carries the ``#private`` tag outside code spans
"""

from __future__ import annotations

import re
from typing import Iterable, List, Literal, Optional, Protocol, TypeVar

from pydantic import BaseModel

from .errors import ParseFailureError
from .notes import parse_frontmatter, strip_code

PRIVATE_FOLDER_MARKERS = frozenset({"_private", "private"})
PRIVATE_FILE_PREFIX = "_private."
PRIVATE_TAG_PATTERN = re.compile(r"(?:^|\s)#private(?:\s|$)", re.MULTILINE)

PrivacyReason = Literal["path", "frontmatter", "tag"]


class PrivacyCheck(BaseModel):
    is_private: bool = False
    reason: Optional[PrivacyReason] = None


class _HasPath(Protocol):
    path: str


T = TypeVar("T", bound=_HasPath)


def is_private_path(path: str) -> bool:
    """True if any segment of ``path`` marks a private folder or file."""
    for segment in (path or "").lower().split("/"):
        if segment in PRIVATE_FOLDER_MARKERS or segment.startswith(PRIVATE_FILE_PREFIX):
            return True
    return False


def is_private_content(content: str) -> PrivacyCheck:
    """Check frontmatter for ``private: true``, then the body for ``#private``."""
    try:
        metadata, body = parse_frontmatter(content)
    except ParseFailureError:
        # Unreadable frontmatter never makes a note private; the tag scan still applies.
        metadata, body = None, content or ""

    if metadata is not None and metadata.is_private:
        return PrivacyCheck(is_private=True, reason="frontmatter")

    if PRIVATE_TAG_PATTERN.search(strip_code(body)):
        return PrivacyCheck(is_private=True, reason="tag")

    return PrivacyCheck(is_private=False)


def check_privacy(path: str, content: Optional[str] = None) -> PrivacyCheck:
    """Path check first, then content when provided."""
    if is_private_path(path):
        return PrivacyCheck(is_private=True, reason="path")
    if content:
        return is_private_content(content)
    return PrivacyCheck(is_private=False)


def filter_private_paths(items: Iterable[T]) -> List[T]:
    """Drop every item whose ``path`` is private."""
    return [item for item in items if not is_private_path(item.path)]


__all__ = [
    "PrivacyCheck",
    "is_private_path",
    "is_private_content",
    "check_privacy",
    "filter_private_paths",
]
