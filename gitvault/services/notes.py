"""Markdown note parsing helpers shared by the privacy filter and link extractor."""

from __future__ import annotations

import re
from typing import Tuple

import frontmatter
import yaml
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from ..models.index import Frontmatter
from .errors import ParseFailureError

FENCED_CODE_PATTERN = re.compile(r"```[\s\S]*?```")
INLINE_CODE_PATTERN = re.compile(r"`[^`]+`")
MARKDOWN_EXTENSION = ".md"


def strip_code(text: str) -> str:
    """Remove fenced blocks, then inline code spans."""
    without_fences = FENCED_CODE_PATTERN.sub("", text or "")
    return INLINE_CODE_PATTERN.sub("", without_fences)


def parse_frontmatter(text: str) -> Tuple[Frontmatter, str]:
    """
    Split a note into its frontmatter and body.

    Raises ParseFailureError when the YAML block is malformed.
    """
    try:
        post = frontmatter.loads(text or "")
    except (yaml.YAMLError, ValueError, TypeError) as exc:
        raise ParseFailureError(f"Malformed frontmatter: {exc}") from exc

    metadata = {str(key): value for key, value in (post.metadata or {}).items()}
    try:
        parsed = Frontmatter.model_validate(metadata)
        # Values must survive the JSON round trip into the index.
        parsed.to_dict()
    except (ValidationError, PydanticSerializationError, ValueError) as exc:
        raise ParseFailureError(f"Unsupported frontmatter: {exc}") from exc
    return parsed, post.content or ""


def strip_markdown_extension(path: str) -> str:
    if path.lower().endswith(MARKDOWN_EXTENSION):
        return path[: -len(MARKDOWN_EXTENSION)]
    return path


def note_name(path: str) -> str:
    """Final path segment without the Markdown extension."""
    return strip_markdown_extension(path.rsplit("/", 1)[-1])


def is_markdown(path: str) -> bool:
    return path.lower().endswith(MARKDOWN_EXTENSION)


__all__ = [
    "strip_code",
    "parse_frontmatter",
    "strip_markdown_extension",
    "note_name",
    "is_markdown",
    "MARKDOWN_EXTENSION",
]
