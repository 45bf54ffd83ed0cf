"""Wikilink and tag extraction from Markdown note bodies."""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Literal
from urllib.parse import quote

from pydantic import BaseModel, Field

from ..models.index import WikiLink
from .notes import strip_code

# [[target]], [[target|display]], ![[embed]]
WIKILINK_PATTERN = re.compile(r"(!?)\[\[([^\]|]+)(?:\|([^\]]+))?\]\]")
INLINE_TAG_PATTERN = re.compile(r"(?:^|\s)#([a-zA-Z][a-zA-Z0-9_\-/]*)")
ANCHOR_PATTERN = re.compile(r"#.*$")
BACKSLASH_PATTERN = re.compile(r"\\+")

IMAGE_EXTENSIONS = re.compile(r"\.(png|jpg|jpeg|gif|svg|webp|bmp|ico|avif)$", re.IGNORECASE)
PDF_EXTENSION = re.compile(r"\.pdf$", re.IGNORECASE)
CANVAS_EXTENSION = re.compile(r"\.canvas$", re.IGNORECASE)
MARKDOWN_EXTENSION = re.compile(r"\.md$", re.IGNORECASE)

RouteKind = Literal["note", "canvas", "file"]


class ExtractedLinks(BaseModel):
    wikilinks: List[WikiLink] = Field(default_factory=list)
    inline_tags: List[str] = Field(default_factory=list)


def extract_wikilinks(content: str) -> List[WikiLink]:
    """All wikilinks in document order; repeated links are kept."""
    links: List[WikiLink] = []
    for match in WIKILINK_PATTERN.finditer(content or ""):
        target = match.group(2).strip()
        if not target:
            continue
        display = match.group(3)
        links.append(
            WikiLink(
                raw_text=match.group(0),
                target=target,
                display=display.strip() if display else None,
                is_embed=match.group(1) == "!",
            )
        )
    return links


def extract_inline_tags(content: str) -> List[str]:
    """Lower-cased ``#tags`` outside code, deduplicated in first-seen order."""
    tags: List[str] = []
    for match in INLINE_TAG_PATTERN.finditer(strip_code(content)):
        tag = match.group(1).lower()
        if tag not in tags:
            tags.append(tag)
    return tags


def frontmatter_tags(value: Any) -> List[str]:
    """Normalize a frontmatter ``tags`` value (list or comma-separated string)."""
    if isinstance(value, (list, tuple)):
        raw = [str(tag) for tag in value if tag is not None]
    elif isinstance(value, str):
        raw = value.split(",")
    else:
        return []
    return [tag.strip().lower() for tag in raw if tag.strip()]


def merge_tags(*groups: Iterable[str]) -> List[str]:
    merged: List[str] = []
    for group in groups:
        for tag in group:
            if tag and tag not in merged:
                merged.append(tag)
    return merged


def extract(content: str) -> ExtractedLinks:
    return ExtractedLinks(
        wikilinks=extract_wikilinks(content),
        inline_tags=extract_inline_tags(content),
    )


def clean_link_target(target: str) -> str:
    """Drop the heading anchor, backslashes, and a trailing ``.md``."""
    without_anchor = ANCHOR_PATTERN.sub("", target or "")
    without_backslashes = BACKSLASH_PATTERN.sub("", without_anchor)
    return MARKDOWN_EXTENSION.sub("", without_backslashes.strip())


def detect_route_kind(target: str) -> RouteKind:
    if IMAGE_EXTENSIONS.search(target) or PDF_EXTENSION.search(target):
        return "file"
    if CANVAS_EXTENSION.search(target):
        return "canvas"
    return "note"


def wikilink_to_route(target: str) -> str:
    """Map a wikilink target to the viewer route that renders it."""
    cleaned = BACKSLASH_PATTERN.sub("", ANCHOR_PATTERN.sub("", target or "")).strip()
    if not cleaned:
        return "/"

    kind = detect_route_kind(cleaned)
    without_ext = cleaned
    for pattern in (MARKDOWN_EXTENSION, CANVAS_EXTENSION, PDF_EXTENSION, IMAGE_EXTENSIONS):
        if pattern.search(cleaned):
            without_ext = pattern.sub("", cleaned)
            break

    encoded = "/".join(
        quote(segment.strip(), safe="") for segment in without_ext.split("/") if segment.strip()
    )
    return f"/{kind}/{encoded}"


__all__ = [
    "ExtractedLinks",
    "WIKILINK_PATTERN",
    "extract",
    "extract_wikilinks",
    "extract_inline_tags",
    "frontmatter_tags",
    "merge_tags",
    "clean_link_target",
    "detect_route_kind",
    "wikilink_to_route",
]
