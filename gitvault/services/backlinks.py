"""Backlink lookup over the vault index."""

from __future__ import annotations

import logging
from typing import List, Tuple

from ..models.graph import Backlink, BacklinksResponse
from ..models.index import IndexState
from .errors import IndexUnavailableError
from .index_store import IndexStore
from .notes import MARKDOWN_EXTENSION, strip_markdown_extension
from .privacy import is_private_path
from .wikilinks import clean_link_target, wikilink_to_route

logger = logging.getLogger(__name__)


def link_matches(clean_target: str, target_id: str, target_name: str) -> bool:
    """
    Decide whether a cleaned, lower-cased link target points at the note.

    Checked in order: full path, bare name, link ending in ``/name``, note
    path ending in ``/link``, final link segment equal to the name.
    """
    if clean_target == target_id:
        return True
    if clean_target == target_name:
        return True
    if clean_target.endswith("/" + target_name):
        return True
    if target_id.endswith("/" + clean_target):
        return True
    return clean_target.rsplit("/", 1)[-1] == target_name


class BacklinkResolver:
    """Find the notes linking to a given note, using only the index."""

    def __init__(self, index: IndexStore) -> None:
        self.index = index

    def _require_index(self) -> None:
        status = self.index.get_status()
        if status is None or status.state != IndexState.COMPLETED:
            raise IndexUnavailableError("No completed index for this vault")

    def _is_private_target(self, normalized: str) -> bool:
        if is_private_path(normalized):
            return True
        entry = self.index.get_entry(normalized)
        return entry is not None and entry.is_private

    def find_backlinks(self, target_path: str) -> List[Backlink]:
        """
        Public notes whose wikilinks, embeds included, resolve to ``target_path``.

        Raises IndexUnavailableError until a crawl has completed.
        """
        backlinks, _ = self._resolve(target_path)
        return backlinks

    def _resolve(self, target_path: str) -> Tuple[List[Backlink], int]:
        self._require_index()

        normalized = target_path.strip("/")
        if not normalized.lower().endswith(MARKDOWN_EXTENSION):
            normalized = f"{normalized}{MARKDOWN_EXTENSION}"
        target_id = strip_markdown_extension(normalized).lower()
        target_name = target_id.rsplit("/", 1)[-1]

        entries = self.index.list_entries(public_only=True)
        backlinks: List[Backlink] = []
        if self._is_private_target(normalized):
            return backlinks, len(entries)

        for entry in entries:
            if entry.file_path == normalized:
                continue
            for link in entry.wikilinks:
                clean_target = clean_link_target(link.target).lower()
                if not clean_target:
                    continue
                if link_matches(clean_target, target_id, target_name):
                    backlinks.append(
                        Backlink(
                            path=entry.file_path,
                            name=entry.file_name,
                            route=wikilink_to_route(entry.file_path),
                        )
                    )
                    break

        logger.debug(
            "Backlinks resolved",
            extra={"target_path": normalized, "count": len(backlinks)},
        )
        return backlinks, len(entries)

    def get_backlinks(self, target_path: str) -> BacklinksResponse:
        """API shape: an unavailable index yields ``needs_index`` instead of an error."""
        try:
            backlinks, scanned = self._resolve(target_path)
        except IndexUnavailableError:
            return BacklinksResponse(from_index=False, needs_index=True)
        return BacklinksResponse(
            backlinks=backlinks,
            count=len(backlinks),
            scanned=scanned,
            from_index=True,
        )


__all__ = ["BacklinkResolver", "link_matches"]
