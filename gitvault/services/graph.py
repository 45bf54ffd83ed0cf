"""Link graph assembled from the vault index."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from ..models.graph import GraphData, GraphLink, GraphNode
from ..models.index import IndexState, VaultIndexEntry
from .errors import IndexUnavailableError
from .index_store import IndexStore
from .notes import strip_markdown_extension
from .wikilinks import wikilink_to_route

logger = logging.getLogger(__name__)


def node_id(file_path: str) -> str:
    return strip_markdown_extension(file_path)


def resolve_target(target: str, node_ids: List[str]) -> Optional[str]:
    """
    Map a link target (extension already stripped) to a node id.

    Targets containing a path separator must match a node exactly. A bare
    name matches the node with that id or any node whose id ends with
    ``/name``; ties go to the shortest path, then to the lexicographically
    smallest id.
    """
    if "/" in target:
        return target if target in node_ids else None
    candidates = [
        candidate
        for candidate in node_ids
        if candidate == target or candidate.endswith("/" + target)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda candidate: (candidate.count("/"), candidate))


class GraphBuilder:
    """Build nodes and directed links between public notes, using only the index."""

    def __init__(self, index: IndexStore) -> None:
        self.index = index

    def build_graph(self, include_orphans: bool = False) -> GraphData:
        status = self.index.get_status()
        if status is None or status.state != IndexState.COMPLETED:
            raise IndexUnavailableError("No completed index for this vault")

        entries = self.index.list_entries(public_only=True)
        nodes: Dict[str, GraphNode] = {}
        for entry in entries:
            identifier = node_id(entry.file_path)
            nodes[identifier] = GraphNode(
                id=identifier,
                name=entry.file_name,
                path=entry.file_path,
                route=wikilink_to_route(entry.file_path),
            )
        node_ids = sorted(nodes)

        links: List[GraphLink] = []
        connected: Set[str] = set()
        for entry in entries:
            links.extend(self._links_from(entry, node_ids))

        for link in links:
            nodes[link.source].link_count += 1
            nodes[link.target].link_count += 1
            connected.update((link.source, link.target))

        for identifier, node in nodes.items():
            node.is_orphan = identifier not in connected

        visible = [
            node for node in nodes.values() if include_orphans or not node.is_orphan
        ]
        logger.debug(
            "Graph built",
            extra={"nodes": len(nodes), "links": len(links), "include_orphans": include_orphans},
        )
        return GraphData(
            nodes=visible,
            links=links,
            total_notes=len(nodes),
            connected_notes=len(connected),
            orphan_notes=len(nodes) - len(connected),
            from_index=True,
        )

    def _links_from(self, entry: VaultIndexEntry, node_ids: List[str]) -> List[GraphLink]:
        source = node_id(entry.file_path)
        links = []
        for link in entry.wikilinks:
            if link.is_embed:
                continue
            target = resolve_target(strip_markdown_extension(link.target), node_ids)
            if target is not None:
                links.append(GraphLink(source=source, target=target))
        return links

    def get_graph(self, include_orphans: bool = False) -> GraphData:
        """API shape: an unavailable index yields ``needs_index`` with empty results."""
        try:
            return self.build_graph(include_orphans)
        except IndexUnavailableError:
            return GraphData(from_index=False, needs_index=True)


__all__ = ["GraphBuilder", "resolve_target", "node_id"]
