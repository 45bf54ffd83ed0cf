"""Fold a flat remote listing into a sorted directory tree."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from ..models.vault import ContentObject, TreeNode

HOME_FILE_NAMES = frozenset({"index.md", "readme.md", "home.md"})


def _sort_key(node: TreeNode) -> tuple:
    is_home = node.kind == "file" and node.name.lower() in HOME_FILE_NAMES
    return (node.kind != "dir", not is_home, node.name.lower(), node.name)


def sort_tree_items(nodes: List[TreeNode]) -> List[TreeNode]:
    """Directories first, then a home file, then case-insensitive by name."""
    return sorted(nodes, key=_sort_key)


def build_tree(
    objects: Iterable[ContentObject],
    is_private: Optional[Callable[[str], bool]] = None,
) -> List[TreeNode]:
    """
    Build the vault hierarchy from a flat listing.

    Every path prefix becomes a directory node even when the listing carries
    no explicit entry for it. Paths rejected by ``is_private`` are dropped
    along with everything beneath them.
    """
    nodes: Dict[str, TreeNode] = {}
    roots: List[TreeNode] = []

    def ensure_dir(path: str) -> TreeNode:
        existing = nodes.get(path)
        if existing is not None:
            if existing.kind == "dir":
                return existing
            # A file and a directory cannot share a path; the directory wins.
            existing.kind = "dir"
            existing.children = existing.children or []
            return existing
        parent_path, _, name = path.rpartition("/")
        node = TreeNode(name=name, path=path, kind="dir", children=[])
        nodes[path] = node
        if parent_path:
            ensure_dir(parent_path).children.append(node)
        else:
            roots.append(node)
        return node

    for obj in sorted(objects, key=lambda item: item.path):
        path = obj.path.strip("/")
        if not path or (is_private is not None and is_private(path)):
            continue
        if obj.kind == "dir":
            ensure_dir(path)
            continue
        if path in nodes:
            continue
        parent_path, _, name = path.rpartition("/")
        node = TreeNode(name=name, path=path, kind="file", content_hash=obj.content_hash)
        nodes[path] = node
        if parent_path:
            ensure_dir(parent_path).children.append(node)
        else:
            roots.append(node)

    def sort_recursive(items: List[TreeNode]) -> List[TreeNode]:
        for item in items:
            if item.children:
                item.children = sort_recursive(item.children)
        return sort_tree_items(items)

    return sort_recursive(roots)


__all__ = ["build_tree", "sort_tree_items", "HOME_FILE_NAMES"]
