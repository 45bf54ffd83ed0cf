"""HTTP API route handlers."""

from . import files, graph, index

__all__ = ["files", "graph", "index"]
