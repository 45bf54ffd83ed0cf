"""Graph and backlink data models."""

from typing import List, Optional
from pydantic import BaseModel, Field

class GraphNode(BaseModel):
    """Represents a single note in the graph."""
    id: str = Field(..., description="Note path without extension")
    name: str = Field(..., description="Display name of the note")
    path: str = Field(..., description="Full note path")
    route: str = Field(..., description="Viewer route for the note")
    link_count: int = Field(default=0, description="Number of edges touching this node")
    is_orphan: bool = Field(default=False, description="True when no edge touches this node")

class GraphLink(BaseModel):
    """Represents a directed connection between two notes."""
    source: str = Field(..., description="ID of the source note")
    target: str = Field(..., description="ID of the target note")

class GraphData(BaseModel):
    """The top-level payload returned by the API."""
    nodes: List[GraphNode] = Field(default_factory=list)
    links: List[GraphLink] = Field(default_factory=list)
    total_notes: int = 0
    connected_notes: int = 0
    orphan_notes: int = 0
    from_index: bool = True
    needs_index: Optional[bool] = None

class Backlink(BaseModel):
    """A note linking to the requested target."""
    path: str
    name: str
    route: str

class BacklinksResponse(BaseModel):
    backlinks: List[Backlink] = Field(default_factory=list)
    count: int = 0
    scanned: int = 0
    from_index: bool = True
    needs_index: Optional[bool] = None
