"""HTTP API routes for backlinks and the link graph."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ...models.graph import BacklinksResponse, GraphData
from ...services.backlinks import BacklinkResolver
from ...services.graph import GraphBuilder
from ..dependencies import VaultContext, get_vault_context

router = APIRouter()


@router.get("/api/vault/backlinks", response_model=BacklinksResponse)
def get_backlinks(
    vault: Annotated[VaultContext, Depends(get_vault_context)],
    path: Annotated[str, Query(min_length=1, description="Note path to find backlinks for")],
) -> BacklinksResponse:
    """Notes linking to ``path``; ``needs_index`` is set until a crawl has completed."""
    return BacklinkResolver(vault.index).get_backlinks(path)


@router.get("/api/vault/graph", response_model=GraphData)
def get_graph(
    vault: Annotated[VaultContext, Depends(get_vault_context)],
    include_orphans: Annotated[bool, Query(alias="includeOrphans")] = False,
) -> GraphData:
    """Retrieve graph visualization data."""
    return GraphBuilder(vault.index).get_graph(include_orphans)
