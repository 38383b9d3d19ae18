"""
FastAPI facade for the work-order tree engine.

Endpoints:
  GET  /work-orders/{base}/{lot}/tree            → simplified work-order tree
  GET  /work-orders/{base}/{lot}/tree/detailed   → WO + operations + materials
  GET  /work-orders/{base}/{lot}/hierarchy       → parent-map walk with diagnostics
  POST /work-orders/seed                         → (dev) load rows
"""
from __future__ import annotations
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from . import config
from .hierarchy import HierarchyWalker
from .models import (
    DetailedTree,
    HierarchyResponse,
    NodeType,
    SimplifiedTreeResponse,
    parse_rows,
    parse_work_orders,
)
from .source import InMemoryRowSource, RootKey, RowSource, sample_rows
from .tree import build_detailed_tree, build_simplified_tree

config.configure_logging()

# ── App setup ───────────────────────────────────────────────────────
app = FastAPI(
    title="Work Order Tree",
    description="Nested work-order / operation / material trees rebuilt from flat ERP rows.",
    version="1.0.0",
)

# ── In-memory source (swap for the SQL source in production) ────────
_source = InMemoryRowSource()
_source.load(("8113", "00"), sample_rows())


def get_source() -> RowSource:
    return _source


def _root_key(base_id: str, lot_id: str) -> RootKey:
    return (base_id.strip(), lot_id.strip())


async def _detailed(base_id: str, lot_id: str) -> DetailedTree:
    rows = await get_source().fetch_detailed_nodes(_root_key(base_id, lot_id))
    result = build_detailed_tree(parse_rows(rows))
    if result.tree is None:
        raise HTTPException(404, f"Work order '{base_id}/{lot_id}' not found")
    return result


# ── Routes ───────────────────────────────────────────────────────────

@app.get(
    "/work-orders/{base_id}/{lot_id}/tree",
    response_model=SimplifiedTreeResponse,
    summary="Get the work-order hierarchy",
)
async def get_simplified_tree(base_id: str, lot_id: str):
    """Work orders only, each nested under the work order that requires it."""
    rows = await get_source().fetch_simplified_nodes(_root_key(base_id, lot_id))
    nodes = parse_rows(rows, default_type=NodeType.WORK_ORDER)
    tree = build_simplified_tree(nodes)
    if tree is None:
        raise HTTPException(404, f"Work order '{base_id}/{lot_id}' not found")
    return SimplifiedTreeResponse(tree=tree, total_work_orders=len(nodes))


@app.get(
    "/work-orders/{base_id}/{lot_id}/tree/detailed",
    response_model=DetailedTree,
    summary="Get the full bill-of-operations tree",
)
async def get_detailed_tree(base_id: str, lot_id: str):
    """
    Work orders, operations and material requirements. Subordinate work
    orders appear as labels under the operation that launched them, with
    their operations promoted alongside.
    """
    return await _detailed(base_id, lot_id)


@app.get(
    "/work-orders/{base_id}/{lot_id}/hierarchy",
    response_model=HierarchyResponse,
    summary="Get depth and path for every work order",
)
async def get_hierarchy(
    base_id: str,
    lot_id: str,
    max_depth: int = Query(default=config.MAX_DEPTH, ge=1, le=1000, description="Depth ceiling"),
):
    """
    Walks the parent map upward from each work order. Circular references
    and overly deep chains are reported in ``diagnostics``; the affected
    work orders are still listed.
    """
    rows, edges = await get_source().fetch_work_orders_and_edges(_root_key(base_id, lot_id))
    if not rows:
        raise HTTPException(404, f"Work order '{base_id}/{lot_id}' not found")
    work_orders = parse_work_orders(rows)
    walker = HierarchyWalker(work_orders, edges, max_depth)
    entries = walker.walk()
    return HierarchyResponse(entries=entries, diagnostics=walker.diagnostics)


class SeedRequest(BaseModel):
    base_id: str
    lot_id: str
    rows: list[dict]


@app.post("/work-orders/seed", summary="(Dev) Replace rows for one work order")
async def seed_rows(request: SeedRequest):
    """Load raw detailed rows for a base/lot, replacing existing data."""
    _source.load(_root_key(request.base_id, request.lot_id), request.rows)
    return {"loaded": len(request.rows)}
