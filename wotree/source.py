"""
Row sources feeding the tree engine.

The production source runs recursive SQL against the ERP schema; the engine
only sees the rows it returns. ``InMemoryRowSource`` stands in for it during
development and in tests.
"""
from __future__ import annotations
from typing import Protocol

RootKey = tuple[str, str]          # (base id, lot id)
Edge = tuple[str, str]             # (child sub id, parent sub id)

_WORK_ORDER_FIELDS = ("subId", "partId", "partDescription", "status")


class RowSource(Protocol):
    async def fetch_simplified_nodes(self, root_key: RootKey) -> list[dict]: ...

    async def fetch_detailed_nodes(self, root_key: RootKey) -> list[dict]: ...

    async def fetch_work_orders_and_edges(self, root_key: RootKey) -> tuple[list[dict], list[Edge]]: ...


class InMemoryRowSource:
    """
    Holds detailed rows per work order; the simplified and parent-map
    views are derived from the work-order rows.
    """

    def __init__(self) -> None:
        self._rows: dict[RootKey, list[dict]] = {}

    def load(self, root_key: RootKey, rows: list[dict]) -> None:
        self._rows[root_key] = list(rows)

    def clear(self) -> None:
        self._rows.clear()

    def _work_order_rows(self, root_key: RootKey) -> list[dict]:
        return [r for r in self._rows.get(root_key, []) if r.get("nodeType", "WO") == "WO"]

    async def fetch_simplified_nodes(self, root_key: RootKey) -> list[dict]:
        rows = [
            {k: v for k, v in r.items() if k not in ("nodeType", "parentOpSeq")}
            for r in self._work_order_rows(root_key)
        ]
        return sorted(rows, key=lambda r: str(r.get("sortKey", "")))

    async def fetch_detailed_nodes(self, root_key: RootKey) -> list[dict]:
        return sorted(self._rows.get(root_key, []), key=lambda r: str(r.get("sortKey", "")))

    async def fetch_work_orders_and_edges(self, root_key: RootKey) -> tuple[list[dict], list[Edge]]:
        work_orders, edges = [], []
        for r in self._work_order_rows(root_key):
            work_orders.append({k: r[k] for k in _WORK_ORDER_FIELDS if k in r})
            if r.get("parentSubId") is not None:
                edges.append((r["subId"], r["parentSubId"]))
        return work_orders, edges


def sample_rows() -> list[dict]:
    """A two-level work order: 8113/00 with subordinate 8113-1/00 launched by op 10."""
    return [
        {"nodeType": "WO",  "subId": "0", "sortKey": "000-0000-0000", "depth": 0, "partId": "ASSY-100",  "partDescription": "Gearbox assembly", "orderQty": 4, "status": "R"},
        {"nodeType": "OP",  "subId": "0", "sortKey": "000-0010-0000", "depth": 1, "opSeq": 10, "resourceId": "ASSY-1", "resourceDescription": "Assembly bench", "status": "R"},
        {"nodeType": "MAT", "subId": "0", "sortKey": "000-0010-0001", "depth": 2, "opSeq": 10, "pieceNo": 1, "partId": "BRG-6204", "partDescription": "Ball bearing", "qty": 8, "status": "R"},
        {"nodeType": "OP",  "subId": "0", "sortKey": "000-0020-0000", "depth": 1, "opSeq": 20, "resourceId": "QC",     "resourceDescription": "Final inspection", "status": "U"},
        {"nodeType": "MAT", "subId": "0", "sortKey": "000-0020-0001", "depth": 2, "opSeq": 20, "pieceNo": 1, "partId": "LBL-01",   "partDescription": "Serial label", "qty": 4, "status": "U"},
        {"nodeType": "WO",  "subId": "1", "sortKey": "000.001-0000-0000", "depth": 2, "partId": "SHAFT-20", "partDescription": "Output shaft", "orderQty": 4, "status": "R", "parentSubId": "0", "parentOpSeq": 10},
        {"nodeType": "OP",  "subId": "1", "sortKey": "000.001-0010-0000", "depth": 3, "opSeq": 10, "resourceId": "SAW-1",  "resourceDescription": "Band saw", "status": "C"},
        {"nodeType": "MAT", "subId": "1", "sortKey": "000.001-0010-0001", "depth": 4, "opSeq": 10, "pieceNo": 1, "partId": "BAR-42CRMO4", "partDescription": "Round bar 40mm", "qty": 2.4, "dimensions": "40 x 600", "status": "C"},
        {"nodeType": "OP",  "subId": "1", "sortKey": "000.001-0020-0000", "depth": 3, "opSeq": 20, "resourceId": "LATHE-2", "resourceDescription": "CNC lathe", "status": "R"},
    ]
