"""
Depth and path computation over a work-order parent map.

Used when only (child, parent) edges are available and there is no
precomputed sort key. Each work order ascends toward the root; results are
memoized per sub id so shared ancestor chains are resolved once. The ascent
keeps the chain it is currently walking, so a revisit means a cycle.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence
from .models import (
    ROOT_SUB_ID,
    AscentStatus,
    Diagnostic,
    DiagnosticKind,
    HierarchyEntry,
    WorkOrderRow,
)

logger = logging.getLogger(__name__)

CYCLE_DEPTH = 999
CYCLE_PATH = "CYCLE_DETECTED"
PATH_SEPARATOR = " -> "
SUB_ID_WIDTH = 3


@dataclass(frozen=True)
class _Ascent:
    depth: int
    path: str
    status: AscentStatus = AscentStatus.OK


_CYCLE = _Ascent(CYCLE_DEPTH, CYCLE_PATH, AscentStatus.CYCLE)


class HierarchyWalker:
    """
    One walk over one request's work orders.

    Usage:
        walker  = HierarchyWalker(work_orders, edges, max_depth=100)
        entries = walker.walk()
        walker.diagnostics   # cycles, clamped depths, conflicting edges
    """

    def __init__(
        self,
        work_orders: Sequence[WorkOrderRow],
        edges: Iterable[tuple[str, str]],
        max_depth: int,
    ) -> None:
        self.diagnostics: list[Diagnostic] = []
        self.max_depth = max_depth
        if max_depth < 1:
            self.max_depth = 1
            self._record(
                DiagnosticKind.DEPTH_EXCEEDED,
                ROOT_SUB_ID,
                f"Maximum depth {max_depth} is below 1; using 1",
            )
        self._work_orders = {wo.sub_id: wo for wo in work_orders}
        self._parents: dict[str, str] = {}
        self._memo: dict[str, _Ascent] = {}

        for child, parent in edges:
            child, parent = str(child).strip(), str(parent).strip()
            known = self._parents.get(child)
            if known is not None and known != parent:
                self._record(
                    DiagnosticKind.CONFLICTING_PARENT,
                    child,
                    f"Work order {child} has conflicting parents {known} and {parent}; using {known}",
                )
                continue
            self._parents[child] = parent

        root = self._work_orders.get(ROOT_SUB_ID)
        self._memo[ROOT_SUB_ID] = _Ascent(0, self._describe(ROOT_SUB_ID, root))

    # ── Public API ───────────────────────────────────────────────────

    def walk(self) -> list[HierarchyEntry]:
        """Resolve every work order and return entries sorted by path."""
        entries = []
        for sub_id, wo in self._work_orders.items():
            result = self.resolve(sub_id)
            entries.append(
                HierarchyEntry(work_order=wo, depth=result.depth, path=result.path, status=result.status)
            )
        entries.sort(key=lambda e: (e.path, e.work_order.sub_id))
        return entries

    def resolve(self, sub_id: str) -> _Ascent:
        """Depth, path and status of a single work order."""
        if sub_id in self._memo:
            return self._memo[sub_id]

        # Walk up until something already known, a top-level node, or a revisit
        chain: list[str] = []
        on_chain: set[str] = set()
        current: Optional[str] = sub_id
        while current is not None and current not in self._memo:
            if current in on_chain:
                self._record_cycle(chain[chain.index(current):])
                for member in chain:
                    self._memo[member] = _CYCLE
                return _CYCLE
            chain.append(current)
            on_chain.add(current)
            current = self._parents.get(current)

        parent = self._memo[current] if current is not None else self._memo[ROOT_SUB_ID]
        for member in reversed(chain):
            parent = self._extend(member, parent)
            self._memo[member] = parent
        return self._memo[sub_id]

    # ── Internals ────────────────────────────────────────────────────

    def _extend(self, sub_id: str, parent: _Ascent) -> _Ascent:
        if parent.status is AscentStatus.CYCLE:
            return _CYCLE

        path = parent.path + PATH_SEPARATOR + self._describe(sub_id, self._work_orders.get(sub_id))
        depth = parent.depth + 1
        if depth > self.max_depth:
            self._record(
                DiagnosticKind.DEPTH_EXCEEDED,
                sub_id,
                f"Work order {sub_id} exceeds maximum depth {self.max_depth}; clamped",
            )
            return _Ascent(self.max_depth, path, AscentStatus.DEPTH_EXCEEDED)
        return _Ascent(depth, path, AscentStatus.OK)

    @staticmethod
    def _describe(sub_id: str, wo: Optional[WorkOrderRow]) -> str:
        label = sub_id.rjust(SUB_ID_WIDTH, "0")
        if wo is not None and wo.part_id:
            label += f" {wo.part_id.strip()}"
        return label

    def _record_cycle(self, members: list[str]) -> None:
        loop = members + [members[0]]
        self._record(
            DiagnosticKind.CYCLE,
            members[0],
            "Circular work-order reference: " + PATH_SEPARATOR.join(loop),
            chain=loop,
        )

    def _record(self, kind: DiagnosticKind, sub_id: str, message: str, chain: Optional[list[str]] = None) -> None:
        logger.warning(message)
        self.diagnostics.append(Diagnostic(kind=kind, sub_id=sub_id, message=message, chain=chain or []))


def compute_hierarchy(
    work_orders: Sequence[WorkOrderRow],
    edges: Iterable[tuple[str, str]],
    max_depth: int,
) -> list[HierarchyEntry]:
    """Depth and path for every work order, sorted by path."""
    return HierarchyWalker(work_orders, edges, max_depth).walk()
