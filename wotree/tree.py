"""
Work-order tree assembly, child ordering and depth recalculation.

Key ideas:
- Index every row into an arena of TreeNodes keyed by natural identity
  (work order → sub id, operation → sub id + sequence) before attaching
  anything, so attachment never depends on row iteration order.
- A subordinate work order is spliced under the operation that launched it:
  the work order itself becomes a childless label and its operations become
  siblings of that label under the parent operation.
- Children are grouped structural-first, then materials.
- Depth is recomputed from the assembled tree; the query's depth is a hint.
"""
from __future__ import annotations
import logging
from collections import Counter
from typing import Callable, Optional, Sequence
from .models import (
    ROOT_SUB_ID,
    DetailedTree,
    FlatNode,
    MaterialNode,
    NodeType,
    OperationNode,
    TreeNode,
    TreeSummary,
    WorkOrderNode,
)

logger = logging.getLogger(__name__)

STRUCTURAL_TYPES = frozenset({NodeType.WORK_ORDER, NodeType.OPERATION})


class NodeIndex:
    """
    Arena of tree nodes plus identity lookups.

    Usage:
        index = NodeIndex.from_nodes(nodes)
        root  = index.root
        op    = index.operation("5", 20)
    """

    def __init__(self) -> None:
        self.work_orders: dict[str, TreeNode] = {}
        self.operations: dict[tuple[str, int], TreeNode] = {}
        self._materials: set[tuple[str, int, int]] = set()
        self.arena: list[TreeNode] = []     # accepted nodes in sort-key order

    @classmethod
    def from_nodes(cls, nodes: Sequence[FlatNode]) -> NodeIndex:
        index = cls()
        for node in sorted(nodes, key=lambda n: n.sort_key):
            index.add(node)
        return index

    def __len__(self) -> int:
        return len(self.arena)

    @property
    def root(self) -> Optional[TreeNode]:
        return self.work_orders.get(ROOT_SUB_ID)

    def operation(self, sub_id: Optional[str], op_seq: Optional[int]) -> Optional[TreeNode]:
        if sub_id is None or op_seq is None:
            return None
        return self.operations.get((sub_id, op_seq))

    def add(self, node: FlatNode) -> Optional[TreeNode]:
        """Register a node; returns None when its identity is already taken."""
        tree_node = TreeNode(node=node, depth=node.depth)

        if isinstance(node, WorkOrderNode):
            if node.sub_id in self.work_orders:
                return self._duplicate(node, node.sub_id)
            self.work_orders[node.sub_id] = tree_node
        elif isinstance(node, OperationNode):
            if node.key in self.operations:
                return self._duplicate(node, node.key)
            self.operations[node.key] = tree_node
        elif isinstance(node, MaterialNode):
            key = (node.sub_id, node.op_seq, node.piece_no)
            if key in self._materials:
                return self._duplicate(node, key)
            self._materials.add(key)

        self.arena.append(tree_node)
        return tree_node

    @staticmethod
    def _duplicate(node: FlatNode, key: object) -> None:
        logger.warning(
            "Duplicate %s identity %r (sort key %s); keeping the first occurrence",
            node.node_type, key, node.sort_key,
        )
        return None


# ── Parent resolution ───────────────────────────────────────────────

ParentResolver = Callable[[NodeIndex, TreeNode], Optional[TreeNode]]


def _detailed_parent(index: NodeIndex, tree_node: TreeNode) -> Optional[TreeNode]:
    node = tree_node.node

    if isinstance(node, WorkOrderNode):
        # Subordinate work order: a label under the operation that launched it
        if not node.is_linked:
            return None
        return index.operation(node.parent_sub_id, node.parent_op_seq)

    if isinstance(node, OperationNode):
        owner = index.work_orders.get(node.sub_id)
        if owner is None:
            return None
        if owner.node.is_root:
            return owner
        if owner.node.is_linked:
            # Promoted: sibling of its work-order label under the parent operation
            return index.operation(owner.node.parent_sub_id, owner.node.parent_op_seq)
        # Operations of an unlinked work order hang off the root
        return index.root

    if isinstance(node, MaterialNode):
        return index.operation(*node.operation_key)

    return None


def _simplified_parent(index: NodeIndex, tree_node: TreeNode) -> Optional[TreeNode]:
    node = tree_node.node
    if not isinstance(node, WorkOrderNode) or node.parent_sub_id is None:
        return None
    return index.work_orders.get(node.parent_sub_id)


def _assemble(index: NodeIndex, find_parent: ParentResolver) -> None:
    root = index.root
    for tree_node in index.arena:
        if tree_node is root:
            continue
        parent = find_parent(index, tree_node)
        if parent is None or parent is tree_node:
            logger.debug(
                "Dropping %s node %s: parent not found",
                tree_node.node.node_type, tree_node.node.sort_key,
            )
            continue
        parent.children.append(tree_node)


# ── Post-assembly passes ────────────────────────────────────────────

def order_children(node: TreeNode) -> None:
    """Stable-partition every child list: work orders/operations, then materials."""
    if node.children:
        structural = [c for c in node.children if c.node_type in STRUCTURAL_TYPES]
        materials  = [c for c in node.children if c.node_type not in STRUCTURAL_TYPES]
        node.children = structural + materials
        for child in node.children:
            order_children(child)


def recalculate_depths(node: TreeNode, depth: int = 0) -> None:
    """Overwrite depth with the structural depth, root = 0."""
    node.depth = depth
    for child in node.children:
        recalculate_depths(child, depth + 1)


def count_nodes(node: TreeNode) -> int:
    total = 0
    stack = [node]
    while stack:
        current = stack.pop()
        total += 1
        stack.extend(current.children)
    return total


# ── Public builders ─────────────────────────────────────────────────

def build_simplified_tree(nodes: Sequence[FlatNode]) -> Optional[TreeNode]:
    """
    Nest work-order rows by ``parentSubId``.

    Returns None for empty input or when no root work order (sub id "0")
    is present.
    """
    if not nodes:
        return None

    index = NodeIndex.from_nodes(nodes)
    root = index.root
    if root is None:
        logger.warning("No root work order among %d simplified rows", len(nodes))
        return None

    _assemble(index, _simplified_parent)
    recalculate_depths(root)
    return root


def summarize(nodes: Sequence[FlatNode]) -> TreeSummary:
    counts = Counter(NodeType(n.node_type) for n in nodes)
    return TreeSummary(
        work_orders=counts[NodeType.WORK_ORDER],
        operations=counts[NodeType.OPERATION],
        materials=counts[NodeType.MATERIAL],
        total_nodes=len(nodes),
    )


def build_detailed_tree(nodes: Sequence[FlatNode]) -> DetailedTree:
    """
    Assemble work-order, operation and material rows into one tree.

    Nesting:
        root WO         → its operations
        operation       → subordinate WO labels, their promoted operations, materials
        subordinate WO  → nothing (label only)
        material        → leaf

    Nodes whose parent cannot be resolved are left out and counted in
    ``summary.dropped``.
    """
    if not nodes:
        return DetailedTree(tree=None, summary=None)

    summary = summarize(nodes)
    index = NodeIndex.from_nodes(nodes)
    root = index.root
    if root is None:
        logger.warning("No root work order among %d detailed rows", len(nodes))
        summary.dropped = len(nodes)
        return DetailedTree(tree=None, summary=summary)

    _assemble(index, _detailed_parent)
    order_children(root)
    recalculate_depths(root)

    summary.dropped = len(nodes) - count_nodes(root)
    logger.info(
        "Built detailed tree: %d work orders, %d operations, %d materials, %d dropped",
        summary.work_orders, summary.operations, summary.materials, summary.dropped,
    )
    return DetailedTree(tree=root, summary=summary)

