"""
Data models for the work-order tree engine.

Rows arrive from the row source as dicts keyed by camelCase column aliases
(``nodeType``, ``subId``, ``opSeq`` ...). They are validated into one of three
node variants, discriminated by ``nodeType``.
"""
from __future__ import annotations
import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Iterable, Literal, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

ROOT_SUB_ID = "0"


class NodeType(str, Enum):
    """The three row kinds emitted by the detailed tree query."""
    WORK_ORDER = "WO"
    OPERATION  = "OP"
    MATERIAL   = "MAT"


class _NodeBase(BaseModel):
    """
    Identity and ordering header shared by every row.

    Columns the engine does not model are kept as extras and serialized
    back under the names they arrived with.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    sub_id: str
    # simplified rows carry the work-order path as sortPath
    sort_key: str = Field(
        alias="sortKey",
        validation_alias=AliasChoices("sortKey", "sortPath"),
        serialization_alias="sortKey",
    )
    depth: int = 0                              # hint from the query; recomputed
    status: Optional[str] = None

    @field_validator("sub_id", "sort_key", mode="before")
    @classmethod
    def must_not_be_empty(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            raise ValueError("Field must not be empty")
        return str(v).strip()


class WorkOrderNode(_NodeBase):
    node_type: Literal["WO"] = "WO"
    part_id: Optional[str] = None
    part_description: Optional[str] = None
    # the detailed query emits the work-order quantity as qty
    order_qty: Optional[float] = Field(
        default=0,
        alias="orderQty",
        validation_alias=AliasChoices("orderQty", "qty"),
        serialization_alias="orderQty",
    )
    type: Optional[str] = None
    start_date: Optional[datetime] = None
    finish_date: Optional[datetime] = None
    close_date: Optional[datetime] = None
    parent_sub_id: Optional[str] = None         # set only on subordinate work orders
    parent_op_seq: Optional[int] = None

    @field_validator("parent_sub_id", mode="before")
    @classmethod
    def blank_is_none(cls, v: Any) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return str(v).strip()

    @property
    def is_root(self) -> bool:
        return self.sub_id == ROOT_SUB_ID

    @property
    def is_linked(self) -> bool:
        """True when this work order was launched by a parent operation."""
        return self.parent_sub_id is not None and self.parent_op_seq is not None


class OperationNode(_NodeBase):
    node_type: Literal["OP"] = "OP"
    op_seq: int
    resource_id: Optional[str] = None
    resource_description: Optional[str] = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.sub_id, self.op_seq)


class MaterialNode(_NodeBase):
    node_type: Literal["MAT"] = "MAT"
    op_seq: int
    piece_no: int
    part_id: Optional[str] = None
    part_description: Optional[str] = None
    qty: Optional[float] = None
    dimensions: Optional[str] = None

    @property
    def operation_key(self) -> tuple[str, int]:
        return (self.sub_id, self.op_seq)


FlatNode = Annotated[
    Union[WorkOrderNode, OperationNode, MaterialNode],
    Field(discriminator="node_type"),
]

_flat_node_adapter: TypeAdapter[FlatNode] = TypeAdapter(FlatNode)


def parse_rows(rows: Iterable[dict], default_type: Optional[NodeType] = None) -> list[FlatNode]:
    """
    Validate raw rows into typed nodes.

    Rows that fail validation (missing identity keys, unknown node type) are
    skipped and logged; the rest of the batch is still returned.
    ``default_type`` fills in ``nodeType`` for row sets that omit it, such as
    the simplified work-order query.
    """
    nodes: list[FlatNode] = []
    for i, row in enumerate(rows):
        if default_type is not None and "nodeType" not in row and "node_type" not in row:
            row = {**row, "nodeType": default_type.value}
        try:
            nodes.append(_flat_node_adapter.validate_python(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed row %d: %s", i, exc.errors(include_url=False))
    return nodes


def parse_work_orders(rows: Iterable[dict]) -> list[WorkOrderRow]:
    """Validate parent-map work-order rows; malformed rows are skipped."""
    work_orders: list[WorkOrderRow] = []
    for i, row in enumerate(rows):
        try:
            work_orders.append(WorkOrderRow.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed work order row %d: %s", i, exc.errors(include_url=False))
    return work_orders


class TreeNode(BaseModel):
    """A flat node placed in the assembled tree."""
    node: FlatNode
    depth: int = 0
    children: list[TreeNode] = []

    @property
    def node_type(self) -> NodeType:
        return NodeType(self.node.node_type)


class TreeSummary(BaseModel):
    """Node counts over the input rows of a detailed tree request."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    work_orders: int
    operations: int
    materials: int
    total_nodes: int
    dropped: int = 0                    # input nodes not reachable from the root


class DetailedTree(BaseModel):
    tree: Optional[TreeNode] = None
    summary: Optional[TreeSummary] = None


class SimplifiedTreeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tree: Optional[TreeNode] = None
    total_work_orders: int = 0


# ── Hierarchy walker ────────────────────────────────────────────────

class WorkOrderRow(BaseModel):
    """A work order as listed for the parent-map walk."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    sub_id: str
    part_id: Optional[str] = None
    part_description: Optional[str] = None
    status: Optional[str] = None

    @field_validator("sub_id", mode="before")
    @classmethod
    def must_not_be_empty(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            raise ValueError("Field must not be empty")
        return str(v).strip()


class AscentStatus(str, Enum):
    OK             = "ok"
    CYCLE          = "cycle"
    DEPTH_EXCEEDED = "depth_exceeded"


class DiagnosticKind(str, Enum):
    CYCLE              = "cycle"
    DEPTH_EXCEEDED     = "depth_exceeded"
    CONFLICTING_PARENT = "conflicting_parent"


class HierarchyEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    work_order: WorkOrderRow
    depth: int
    path: str
    status: AscentStatus = AscentStatus.OK


class Diagnostic(BaseModel):
    """A data-integrity finding recorded during a hierarchy walk."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kind: DiagnosticKind
    sub_id: str
    message: str
    chain: list[str] = []


class HierarchyResponse(BaseModel):
    entries: list[HierarchyEntry]
    diagnostics: list[Diagnostic]
