"""
Tests for row parsing into typed nodes.
Run with: pytest tests/test_models.py -v
"""
import logging
from wotree.models import (
    MaterialNode,
    NodeType,
    OperationNode,
    WorkOrderNode,
    parse_rows,
    parse_work_orders,
)
from wotree.source import sample_rows


def test_rows_dispatch_on_node_type():
    nodes = parse_rows(sample_rows())
    assert len(nodes) == len(sample_rows())
    assert isinstance(nodes[0], WorkOrderNode)
    assert isinstance(nodes[1], OperationNode)
    assert isinstance(nodes[2], MaterialNode)
    assert nodes[2].operation_key == ("0", 10)


def test_identity_fields_trimmed():
    [node] = parse_rows([{"nodeType": "OP", "subId": " 5 ", "opSeq": 20, "sortKey": "005-0020-0000"}])
    assert node.sub_id == "5"
    assert node.key == ("5", 20)


def test_blank_parent_is_unlinked():
    [wo] = parse_rows([{"nodeType": "WO", "subId": "0", "sortKey": "000", "parentSubId": "  "}])
    assert wo.parent_sub_id is None
    assert wo.is_root
    assert not wo.is_linked


def test_malformed_rows_skipped(caplog):
    rows = [
        {"nodeType": "WO", "subId": "0", "sortKey": "000-0000-0000"},
        {"nodeType": "OP", "subId": "0", "sortKey": "000-0010-0000"},        # no opSeq
        {"nodeType": "MAT", "subId": "", "opSeq": 10, "pieceNo": 1, "sortKey": "x"},
        {"nodeType": "XX", "subId": "0", "sortKey": "y"},
        {"subId": "0", "sortKey": "z"},                                       # no type
    ]
    with caplog.at_level(logging.WARNING, logger="wotree.models"):
        nodes = parse_rows(rows)
    assert len(nodes) == 1
    assert len([r for r in caplog.records if "malformed" in r.message]) == 4


def test_default_type_for_simplified_rows():
    nodes = parse_rows(
        [{"subId": "1", "sortKey": "000.001", "parentSubId": "0"}],
        default_type=NodeType.WORK_ORDER,
    )
    assert isinstance(nodes[0], WorkOrderNode)
    assert nodes[0].parent_sub_id == "0"


def test_serializes_with_camel_case_aliases():
    [node] = parse_rows([{"nodeType": "MAT", "subId": "0", "opSeq": 10, "pieceNo": 2, "sortKey": "k"}])
    data = node.model_dump(by_alias=True)
    assert data["nodeType"] == "MAT"
    assert data["pieceNo"] == 2
    assert data["sortKey"] == "k"


def test_parse_work_orders_skips_blank_ids():
    rows = [{"subId": "0", "partId": "ASSY"}, {"subId": " "}, {"partId": "NOID"}]
    work_orders = parse_work_orders(rows)
    assert [wo.sub_id for wo in work_orders] == ["0"]


def test_query_shaped_rows_keep_quantity_and_extra_columns():
    rows = [
        {"nodeType": "WO", "subId": "0", "sortKey": "000-0000-0000",
         "qty": 4, "linkPieceNo": 3, "formattedId": "8113/00"},
        {"nodeType": "MAT", "subId": "0", "opSeq": 10, "pieceNo": 1,
         "sortKey": "000-0010-0001", "qty": None},
    ]
    wo, mat = parse_rows(rows)
    assert wo.order_qty == 4
    assert mat.qty is None

    data = wo.model_dump(by_alias=True)
    assert data["orderQty"] == 4
    assert data["linkPieceNo"] == 3
    assert data["formattedId"] == "8113/00"
    assert data["sortKey"] == "000-0000-0000"
    assert "qty" not in data


def test_simplified_rows_accept_sort_path():
    [wo] = parse_rows(
        [{"subId": "1", "sortPath": "000.001", "parentSubId": "0"}],
        default_type=NodeType.WORK_ORDER,
    )
    assert wo.sort_key == "000.001"
    assert wo.model_dump(by_alias=True)["sortKey"] == "000.001"
