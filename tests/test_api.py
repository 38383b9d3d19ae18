"""
Tests for the HTTP routes against the in-memory row source.
Run with: pytest tests/test_api.py -v
"""
import pytest
from fastapi.testclient import TestClient
from wotree.main import _source, app
from wotree.source import sample_rows

client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_source():
    _source.clear()
    _source.load(("8113", "00"), sample_rows())
    yield


def test_detailed_tree():
    resp = client.get("/work-orders/8113/00/tree/detailed")
    assert resp.status_code == 200
    body = resp.json()
    assert body["summary"] == {
        "workOrders": 2, "operations": 4, "materials": 3, "totalNodes": 9, "dropped": 0,
    }
    root = body["tree"]
    assert root["depth"] == 0
    assert root["node"]["nodeType"] == "WO"
    op10 = root["children"][0]
    assert [c["node"]["nodeType"] for c in op10["children"]] == ["WO", "OP", "OP", "MAT"]


def test_simplified_tree():
    resp = client.get("/work-orders/8113/00/tree")
    assert resp.status_code == 200
    body = resp.json()
    assert body["totalWorkOrders"] == 2
    child = body["tree"]["children"][0]
    assert child["node"]["subId"] == "1"
    assert child["depth"] == 1


def test_unknown_work_order_is_404():
    assert client.get("/work-orders/9999/00/tree/detailed").status_code == 404
    assert client.get("/work-orders/9999/00/tree").status_code == 404
    assert client.get("/work-orders/9999/00/hierarchy").status_code == 404


def test_seeded_rows_keep_unmodeled_columns():
    rows = [{
        "nodeType": "WO", "subId": "0", "sortKey": "000-0000-0000",
        "qty": 4, "linkPieceNo": 3, "formattedId": "8113/00",
    }]
    client.post("/work-orders/seed", json={"base_id": "55", "lot_id": "0", "rows": rows})
    node = client.get("/work-orders/55/0/tree/detailed").json()["tree"]["node"]
    assert node["orderQty"] == 4
    assert node["linkPieceNo"] == 3
    assert node["formattedId"] == "8113/00"


def test_hierarchy():
    resp = client.get("/work-orders/8113/00/hierarchy")
    assert resp.status_code == 200
    body = resp.json()
    assert [e["workOrder"]["subId"] for e in body["entries"]] == ["0", "1"]
    assert body["entries"][1]["path"] == "000 ASSY-100 -> 001 SHAFT-20"
    assert body["diagnostics"] == []


def test_hierarchy_rejects_zero_max_depth():
    assert client.get("/work-orders/8113/00/hierarchy", params={"max_depth": 0}).status_code == 422


def test_seed_with_cycle_reports_diagnostic():
    rows = [
        {"nodeType": "WO", "subId": "0", "sortKey": "000-0000-0000"},
        {"nodeType": "WO", "subId": "1", "sortKey": "000.001-0000-0000", "parentSubId": "2", "parentOpSeq": 10},
        {"nodeType": "WO", "subId": "2", "sortKey": "000.002-0000-0000", "parentSubId": "1", "parentOpSeq": 10},
    ]
    resp = client.post("/work-orders/seed", json={"base_id": "77", "lot_id": "1", "rows": rows})
    assert resp.json() == {"loaded": 3}

    body = client.get("/work-orders/77/1/hierarchy").json()
    statuses = {e["workOrder"]["subId"]: e["status"] for e in body["entries"]}
    assert statuses == {"0": "ok", "1": "cycle", "2": "cycle"}
    assert body["diagnostics"][0]["kind"] == "cycle"
