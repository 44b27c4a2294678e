from __future__ import annotations

import typing as t

import pytest
from fastapi.testclient import TestClient

from tracker.config import Config
from tracker.plugin import ContractTracker
from tracker.rpc import deps
from tracker.rpc.server import create_app

from tests.fakes import (FakeInvoker, FakeSnapshot, block, contract, deploy_script, diff,
                         ok, token_contract, tx)


@pytest.fixture
def rpc_tracker(cfg: Config) -> t.Iterator[ContractTracker]:
    invoker = FakeInvoker()
    tok = token_contract(9)
    invoker.token(tok.script_hash, name="Nine", symbol="NIN", decimals=2, total_supply=900)
    with ContractTracker(cfg, invoker=invoker) as tr:
        snap = FakeSnapshot()
        t1 = tx(1, deploy_script(tok))
        tr.on_persist(snap, block(5, t1), [diff("Created", tok)], [ok(t1)])
        tr.on_persist(snap, block(6), [diff("Updated", contract(3))], [])
        tr.on_persist(snap, block(8), [diff("Created", contract(4))], [])
        yield tr


@pytest.fixture
def client(cfg: Config, rpc_tracker: ContractTracker) -> t.Iterator[TestClient]:
    app = create_app(cfg, rpc_tracker)
    try:
        yield TestClient(app)
    finally:
        deps.set_tracker(None)


def _call(client: TestClient, method: str, params: t.Any = None, id_: t.Any = 1) -> t.Any:
    body: dict = {"jsonrpc": "2.0", "method": method, "id": id_}
    if params is not None:
        body["params"] = params
    r = client.post("/rpc", json=body)
    assert r.status_code == 200
    return r.json()


def test_get_contract_states_returns_flat_array(client: TestClient):
    res = _call(client, "tracker.getContractStates", ["5", "2"])
    assert res["id"] == 1
    records = res["result"]
    assert [r["blockindex"] for r in records] == [5, 6]
    first = records[0]
    assert first["state"] == "Created"
    assert first["txid"] == "0x" + "01" * 32
    assert first["name"] == "Nine"
    assert first["symbol"] == "NIN"
    assert first["decimals"] == 2
    assert first["totalsupply"] == "900"
    assert "symbol" not in records[1]


def test_unparsable_params_yield_null(client: TestClient):
    assert _call(client, "tracker.getContractStates", ["five", "2"])["result"] is None
    assert _call(client, "tracker.getContractStates", ["5"])["result"] is None


def test_legacy_method_name(client: TestClient):
    res = _call(client, "getcontractstates", [7, 10])
    assert [r["blockindex"] for r in res["result"]] == [8]


def test_get_stats(client: TestClient):
    res = _call(client, "tracker.getStats")
    assert res["result"] == {"blocks": 3, "records": 3, "lastSequenceId": 3}


def test_unknown_method(client: TestClient):
    res = _call(client, "tracker.nope")
    assert res["error"]["code"] == -32601


@pytest.mark.parametrize(
    "method, params",
    [
        ("tracker.getContractStates", {"since": 1, "max": 2}),
        ("tracker.getStats", [1]),
        ("tracker.getStats", "x"),
    ],
)
def test_bad_param_shapes(client: TestClient, method, params):
    assert _call(client, method, params)["error"]["code"] == -32602


def test_parse_error_is_json_rpc_error(client: TestClient):
    r = client.post("/rpc", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 200
    body = r.json()
    assert body["error"]["code"] == -32700
    assert body["id"] is None


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"jsonrpc": "1.0", "method": "tracker.getStats", "id": 1},
        {"jsonrpc": "2.0", "method": "", "id": 1},
        "tracker.getStats",
    ],
)
def test_invalid_requests(client: TestClient, payload):
    r = client.post("/rpc", json=payload)
    assert r.json()["error"]["code"] == -32600


def test_batch_keeps_order_and_drops_notifications(client: TestClient):
    r = client.post(
        "/rpc",
        json=[
            {"jsonrpc": "2.0", "method": "tracker.getStats", "id": "a"},
            {"jsonrpc": "2.0", "method": "tracker.getStats"},
            {"jsonrpc": "2.0", "method": "tracker.nope", "id": "b"},
            42,
        ],
    )
    out = r.json()
    assert [o.get("id") for o in out] == ["a", "b", None]
    assert out[0]["result"]["records"] == 3
    assert out[1]["error"]["code"] == -32601
    assert out[2]["error"]["code"] == -32600


def test_notification_only_is_no_content(client: TestClient):
    r = client.post("/rpc", json={"jsonrpc": "2.0", "method": "tracker.getStats"})
    assert r.status_code == 204


def test_health_version_metrics(client: TestClient):
    health = client.get("/healthz")
    assert health.status_code == 200
    assert health.json()["ok"] is True

    v = client.get("/version").json()
    assert set(v) == {"version", "build"}

    _call(client, "tracker.getStats")
    m = client.get("/metrics")
    assert m.status_code == 200
    assert "tracker_jsonrpc_requests_total" in m.text
    assert "tracker_indexed_records" in m.text


def test_without_tracker_methods_are_unavailable(cfg: Config):
    deps.set_tracker(None)
    client = TestClient(create_app(cfg))
    assert client.get("/healthz").status_code == 503
    res = _call(client, "tracker.getStats")
    assert res["error"]["code"] == -32002


def test_registry_lists_canonical_names():
    from tracker.rpc.methods import list_methods

    assert list_methods("tracker") == ["tracker.getContractStates", "tracker.getStats"]
