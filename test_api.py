"""
Tests for the Alchemy Worker Flask API.

Uses the Flask test client; requests.post is patched so the Alchemy API is
never contacted.
"""

from unittest.mock import MagicMock, patch

import pytest

from api import build_registry, create_app
from config import AlchemyConfig

WALLET = "0xde0B295669a9FD93d5F28D9Ec85E40f4cb697BAe"


@pytest.fixture
def client():
    app = create_app(build_registry(AlchemyConfig(api_key="test_key")))
    app.config["TESTING"] = True
    return app.test_client()


def make_response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = payload
    return resp


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "service": "Alchemy Worker"}


def test_functions_manifest(client):
    data = client.get("/functions").get_json()
    assert [f["name"] for f in data["functions"]] == ["get_transaction_history"]
    assert data["workers"][0]["id"] == "alchemy_worker"


def test_invoke_success(client):
    envelope = {"after": "", "totalCount": 0, "transactions": []}
    with patch("data_fetch.requests.post", return_value=make_response(envelope)):
        resp = client.post("/functions/get_transaction_history", json={"address": WALLET})

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["status"] == "done"
    assert data["feedback"].startswith("Transaction history fetched successfully.")
    assert data["logs"] == [
        f"Fetching transaction history for address: {WALLET} on networks: ETH_MAINNET",
        "Successfully fetched 0 transactions.",
    ]


def test_invoke_failure_returns_422(client):
    with patch("data_fetch.requests.post") as post:
        resp = client.post("/functions/get_transaction_history", json={"address": "nope"})
    assert resp.status_code == 422
    assert resp.get_json()["status"] == "failed"
    assert resp.get_json()["logs"] == []
    post.assert_not_called()


def test_invoke_unknown_function(client):
    resp = client.post("/functions/does_not_exist", json={})
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "NOT_FOUND"


def test_invoke_rejects_non_object_body(client):
    resp = client.post("/functions/get_transaction_history", json=["0x"])
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_INPUT"


def test_invoke_rejects_bad_json(client):
    resp = client.post(
        "/functions/get_transaction_history",
        data="{not json",
        content_type="application/json",
    )
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_JSON"


def test_method_not_allowed(client):
    resp = client.get("/functions/get_transaction_history")
    assert resp.status_code == 405
    assert resp.get_json()["code"] == "METHOD_NOT_ALLOWED"
