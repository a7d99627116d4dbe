"""Tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from main import create_app


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as client:
        yield client


def test_list_operations(client):
    response = client.get("/api/ops")
    assert response.status_code == 200
    operations = response.json()["operations"]
    assert "temporary_password" in operations
    assert operations == sorted(operations)


def test_call_without_args(client):
    response = client.post("/api/call/get_connect_status")
    assert response.status_code == 200
    assert response.json() == {"result": [0, False, ""]}


def test_call_with_args(client):
    client.post("/api/call/store_fav", json={"fav": ["b", "", "a", "b"]})
    response = client.post("/api/call/get_fav", json={})
    assert response.json() == {"result": ["b", "a"]}


def test_unknown_operation_is_404(client):
    assert client.post("/api/call/nope", json={}).status_code == 404


def test_malformed_args_are_422(client):
    response = client.post("/api/call/get_peer", json={"peer_id": "../../etc"})
    assert response.status_code == 422


def test_void_operations_return_null(client):
    response = client.post("/api/call/update_temporary_password")
    assert response.json() == {"result": None}


def test_session_publish_and_status(client):
    status = client.get("/api/status").json()
    assert status["connection"] == {"status_code": 0, "key_confirmed": False, "active_peer_id": ""}
    assert status["job"]["state"] == "idle"

    client.put(
        "/api/session",
        json={"status_code": 1, "key_confirmed": True, "active_peer_id": "123456789"},
    )
    assert client.get("/api/status").json()["connection"]["active_peer_id"] == "123456789"
    assert client.post("/api/call/get_connect_status").json()["result"] == [1, True, "123456789"]

    client.delete("/api/session")
    assert client.get("/api/status").json()["connection"]["status_code"] == 0


def test_change_id_via_http(client, services):
    response = client.post("/api/call/change_id", json={"id": "office01"})
    assert response.json() == {"result": True}
    services.jobs.wait(5)
    assert client.get("/api/status").json()["job"]["state"] == "succeeded"
    assert client.post("/api/call/get_id").json()["result"] == "office01"


def test_post_request_rejects_non_http_url(client, poster):
    response = client.post("/api/call/post_request", json={"url": "file:///etc/passwd"})
    assert response.status_code == 422
    assert poster.calls == []


def test_app_shutdown_stops_background_work(services):
    with TestClient(create_app(services)):
        pass
    assert services.discovery.discover() is False
    assert services.jobs.start_change_identity("office01", services.identity.get_id()) is True
    assert services.jobs.poll_status().state == "failed"
