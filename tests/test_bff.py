"""
Tests for the backend-for-frontend proxy
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from focus_todo.bff.app import create_app
from focus_todo.server.auth import create_access_token


UPSTREAM = "http://resource.test"


@pytest.fixture
def upstream_calls():
    return []


@pytest.fixture
def handler(upstream_calls):
    def handle(request):
        upstream_calls.append(request)
        return httpx.Response(
            200,
            json={"path": request.url.path, "method": request.method},
            headers={"content-type": "application/json"},
        )
    return handle


def bff_client(handler):
    upstream = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=UPSTREAM)
    return TestClient(create_app(client=upstream))


@pytest.fixture
def auth_headers(test_config):
    return {"Authorization": f"Bearer {create_access_token('alice')}"}


class TestBffProxy:
    """Test token checks and request forwarding"""

    def test_health(self, test_config, handler):
        with bff_client(handler) as client:
            assert client.get("/health").json()["service"] == "focus-todo-bff"

    def test_rejects_missing_token(self, test_config, handler, upstream_calls):
        with bff_client(handler) as client:
            response = client.get("/api/tasks")
        assert response.status_code == 401
        assert upstream_calls == []

    def test_rejects_invalid_token(self, test_config, handler, upstream_calls):
        with bff_client(handler) as client:
            response = client.get("/api/tasks", headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401
        assert upstream_calls == []

    def test_forwards_get_with_query(self, handler, upstream_calls, auth_headers):
        with bff_client(handler) as client:
            response = client.get(
                "/api/analytics/weekly",
                params={"startDate": "2024-01-01", "endDate": "2024-01-07"},
                headers=auth_headers,
            )

        assert response.status_code == 200
        assert response.json() == {"path": "/api/analytics/weekly", "method": "GET"}
        forwarded = upstream_calls[0]
        assert str(forwarded.url) == f"{UPSTREAM}/api/analytics/weekly?startDate=2024-01-01&endDate=2024-01-07"
        assert forwarded.headers["authorization"] == auth_headers["Authorization"]

    def test_forwards_body(self, handler, upstream_calls, auth_headers):
        with bff_client(handler) as client:
            response = client.post("/api/tasks", json={"title": "Write"}, headers=auth_headers)

        assert response.status_code == 200
        forwarded = upstream_calls[0]
        assert forwarded.method == "POST"
        assert json.loads(forwarded.content) == {"title": "Write"}
        assert forwarded.headers["content-type"] == "application/json"

    def test_relays_upstream_errors(self, auth_headers):
        def handle(request):
            return httpx.Response(404, json={"detail": "Task 9 not found", "type": "not_found"})

        with bff_client(handle) as client:
            response = client.delete("/api/tasks/9", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["type"] == "not_found"

    def test_unreachable_upstream_is_502(self, auth_headers):
        def handle(request):
            raise httpx.ConnectError("connection refused", request=request)

        with bff_client(handle) as client:
            response = client.get("/api/tasks", headers=auth_headers)

        assert response.status_code == 502
        assert response.json()["type"] == "bad_gateway"

    def test_upstream_timeout_is_502(self, auth_headers):
        def handle(request):
            raise httpx.ReadTimeout("slow", request=request)

        with bff_client(handle) as client:
            response = client.get("/api/tasks", headers=auth_headers)

        assert response.status_code == 502
        assert response.json()["detail"] == "Resource server timed out"
