"""
Tests for webgate/gateway/app.py: service routes, middleware and error handlers
"""

from __future__ import annotations

from webgate import __version__
from webgate.gateway.app import ENDPOINTS


class TestServiceRoutes:
    """Test / and /docs"""

    def test_root(self, client, api_context):
        api_context.current_mode = "webai"
        assert client.get("/").json() == {
            "status": "ok",
            "service": "web-model-api-gateway",
            "active_provider": "gemini-web",
            "mode": "webai",
        }

    def test_docs(self, client):
        body = client.get("/docs").json()
        assert body["version"] == __version__
        assert body["endpoints"] == ENDPOINTS
        assert "POST /v1/chat/completions" in body["endpoints"]

    def test_unknown_route(self, client):
        assert client.get("/nope").status_code == 404


class TestMiddleware:
    """Test request IDs and CORS"""

    def test_request_id_is_generated(self, client):
        response = client.get("/")
        assert response.headers["X-Request-ID"].startswith("req-")

    def test_request_id_is_echoed(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-from-client"})
        assert response.headers["X-Request-ID"] == "req-from-client"

    def test_cors_preflight(self, client):
        response = client.options(
            "/v1/chat/completions",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] in ("*", "http://localhost:3000")


class TestErrorHandlers:
    """Test error serialization"""

    def test_null_body_rejected(self, client):
        response = client.post(
            "/gemini", content=b"null", headers={"Content-Type": "application/json"}
        )
        assert response.json() == {"detail": "Invalid JSON body"}

    def test_empty_body_rejected(self, client):
        response = client.post("/gemini")
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid JSON body"}
