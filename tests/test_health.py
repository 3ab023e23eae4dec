"""Tests — health endpoints and app-level error handlers."""

import pytest

from app.middleware.rate_limiter import rate_limit_key

pytestmark = pytest.mark.integration


class TestHealth:

    def test_liveness(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").get_json() == {"status": "ok"}

    def test_live_details(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        checks = res.get_json()["checks"]
        assert checks["database"]["status"] == "ok"
        assert checks["llm"] == {"status": "ok", "provider": "local"}
        assert checks["price_catalog_cache"]["status"] == "disabled"


class TestErrorHandlers:

    def test_unknown_api_route(self, client):
        res = client.get("/api/v1/nope")
        assert res.status_code == 404
        assert res.get_json()["path"] == "/api/v1/nope"

    def test_method_not_allowed(self, client):
        assert client.delete("/api/v1/health/ready").status_code == 405


class TestRateLimitKey:

    def test_principal_key(self, app):
        with app.test_request_context("/api/v1/offers/generate", headers={"X-User-Email": "a@b.hu"}):
            app.preprocess_request()
            assert rate_limit_key() == "principal:a@b.hu"

    def test_anonymous_falls_back_to_ip(self, app):
        with app.test_request_context("/api/v1/offers/generate", environ_base={"REMOTE_ADDR": "10.0.0.7"}):
            app.preprocess_request()
            assert rate_limit_key() == "10.0.0.7"
