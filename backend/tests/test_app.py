"""
Application-level behaviour: error envelope, health, correlation ids and
rate limiting.
"""
import asyncio
import json
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from nyaya_mitra.core.config import settings
from nyaya_mitra.core.error_handlers import integrity_error_handler, unhandled_exception_handler
from nyaya_mitra.core.rate_limit import get_client_ip, limiter
from nyaya_mitra.utils.helpers import isoformat_utc


def _request(path="/api/things", headers=None, client=("10.0.0.9", 5000)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


def _raised(exc):
    try:
        raise exc
    except Exception as caught:
        return caught


def _body(response):
    return json.loads(response.body)


class TestErrorEnvelope:

    def test_unknown_route(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "API endpoint not found"
        assert body["code"] == "NOT_FOUND"
        assert body["path"] == "/api/nothing-here"
        assert body["timestamp"].endswith("Z")

    def test_validation_details(self, client):
        response = client.post("/api/auth/register", json={"username": "x"})
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        fields = {d["field"] for d in body["details"]}
        assert {"email", "password"} <= fields

    def test_unhandled_error_outside_production(self):
        response = asyncio.run(unhandled_exception_handler(_request(), _raised(RuntimeError("boom"))))
        body = _body(response)
        assert response.status_code == 500
        assert body["error"] == "boom"
        assert body["code"] == "INTERNAL_ERROR"
        assert "RuntimeError" in body["stack"]

    def test_unhandled_error_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        response = asyncio.run(unhandled_exception_handler(_request(), _raised(RuntimeError("db password wrong"))))
        body = _body(response)
        assert body["error"] == "Internal Server Error"
        assert "stack" not in body
        assert "details" not in body

    def test_integrity_errors(self):
        unique = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))
        foreign = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
        other = IntegrityError("INSERT", {}, Exception("CHECK constraint failed: status"))

        assert _body(asyncio.run(integrity_error_handler(_request(), unique)))["code"] == "DUPLICATE_ENTRY"
        assert asyncio.run(integrity_error_handler(_request(), unique)).status_code == 409
        assert _body(asyncio.run(integrity_error_handler(_request(), foreign)))["code"] == "FOREIGN_KEY_ERROR"
        assert _body(asyncio.run(integrity_error_handler(_request(), other)))["code"] == "CONSTRAINT_ERROR"


class TestHealth:

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "OK"
        assert body["version"] == settings.VERSION
        assert body["uptime"] >= 0

    def test_correlation_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"
        assert client.get("/api/health").headers["X-Correlation-ID"]


class TestTimestamps:

    def test_naive_values_are_taken_as_utc(self):
        assert isoformat_utc(datetime(2025, 1, 15, 10, 0, 0, 250000)) == "2025-01-15T10:00:00.250Z"

    def test_aware_values_are_converted(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        assert isoformat_utc(datetime(2025, 1, 15, 15, 30, tzinfo=ist)) == "2025-01-15T10:00:00.000Z"

    def test_response_timestamps_carry_zone(self, client, register_user):
        assert register_user()["user"]["createdAt"].endswith("Z")
        login = client.post("/api/auth/login", json={"email": "asha@test.com", "password": "Passw0rd!"}).json()
        assert login["user"]["lastLoginAt"].endswith("Z")


class TestRateLimiting:

    def test_client_ip_resolution(self):
        assert get_client_ip(_request(headers={"X-Forwarded-For": "1.2.3.4, 10.0.0.1"})) == "1.2.3.4"
        assert get_client_ip(_request(headers={"X-Real-IP": "5.6.7.8"})) == "5.6.7.8"
        assert get_client_ip(_request()) == "10.0.0.9"

    def test_auth_routes_are_limited(self, client):
        limiter.reset()
        limiter.enabled = True
        try:
            codes = []
            for i in range(8):
                response = client.post(
                    "/api/auth/login",
                    json={"email": f"nobody{i}@test.com", "password": "Passw0rd!"},
                    headers={"X-Forwarded-For": "203.0.113.7"},
                )
                codes.append((response.status_code, response.json()["code"]))
        finally:
            limiter.enabled = False
            limiter.reset()

        assert codes[0] == (401, "INVALID_CREDENTIALS")
        assert (429, "RATE_LIMITED") in codes
