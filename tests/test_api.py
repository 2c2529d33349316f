"""
HTTP-level tests for the auth and health routes.
"""

import logging
import time

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from auth.password import hash_password, verify_password
from config.settings import ConfigurationError
from main import create_app


def _signup(client, username="alice", password="secret1"):
    return client.post("/api/auth/signup", json={"username": username, "password": password})


def _login(client, username="alice", password="secret1", **kwargs):
    return client.post("/api/auth/login", json={"username": username, "password": password}, **kwargs)


class TestSignupEndpoint:
    def test_created(self, client):
        r = _signup(client)
        assert r.status_code == 201
        assert r.json() == {"success": True, "message": "User created successfully", "username": "alice"}

    def test_duplicate(self, client):
        _signup(client)
        r = _signup(client, password="other12")
        assert r.status_code == 409
        assert r.json() == {"success": False, "message": "Username already exists"}

    def test_short_password(self, client):
        r = _signup(client, password="123")
        assert r.status_code == 400
        assert r.json()["success"] is False
        assert "at least 6" in r.json()["message"]

    def test_missing_fields(self, client):
        r = client.post("/api/auth/signup", json={})
        assert r.status_code == 400
        assert r.json() == {"success": False, "message": "Username and password are required"}

    def test_body_not_json(self, client):
        r = client.post("/api/auth/signup", content=b"username=alice", headers={"Content-Type": "text/plain"})
        assert r.status_code == 400
        assert r.json()["success"] is False

    def test_wrongly_typed_field(self, client):
        r = client.post("/api/auth/signup", json={"username": 123, "password": "secret1"})
        assert r.status_code == 400
        assert r.json() == {"success": False, "message": "Invalid request body"}

    def test_body_absent(self, client):
        r = client.post("/api/auth/signup")
        assert r.status_code == 400
        assert r.json() == {"success": False, "message": "Username and password are required"}

    def test_response_never_contains_hash(self, client):
        body = _signup(client).text
        assert "$2b$" not in body
        assert "secret1" not in body


class TestLoginEndpoint:
    def test_success_sets_token_and_cookie(self, client):
        _signup(client)
        r = _login(client)
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["message"] == "Login successful"
        assert body["token"]
        assert body["username"] == "alice"

        cookie = r.headers["set-cookie"]
        assert cookie.startswith(f"authToken={body['token']}")
        lowered = cookie.lower()
        assert "httponly" in lowered
        assert "samesite=strict" in lowered
        assert "max-age=7200" in lowered
        assert "secure" not in lowered

    def test_cookie_secure_behind_https_proxy(self, client):
        _signup(client)
        r = _login(client, headers={"X-Forwarded-Proto": "https"})
        assert "secure" in r.headers["set-cookie"].lower()

    def test_wrong_password_and_unknown_user_identical(self, client):
        _signup(client)
        wrong = _login(client, password="wrong")
        unknown = _login(client, username="nobody")
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"success": False, "message": "Invalid credentials"}
        assert "set-cookie" not in wrong.headers

    def test_missing_password(self, client):
        r = client.post("/api/auth/login", json={"username": "alice"})
        assert r.status_code == 400

    def test_unknown_user_logins_hash_nothing_per_request(self, client):
        _signup(client)
        with patch("auth.service.hash_password", wraps=hash_password) as hashed, \
                patch("auth.service.verify_password", wraps=verify_password) as verified:
            assert _login(client, password="wrong").status_code == 401
            for name in ("bob", "carol", "dave"):
                assert _login(client, username=name).status_code == 401
        assert hashed.call_count == 0
        assert verified.call_count == 4


class TestVerifyEndpoint:
    def test_no_token_is_401(self, client):
        r = client.get("/api/auth/verify")
        assert r.status_code == 401
        assert r.json() == {"success": False, "message": "Access token required"}

    def test_bearer_token(self, client):
        _signup(client)
        token = _login(client).json()["token"]
        client.cookies.clear()
        r = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200
        assert r.json()["user"]["username"] == "alice"
        assert r.json()["user"]["userId"]

    def test_cookie_token(self, client):
        _signup(client)
        _login(client)
        r = client.get("/api/auth/verify")
        assert r.status_code == 200
        assert r.json()["message"] == "Token is valid"

    def test_invalid_token_is_403(self, client):
        r = client.get("/api/auth/verify", headers={"Authorization": "Bearer not.a-token"})
        assert r.status_code == 403
        assert r.json() == {"success": False, "message": "Invalid or expired token"}

    def test_expired_token_is_403(self, client):
        _signup(client)
        _login(client)
        client.cookies.clear()
        signer = client.app.state.token_signer
        stale = signer.issue("some-id", "alice", now=time.time() - signer.ttl_seconds - 1)
        r = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {stale}"})
        assert r.status_code == 403


class TestLogoutEndpoint:
    def test_clears_cookie(self, client):
        _signup(client)
        _login(client)
        r = client.post("/api/auth/logout")
        assert r.status_code == 200
        assert r.json() == {"success": True, "message": "Logged out successfully"}
        cookie = r.headers["set-cookie"].lower()
        assert cookie.startswith("authtoken=")
        assert "max-age=0" in cookie
        assert "httponly" in cookie
        assert "samesite=strict" in cookie

        assert client.get("/api/auth/verify").status_code == 401

    def test_token_stays_valid_after_logout(self, client):
        _signup(client)
        token = _login(client).json()["token"]
        client.post("/api/auth/logout")
        r = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200


class TestScenario:
    def test_alice(self, client):
        assert _signup(client, "alice", "secret1").json()["success"] is True

        dup = _signup(client, "alice", "other12").json()
        assert dup["success"] is False
        assert "exists" in dup["message"]

        bad = _login(client, "alice", "wrong").json()
        assert bad == {"success": False, "message": "Invalid credentials"}

        good = _login(client, "alice", "secret1").json()
        assert good["success"] is True
        token = good["token"]

        client.cookies.clear()
        verified = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"}).json()
        assert verified["success"] is True
        assert verified["user"]["username"] == "alice"

        claims = client.app.state.token_signer.verify(token)
        stale = client.app.state.token_signer.issue(claims.userId, claims.username, now=claims.iat - 7200)
        r = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {stale}"})
        assert r.status_code == 403


class TestHealth:
    def test_api_health(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "OK"
        assert body["database"] == "Connected"
        assert isinstance(body["uptime"], int)

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "OK"
        assert body["environment"] == "development"
        assert body["uptime"].endswith("seconds")

    def test_auth_router_health(self, client):
        assert client.get("/api/auth/health").json()["status"] == "OK"

    def test_process_time_header(self, client):
        assert "x-process-time" in client.get("/api/health").headers


class TestRequestTracing:
    def test_request_id_is_generated(self, client):
        request_id = client.get("/api/health").headers["x-request-id"]
        assert len(request_id) == 32
        assert client.get("/api/health").headers["x-request-id"] != request_id

    def test_caller_request_id_is_echoed_on_errors_too(self, client):
        r = client.get("/api/auth/verify", headers={"X-Request-ID": "trace-42"})
        assert r.status_code == 401
        assert r.headers["x-request-id"] == "trace-42"

    def test_malformed_request_id_is_replaced(self, client):
        r = client.get("/api/health", headers={"X-Request-ID": "bad id with spaces"})
        assert r.headers["x-request-id"] != "bad id with spaces"
        assert len(r.headers["x-request-id"]) == 32

    def test_health_checks_are_not_logged(self, client, caplog):
        with caplog.at_level(logging.DEBUG, logger="api.middleware"):
            client.get("/api/health")
            client.get("/api/auth/verify", headers={"X-Request-ID": "trace-7"})
        lines = [rec.getMessage() for rec in caplog.records if rec.name == "api.middleware"]
        assert not any("/api/health" in line for line in lines)
        assert any(line.startswith("[trace-7] GET /api/auth/verify 401") for line in lines)


class TestDegradedMode:
    @pytest.fixture()
    def degraded(self, make_settings):
        with TestClient(create_app(make_settings(database_url=None))) as c:
            yield c

    def test_signup_reports_store_unavailable(self, degraded):
        r = _signup(degraded)
        assert r.status_code == 503
        assert r.json()["success"] is False

    def test_login_reports_store_unavailable(self, degraded):
        assert _login(degraded).status_code == 503

    def test_health_still_answers(self, degraded):
        assert degraded.get("/api/health").json()["database"] == "Not configured"

    def test_validation_still_runs_first(self, degraded):
        assert _signup(degraded, password="1").status_code == 400


class TestAppErrors:
    def test_unknown_route(self, client):
        r = client.get("/api/nope")
        assert r.status_code == 404
        body = r.json()
        assert body["success"] is False
        assert body["message"] == "Route not found"
        assert "POST /api/auth/login" in body["availableRoutes"]

    def test_unexpected_error_is_generic_500(self, make_settings):
        app = create_app(make_settings())

        @app.get("/boom")
        async def boom():
            raise RuntimeError("database password is hunter2")

        with TestClient(app, raise_server_exceptions=False) as c:
            r = c.get("/boom")
        assert r.status_code == 500
        assert r.json() == {"success": False, "message": "Internal server error"}

    def test_startup_refuses_missing_secret(self, make_settings):
        app = create_app(make_settings(jwt_secret=""))
        with pytest.raises(ConfigurationError):
            with TestClient(app):
                pass

    def test_startup_with_insecure_fallback(self, make_settings):
        app = create_app(make_settings(jwt_secret="", allow_insecure_jwt_secret=True))
        with TestClient(app) as c:
            _signup(c)
            token = _login(c).json()["token"]
            assert c.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"}).status_code == 200
