"""
tests/test_api_auth.py -- Integration tests for the authentication routes.

These tests exercise the full stack: FastAPI routing -> AuthService ->
CredentialVerifier/UserStore -> TokenService -> response serialization.

Coverage:
  - POST /login: 200 with token for admin / Secret123!, identical 401 body for
    every rejection kind, no-store caching, 422 without echoing the password,
    503 on directory outage, 429 after the rate limit
  - POST /validate: true/false only, never an error for garbage
  - GET /me: bearer auth, 401 for missing/tampered tokens and disabled users

Fixtures used (from conftest.py):
  - api_client: TestClient after the real lifespan bootstrapped admin / Secret123!
"""

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from auth.models import User
from auth.passwords import BcryptHasher

_GENERIC_401 = {"error": {"code": "invalid_credentials", "message": "Invalid username or password."}}


@pytest.fixture(autouse=True)
def _reset_rate_limit():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture(scope="module")
def users(api_client: TestClient) -> dict[str, User]:
    """Extra accounts alongside the bootstrapped admin."""
    store = api_client.app.state.user_store
    hasher = BcryptHasher(rounds=4)
    return {
        "analyst": store.save(User(username="analyst", hashed_password=hasher.hash("analyst-pass"))),
        "dormant": store.save(User(username="dormant", hashed_password=hasher.hash("dormant-pass"), is_active=False)),
    }


def _login(client: TestClient, username: str, password: str):
    return client.post("/api/v1/auth/login", json={"username": username, "password": password})


class TestLogin:
    def test_admin_login_returns_token(self, api_client: TestClient) -> None:
        resp = _login(api_client, "admin", "Secret123!")
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["token"].count(".") == 2
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 3600

    def test_issued_token_validates_for_admin_only(self, api_client: TestClient) -> None:
        token = _login(api_client, "admin", "Secret123!").json()["token"]
        auth_service = api_client.app.state.auth_service
        assert auth_service.validate(token, "admin") is True
        assert auth_service.validate(token, "someoneelse") is False

    def test_login_response_not_cached(self, api_client: TestClient) -> None:
        resp = _login(api_client, "admin", "Secret123!")
        assert resp.headers["cache-control"] == "no-store"

    @pytest.mark.parametrize(
        ("username", "password"),
        [
            ("admin", "wrong"),
            ("nobody", "Secret123!"),
            ("dormant", "dormant-pass"),
            ("ADMIN", "Secret123!"),
        ],
    )
    def test_every_rejection_has_identical_body(
        self, api_client: TestClient, users: dict[str, User], username: str, password: str
    ) -> None:
        resp = _login(api_client, username, password)
        assert resp.status_code == 401
        assert resp.json() == _GENERIC_401
        assert resp.headers["cache-control"] == "no-store"

    def test_missing_field_is_422_without_echoing_password(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/login", json={"password": "hunter2-secret"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"]["code"] == "validation_error"
        assert "hunter2-secret" not in resp.text

    def test_oversize_password_is_422(self, api_client: TestClient) -> None:
        resp = _login(api_client, "admin", "x" * 73)
        assert resp.status_code == 422

    def test_rate_limit_after_ten_attempts(self, api_client: TestClient) -> None:
        for _ in range(10):
            assert _login(api_client, "admin", "wrong").status_code == 401
        resp = _login(api_client, "admin", "wrong")
        assert resp.status_code == 429
        assert resp.json()["error"]["code"] == "rate_limited"
        assert "retry-after" in resp.headers

    def test_directory_outage_is_503(self, api_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        from auth.errors import DirectoryError

        def _unavailable(username: str):
            raise DirectoryError("directory unavailable")

        monkeypatch.setattr(api_client.app.state.user_store, "find_by_username", _unavailable)
        resp = _login(api_client, "admin", "Secret123!")
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "service_unavailable"
        assert "directory unavailable" not in resp.text


class TestValidate:
    def test_valid_token(self, api_client: TestClient) -> None:
        token = _login(api_client, "admin", "Secret123!").json()["token"]
        resp = api_client.post("/api/v1/auth/validate", json={"token": token, "username": "admin"})
        assert resp.status_code == 200
        assert resp.json() == {"valid": True}

    def test_wrong_subject(self, api_client: TestClient) -> None:
        token = _login(api_client, "admin", "Secret123!").json()["token"]
        resp = api_client.post("/api/v1/auth/validate", json={"token": token, "username": "someoneelse"})
        assert resp.json() == {"valid": False}

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "a.b.c.d"])
    def test_garbage_is_invalid_not_an_error(self, api_client: TestClient, token: str) -> None:
        resp = api_client.post("/api/v1/auth/validate", json={"token": token, "username": "admin"})
        assert resp.status_code == 200
        assert resp.json() == {"valid": False}


class TestMe:
    def test_bearer_token_identifies_user(self, api_client: TestClient, users: dict[str, User]) -> None:
        token = _login(api_client, "analyst", "analyst-pass").json()["token"]
        resp = api_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"user_id": users["analyst"].id, "username": "analyst", "is_active": True}

    def test_missing_token_is_401(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_tampered_token_is_401(self, api_client: TestClient) -> None:
        token = _login(api_client, "admin", "Secret123!").json()["token"]
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload[:-2]}{'A' if payload[-2] != 'A' else 'B'}{payload[-1]}.{signature}"
        resp = api_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tampered}"})
        assert resp.status_code == 401

    def test_deactivated_user_token_stops_working(self, api_client: TestClient, users: dict[str, User]) -> None:
        store = api_client.app.state.user_store
        hasher = BcryptHasher(rounds=4)
        temp = store.save(User(username="temp-user", hashed_password=hasher.hash("temp-pass")))
        token = _login(api_client, "temp-user", "temp-pass").json()["token"]
        headers = {"Authorization": f"Bearer {token}"}
        assert api_client.get("/api/v1/auth/me", headers=headers).status_code == 200

        store.save(replace(temp, is_active=False))
        assert api_client.get("/api/v1/auth/me", headers=headers).status_code == 401
