import pytest

from api import create_app
from api.config import ProductionConfig
from models import MemorySessionStore
from utils.exceptions import ConfigError

PREFIX = "/api/v1/auth"


def _register(client, email="test@example.com", password="password123"):
    return client.post(f"{PREFIX}/register", json={"email": email, "password": password})


def _login(client, email="test@example.com", password="password123"):
    return client.post(f"{PREFIX}/login", json={"email": email, "password": password})


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_health_reports_store(client) -> None:
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "store": "MemorySessionStore"}


def test_register_created(client) -> None:
    resp = _register(client)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["user_id"]


def test_register_duplicate_is_conflict(client) -> None:
    _register(client)
    resp = _register(client)
    body = resp.get_json()
    assert resp.status_code == 409
    assert body["error"] == "CONFLICT"
    assert body["message"] == "User already exists"


def test_register_short_password_is_422(client) -> None:
    resp = _register(client, password="short")
    body = resp.get_json()
    assert resp.status_code == 422
    assert body["error"] == "VALIDATION_ERROR"
    assert "at least 8 characters" in body["message"]
    assert "password" in body["details"]


def test_login_returns_token_pair(client) -> None:
    _register(client)
    resp = _login(client)
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["token_type"] == "bearer"
    assert body["access_token"] and body["refresh_token"]


def test_login_failures_share_one_response(client) -> None:
    _register(client)
    wrong = _login(client, password="wrongpassword")
    unknown = _login(client, email="nobody@example.com")
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.get_json() == unknown.get_json()
    assert wrong.get_json()["message"] == "Invalid credentials"


def test_refresh_rotation_and_replay(client) -> None:
    _register(client)
    first = _login(client).get_json()

    rotated = client.post(f"{PREFIX}/refresh", json={"refresh_token": first["refresh_token"]})
    assert rotated.status_code == 200
    second = rotated.get_json()
    assert second["refresh_token"] != first["refresh_token"]

    replay = client.post(f"{PREFIX}/refresh", json={"refresh_token": first["refresh_token"]})
    assert replay.status_code == 401
    assert replay.get_json()["error"] == "SESSION_REVOKED"

    # the successor died with the replay
    after = client.post(f"{PREFIX}/refresh", json={"refresh_token": second["refresh_token"]})
    assert after.status_code == 401
    assert after.get_json()["error"] == "SESSION_REVOKED"


def test_refresh_with_bad_token(client) -> None:
    resp = client.post(f"{PREFIX}/refresh", json={"refresh_token": "not-a-real-token"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "INVALID_TOKEN"
    assert resp.get_json()["message"] == "Invalid refresh token"


def test_refresh_without_body_is_422(client) -> None:
    resp = client.post(f"{PREFIX}/refresh")
    assert resp.status_code == 422


@pytest.mark.parametrize("path", ["/register", "/login", "/refresh"])
@pytest.mark.parametrize("body", [["a"], [], "x", 42])
def test_non_object_json_body_is_422(client, path, body) -> None:
    resp = client.post(f"{PREFIX}{path}", json=body)
    assert resp.status_code == 422
    assert resp.get_json()["error"] == "VALIDATION_ERROR"


def test_logout_with_non_object_body_is_noop(client) -> None:
    assert client.post(f"{PREFIX}/logout", json=["a"]).status_code == 204


def test_logout_then_refresh_is_revoked(client, memory_store) -> None:
    _register(client)
    pair = _login(client).get_json()

    resp = client.post(f"{PREFIX}/logout", json={"refresh_token": pair["refresh_token"]})
    assert resp.status_code == 204
    assert memory_store.is_refresh_token_valid(pair["refresh_token"]) is False

    again = client.post(f"{PREFIX}/logout", json={"refresh_token": pair["refresh_token"]})
    assert again.status_code == 204

    resp = client.post(f"{PREFIX}/refresh", json={"refresh_token": pair["refresh_token"]})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "SESSION_REVOKED"


def test_me_requires_an_access_token(client) -> None:
    _register(client)
    pair = _login(client).get_json()

    assert client.get(f"{PREFIX}/me").status_code == 401
    assert client.get(f"{PREFIX}/me", headers=_bearer(pair["refresh_token"])).status_code == 401

    resp = client.get(f"{PREFIX}/me", headers=_bearer(pair["access_token"]))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["role"] == "user"


def test_admin_route_checks_role(app, client, memory_store) -> None:
    hasher = app.extensions["auth_service"].hasher
    memory_store.create_user(
        {"email": "admin@example.com", "hashed_password": hasher.hash("adminpass1"), "role": "admin"}
    )
    _register(client)

    user_token = _login(client).get_json()["access_token"]
    admin_token = _login(client, "admin@example.com", "adminpass1").get_json()["access_token"]

    forbidden = client.get(f"{PREFIX}/admin/ping", headers=_bearer(user_token))
    assert forbidden.status_code == 403
    assert forbidden.get_json()["error"] == "FORBIDDEN"
    assert client.get(f"{PREFIX}/admin/ping", headers=_bearer(admin_token)).status_code == 200


def test_create_app_fails_fast_without_secrets(monkeypatch) -> None:
    monkeypatch.setattr(ProductionConfig, "ACCESS_TOKEN_SECRET", None)
    monkeypatch.setattr(ProductionConfig, "REFRESH_TOKEN_SECRET", None)
    with pytest.raises(ConfigError, match="ACCESS_TOKEN_SECRET"):
        create_app("prod", store=MemorySessionStore())


def test_create_app_with_db_store(monkeypatch, tmp_path) -> None:
    from api.config import TestingConfig

    monkeypatch.setattr(TestingConfig, "SESSION_STORE", "db")
    monkeypatch.setattr(TestingConfig, "DATABASE_URL", f"sqlite:///{tmp_path / 'api.db'}")
    app = create_app("test")
    client = app.test_client()

    assert client.get("/api/v1/health").get_json()["store"] == "DBStorage"
    assert _register(client).status_code == 201
    pair = _login(client).get_json()
    rotated = client.post(f"{PREFIX}/refresh", json={"refresh_token": pair["refresh_token"]})
    assert rotated.status_code == 200
    replay = client.post(f"{PREFIX}/refresh", json={"refresh_token": pair["refresh_token"]})
    assert replay.get_json()["error"] == "SESSION_REVOKED"

    app.extensions["session_store"].dispose()
    app.extensions["credential_hasher"].close()
