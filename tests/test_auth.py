import pytest

from app.core.security import create_session_cookie, extract_bearer, load_session_cookie, secrets_match
from app.deps import SESSION_COOKIE_NAME

pytestmark = pytest.mark.asyncio


async def test_session_issued_for_admin_secret(client):
    r = await client.post("/v1/auth/session", json={"secret_key": "admin-test-key"})

    assert r.status_code == 200
    set_cookie = r.headers["set-cookie"]
    assert set_cookie.startswith(f"{SESSION_COOKIE_NAME}=")
    assert "HttpOnly" in set_cookie
    value = set_cookie.split(";", 1)[0].split("=", 1)[1]
    payload = load_session_cookie(value)
    assert payload == {"role": "admin"}


async def test_session_rejected_for_wrong_secret(client):
    r = await client.post("/v1/auth/session", json={"secret_key": "guess"})
    assert r.status_code == 401
    assert "set-cookie" not in r.headers


async def test_me_with_session(admin_client):
    r = await admin_client.get("/v1/auth/me")
    assert r.status_code == 200
    assert r.json() == {"role": "admin"}


async def test_non_admin_session_is_forbidden(client):
    client.cookies.set(SESSION_COOKIE_NAME, create_session_cookie({"role": "viewer"}))
    r = await client.get("/v1/auth/me")
    assert r.status_code == 403


async def test_tampered_session_is_rejected(client):
    client.cookies.set(SESSION_COOKIE_NAME, create_session_cookie({"role": "admin"}) + "x")
    r = await client.get("/v1/auth/me")
    assert r.status_code == 401


async def test_secret_helpers():
    assert secrets_match("abc", "abc")
    assert not secrets_match("abc", "abd")
    assert not secrets_match("", "")
    assert not secrets_match("abc", None)
    assert extract_bearer("Bearer tok") == "tok"
    assert extract_bearer("Basic tok") is None
    assert extract_bearer(None) is None
