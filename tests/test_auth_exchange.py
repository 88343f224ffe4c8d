from fastapi.testclient import TestClient
from sqlalchemy import select

from repo_recon.api.deps import get_github_client
from repo_recon.auth import decode_token
from repo_recon.main import app
from repo_recon.models import User
from tests._factories import auth_headers, create_api_key, create_user, fetch_all, whitelist
from tests._fakes import FakeGitHub


GITHUB_USERS = {
    "gho_good": {"id": 4242, "login": "hubot", "email": None, "avatar_url": "https://avatars/x.png", "name": "Hubot"},
    "gho_admin": {"id": 9001, "login": "root", "email": "root@example.com", "avatar_url": None, "name": None},
}


def _client_with_github() -> TestClient:
    fake = FakeGitHub(users=GITHUB_USERS)
    app.dependency_overrides[get_github_client] = lambda: fake
    return TestClient(app)


def teardown_function():
    app.dependency_overrides.pop(get_github_client, None)


def test_exchange_requires_api_key():
    client = _client_with_github()

    r = client.post("/api/v1/auth/exchange", json={"github_token": "gho_good"})
    assert r.status_code == 401


def test_exchange_blank_token_is_400():
    client = _client_with_github()
    headers = auth_headers(create_api_key())

    r = client.post("/api/v1/auth/exchange", json={"github_token": "   "}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "GitHub token required"


def test_exchange_rejected_github_token_is_401():
    client = _client_with_github()
    headers = auth_headers(create_api_key())

    r = client.post("/api/v1/auth/exchange", json={"github_token": "gho_bad"}, headers=headers)
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Invalid GitHub token"


def test_exchange_not_whitelisted_is_403():
    client = _client_with_github()
    headers = auth_headers(create_api_key())

    r = client.post("/api/v1/auth/exchange", json={"github_token": "gho_good"}, headers=headers)
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Access denied"
    assert fetch_all(select(User)) == []


def test_exchange_creates_user_and_returns_jwt():
    whitelist(4242, "hubot")
    client = _client_with_github()
    headers = auth_headers(create_api_key())

    r = client.post("/api/v1/auth/exchange", json={"github_token": "gho_good"}, headers=headers)
    assert r.status_code == 200, r.text

    body = r.json()["data"]
    assert body["user"]["github_id"] == 4242
    assert body["user"]["github_username"] == "hubot"
    assert body["user"]["email"] == "hubot@users.noreply.github.com"
    assert body["user"]["avatar_url"] == "https://avatars/x.png"
    assert body["user"]["name"] == "Hubot"
    assert body["user"]["admin"] is False

    claims = decode_token(body["jwt"])
    assert claims["user_id"] == body["user"]["id"]


def test_exchange_refreshes_existing_user_and_flags_admin():
    user = create_user(github_id=9001, username="old-login")
    client = _client_with_github()
    headers = auth_headers(create_api_key())

    r = client.post("/api/v1/auth/exchange", json={"github_token": "gho_admin"}, headers=headers)
    assert r.status_code == 200, r.text

    body = r.json()["data"]
    assert body["user"]["id"] == user.id
    assert body["user"]["github_username"] == "root"
    assert body["user"]["email"] == "root@example.com"
    assert body["user"]["admin"] is True
    assert len(fetch_all(select(User))) == 1
