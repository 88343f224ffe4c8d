import httpx
from fastapi.testclient import TestClient
from sqlalchemy import select

from repo_recon.api.deps import get_github_client
from repo_recon.clients.github import GitHubRateLimitError
from repo_recon.config import settings
from repo_recon.main import app
from repo_recon.models import AnalysisStatus, Repository
from tests._factories import (
    auth_headers,
    create_analysis,
    create_analysis_status,
    create_api_key,
    create_repository,
    create_user,
    fetch_all,
    github_repo_payload,
    utc,
)
from tests._fakes import FakeGitHub


def _setup():
    client = TestClient(app)
    raw_key = create_api_key()
    user = create_user()
    return client, raw_key, user


def teardown_function():
    app.dependency_overrides.pop(get_github_client, None)


def test_list_repositories_filters_and_sorts():
    client, raw_key, _ = _setup()
    headers = auth_headers(raw_key)
    create_repository("acme/alpha", language="Python", stargazers_count=50, github_updated_at=utc(2024, 1, 1))
    create_repository("acme/beta", language="Rust", stargazers_count=500, github_updated_at=utc(2024, 3, 1))
    create_repository("other/gamma", language="Python", stargazers_count=5000, description="A beta-quality tool",
                      github_updated_at=utc(2024, 2, 1))

    r = client.get("/api/v1/repositories", headers=headers)
    assert [i["full_name"] for i in r.json()["data"]] == ["acme/beta", "other/gamma", "acme/alpha"]
    assert r.json()["meta"]["pagination"]["total_count"] == 3

    r = client.get("/api/v1/repositories", params={"sort": "stars", "language": "Python"}, headers=headers)
    assert [i["full_name"] for i in r.json()["data"]] == ["other/gamma", "acme/alpha"]

    r = client.get("/api/v1/repositories", params={"min_stars": 100, "sort": "stars"}, headers=headers)
    assert [i["full_name"] for i in r.json()["data"]] == ["other/gamma", "acme/beta"]

    r = client.get("/api/v1/repositories", params={"search": "beta"}, headers=headers)
    assert {i["full_name"] for i in r.json()["data"]} == {"acme/beta", "other/gamma"}


def test_show_repository_includes_analyses():
    client, raw_key, _ = _setup()
    repo = create_repository("acme/widget")
    create_analysis(repo, analysis_type="basic")
    create_analysis(repo, analysis_type="deep", cost_usd=0.02)

    r = client.get(f"/api/v1/repositories/{repo.id}", headers=auth_headers(raw_key))
    assert r.status_code == 200

    data = r.json()["data"]
    assert data["full_name"] == "acme/widget"
    assert {a["analysis_type"] for a in data["analyses"]} == {"basic", "deep"}


def test_show_missing_repository_is_404():
    client, raw_key, _ = _setup()

    r = client.get("/api/v1/repositories/999", headers=auth_headers(raw_key))
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Repository not found"


def test_analyze_repository_reserves_and_enqueues(enqueued):
    client, raw_key, user = _setup()
    repo = create_repository()

    r = client.post(f"/api/v1/repositories/{repo.id}/analyze", headers=auth_headers(raw_key, user))
    assert r.status_code == 202, r.text

    body = r.json()
    assert body["repository_id"] == repo.id
    assert body["websocket_url"].endswith(f"/analysis_progress?session_id={body['session_id']}")
    assert body["status_url"] == f"{settings.public_api_url}/repositories/status/{body['session_id']}"

    record = fetch_all(select(AnalysisStatus))[0]
    assert record.repository_id == repo.id
    assert record.pending_cost_usd == settings.deep_analysis_estimated_cost_usd
    assert enqueued == [
        ("create_deep_analysis", {"user_id": user.id, "repository_id": repo.id, "session_id": body["session_id"]})
    ]


def test_analyze_missing_repository_is_404(enqueued):
    client, raw_key, user = _setup()

    r = client.post("/api/v1/repositories/31337/analyze", headers=auth_headers(raw_key, user))
    assert r.status_code == 404
    assert enqueued == []


def test_analyze_rate_limit_and_budget(monkeypatch, enqueued):
    client, raw_key, user = _setup()
    repo = create_repository()
    headers = auth_headers(raw_key, user)

    monkeypatch.setattr(settings, "deep_analysis_rate_limit_per_user", 1)
    create_analysis_status(user, repo, "earlier", status="completed")
    r = client.post(f"/api/v1/repositories/{repo.id}/analyze", headers=headers)
    assert r.status_code == 429
    assert r.json()["error"]["details"] == ["You have reached your daily limit of 1 deep analyses"]

    monkeypatch.setattr(settings, "deep_analysis_rate_limit_per_user", 10)
    create_analysis(repo, analysis_type="deep", cost_usd=settings.deep_analysis_daily_budget_usd)
    r = client.post(f"/api/v1/repositories/{repo.id}/analyze", headers=headers)
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Daily analysis budget exceeded"
    assert enqueued == []


def test_analyze_by_url_validates_input(enqueued):
    client, raw_key, user = _setup()
    headers = auth_headers(raw_key, user)

    r = client.post("/api/v1/repositories/analyze_by_url", json={}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "URL parameter is required"

    for url in ("https://gitlab.com/a/b", "https://github.com/onlyowner", "http://[github.com/o/r"):
        r = client.post("/api/v1/repositories/analyze_by_url", json={"url": url}, headers=headers)
        assert r.status_code == 400
        assert r.json()["error"]["message"] == "Invalid GitHub URL"

    assert enqueued == []


def test_analyze_by_url_uses_known_repository(enqueued):
    client, raw_key, user = _setup()
    repo = create_repository("Acme/Widget")
    fake = FakeGitHub()
    app.dependency_overrides[get_github_client] = lambda: fake

    r = client.post(
        "/api/v1/repositories/analyze_by_url",
        json={"url": "https://www.github.com/acme/widget.git"},
        headers=auth_headers(raw_key, user),
    )
    assert r.status_code == 202, r.text
    assert r.json()["repository_id"] == repo.id
    assert enqueued[0][1]["repository_id"] == repo.id


def test_analyze_by_url_fetches_unknown_repository(enqueued):
    client, raw_key, user = _setup()
    fake = FakeGitHub(repos={"acme/fresh": github_repo_payload("acme/fresh", stars=77, github_id=555)})
    app.dependency_overrides[get_github_client] = lambda: fake

    r = client.post(
        "/api/v1/repositories/analyze_by_url",
        json={"url": "github.com/acme/fresh/tree/main"},
        headers=auth_headers(raw_key, user),
    )
    assert r.status_code == 202, r.text

    stored = fetch_all(select(Repository))
    assert [(s.full_name, s.github_id, s.stargazers_count) for s in stored] == [("acme/fresh", 555, 77)]
    assert r.json()["repository_id"] == stored[0].id


def test_analyze_by_url_github_failure_is_404(enqueued):
    client, raw_key, user = _setup()
    headers = auth_headers(raw_key, user)

    app.dependency_overrides[get_github_client] = lambda: FakeGitHub()
    r = client.post("/api/v1/repositories/analyze_by_url", json={"url": "https://github.com/no/such"}, headers=headers)
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Failed to fetch repository from GitHub"

    app.dependency_overrides[get_github_client] = lambda: FakeGitHub(error=GitHubRateLimitError("slow down", status_code=429))
    r = client.post("/api/v1/repositories/analyze_by_url", json={"url": "https://github.com/no/such"}, headers=headers)
    assert r.status_code == 404
    assert enqueued == []


def test_analyze_by_url_transport_failure_is_404(enqueued):
    client, raw_key, user = _setup()
    headers = auth_headers(raw_key, user)

    for error in (httpx.ConnectTimeout("timed out"), httpx.ConnectError("connection refused")):
        fake = FakeGitHub(error=error)
        app.dependency_overrides[get_github_client] = lambda: fake
        r = client.post(
            "/api/v1/repositories/analyze_by_url", json={"url": "https://github.com/no/such"}, headers=headers
        )
        assert r.status_code == 404
        assert r.json()["error"]["message"] == "Failed to fetch repository from GitHub"

    assert fetch_all(select(Repository)) == []
    assert enqueued == []


def test_repository_status_endpoint():
    client, raw_key, user = _setup()
    repo = create_repository()
    create_analysis_status(user, repo, "a-running")
    create_analysis_status(user, repo, "a-done", status="completed")
    create_analysis_status(user, repo, "a-failed", status="failed", error_message="Request timed out. Please try again.")
    headers = auth_headers(raw_key)

    assert client.get("/api/v1/repositories/status/a-running", headers=headers).json() == {
        "status": "processing",
    }
    assert client.get("/api/v1/repositories/status/a-done", headers=headers).json() == {
        "status": "completed",
        "repository_id": repo.id,
        "repository_url": f"{settings.public_api_url}/repositories/{repo.id}",
    }
    assert client.get("/api/v1/repositories/status/a-failed", headers=headers).json() == {
        "status": "failed",
        "error_message": "Request timed out. Please try again.",
    }
    assert client.get("/api/v1/repositories/status/nope", headers=headers).status_code == 404
