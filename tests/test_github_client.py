import asyncio

import httpx
import pytest

from repo_recon.clients.github import (
    GitHubAuthError,
    GitHubClient,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)


def _client(handler) -> GitHubClient:
    return GitHubClient(token="ghp_test", base_url="https://api.github.test", transport=httpx.MockTransport(handler))


async def _call(handler, method: str, *args, **kwargs):
    async with _client(handler) as client:
        return await getattr(client, method)(*args, **kwargs)


def test_search_sends_query_and_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"items": [{"full_name": "a/b"}]})

    items = asyncio.run(_call(handler, "search_repositories", "orm language:python", per_page=5))

    assert items == [{"full_name": "a/b"}]
    assert seen["auth"] == "Bearer ghp_test"
    assert seen["params"] == {"q": "orm language:python", "sort": "stars", "order": "desc", "per_page": "5"}


@pytest.mark.parametrize(
    ("status", "headers", "error"),
    [
        (404, {}, GitHubNotFoundError),
        (401, {}, GitHubAuthError),
        (429, {}, GitHubRateLimitError),
        (403, {"x-ratelimit-remaining": "0"}, GitHubRateLimitError),
        (403, {"x-ratelimit-remaining": "12"}, GitHubError),
        (502, {}, GitHubError),
    ],
)
def test_status_mapping(status, headers, error):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, headers=headers, json={"message": "nope"})

    with pytest.raises(error) as exc_info:
        asyncio.run(_call(handler, "get_repository", "a/b"))
    assert exc_info.value.status_code == status


def test_missing_readme_is_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    assert asyncio.run(_call(handler, "get_readme", "a/b")) is None


def test_readme_is_raw_text():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/a/b/readme"
        return httpx.Response(200, text="# Hello")

    assert asyncio.run(_call(handler, "get_readme", "a/b")) == "# Hello"


def test_list_issues_skips_pull_requests():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"title": "bug"}, {"title": "pr", "pull_request": {}}])

    assert asyncio.run(_call(handler, "list_issues", "a/b")) == [{"title": "bug"}]


def test_authenticated_user_lookup():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers["authorization"] == "Bearer gho_user":
            return httpx.Response(200, json={"id": 1, "login": "octo", "email": None, "avatar_url": "x", "name": "O"})
        return httpx.Response(401, json={"message": "Bad credentials"})

    assert asyncio.run(_call(handler, "get_authenticated_user", "gho_user"))["login"] == "octo"
    assert asyncio.run(_call(handler, "get_authenticated_user", "gho_bad")) is None
