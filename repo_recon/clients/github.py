from __future__ import annotations

import logging
from typing import Any

import httpx

from repo_recon.config import settings

logger = logging.getLogger("repo_recon.github")


class GitHubError(Exception):
    """Base error for GitHub API failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubNotFoundError(GitHubError):
    pass


class GitHubAuthError(GitHubError):
    pass


class GitHubRateLimitError(GitHubError):
    pass


class GitHubClient:
    """Thin async wrapper over the GitHub REST API.

    One instance owns one ``httpx.AsyncClient``; call :meth:`aclose` (or use it
    as an async context manager) when done.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repo-recon",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url or settings.github_api_url,
            headers=headers,
            timeout=timeout or settings.github_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_authenticated_user(self, token: str) -> dict[str, Any] | None:
        """Resolve an OAuth token to its GitHub user, or None if GitHub rejects it."""

        try:
            data = await self._get_json("/user", headers={"Authorization": f"Bearer {token}"})
        except GitHubError as e:
            logger.info("github_user_lookup_failed status=%s", e.status_code)
            return None

        return {
            "id": data["id"],
            "login": data["login"],
            "email": data.get("email"),
            "avatar_url": data.get("avatar_url"),
            "name": data.get("name"),
        }

    async def get_repository(self, full_name: str) -> dict[str, Any]:
        return await self._get_json(f"/repos/{full_name}")

    async def search_repositories(
        self,
        query: str,
        *,
        sort: str = "stars",
        order: str = "desc",
        per_page: int = 10,
    ) -> list[dict[str, Any]]:
        data = await self._get_json(
            "/search/repositories",
            params={"q": query, "sort": sort, "order": order, "per_page": per_page},
        )
        return list(data.get("items") or [])

    async def get_readme(self, full_name: str) -> str | None:
        try:
            response = await self._request(
                f"/repos/{full_name}/readme",
                headers={"Accept": "application/vnd.github.raw+json"},
            )
        except GitHubNotFoundError:
            return None
        return response.text

    async def list_issues(self, full_name: str, *, state: str = "open", per_page: int = 30) -> list[dict[str, Any]]:
        items = await self._get_json(
            f"/repos/{full_name}/issues",
            params={"state": state, "per_page": per_page, "sort": "comments"},
        )
        # The issues endpoint also returns pull requests.
        return [i for i in items if "pull_request" not in i]

    async def _get_json(self, path: str, **kwargs) -> Any:
        response = await self._request(path, **kwargs)
        return response.json()

    async def _request(self, path: str, **kwargs) -> httpx.Response:
        response = await self._client.get(path, **kwargs)
        if response.status_code < 400:
            return response

        status = response.status_code
        if status == 404:
            raise GitHubNotFoundError(f"GitHub resource not found: {path}", status_code=status)
        if status == 401:
            raise GitHubAuthError("GitHub rejected the credentials", status_code=status)
        if status == 429 or (status == 403 and response.headers.get("x-ratelimit-remaining") == "0"):
            raise GitHubRateLimitError("GitHub rate limit exceeded", status_code=status)
        raise GitHubError(f"GitHub API error {status} for {path}", status_code=status)


def build_github_client() -> GitHubClient:
    return GitHubClient(token=settings.github_token)
