from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.clients.github import GitHubClient
from repo_recon.models.base import utcnow
from repo_recon.models.repository import Repository

logger = logging.getLogger("repo_recon.services.sync")


def _parse_github_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def repository_fields(payload: dict[str, Any]) -> dict[str, Any]:
    """Map a GitHub REST repository payload onto Repository columns."""

    license_info = payload.get("license") or {}
    return {
        "github_id": payload["id"],
        "full_name": payload["full_name"],
        "owner_login": (payload.get("owner") or {}).get("login") or payload["full_name"].split("/", 1)[0],
        "name": payload.get("name") or payload["full_name"].split("/", 1)[-1],
        "description": payload.get("description"),
        "html_url": payload.get("html_url") or f"https://github.com/{payload['full_name']}",
        "homepage_url": payload.get("homepage") or None,
        "language": payload.get("language"),
        "license": license_info.get("spdx_id") or license_info.get("name"),
        "topics": list(payload.get("topics") or []),
        "stargazers_count": int(payload.get("stargazers_count") or 0),
        "forks_count": int(payload.get("forks_count") or 0),
        "open_issues_count": int(payload.get("open_issues_count") or 0),
        "github_created_at": _parse_github_time(payload.get("created_at")),
        "github_updated_at": _parse_github_time(payload.get("updated_at")),
        "github_pushed_at": _parse_github_time(payload.get("pushed_at")),
    }


class RepositorySyncer:
    def __init__(self, session: AsyncSession, github: GitHubClient) -> None:
        self.session = session
        self.github = github

    async def upsert_from_github(self, payload: dict[str, Any]) -> Repository:
        """Insert or refresh a repository row. Flushes, does not commit."""

        fields = repository_fields(payload)
        res = await self.session.execute(
            select(Repository).where(
                or_(Repository.github_id == fields["github_id"], Repository.full_name == fields["full_name"])
            )
        )
        repo = res.scalars().first()

        if repo is None:
            repo = Repository(**fields)
            self.session.add(repo)
        else:
            for key, value in fields.items():
                setattr(repo, key, value)
            repo.updated_at = utcnow()

        await self.session.flush()
        return repo

    async def fetch_and_store(self, full_name: str) -> Repository:
        payload = await self.github.get_repository(full_name)
        repo = await self.upsert_from_github(payload)
        await self.session.commit()
        return repo

    async def sync_trending(self, *, days_ago: int = 7, min_stars: int = 50, per_page: int = 10) -> list[Repository]:
        since = (datetime.now(timezone.utc) - timedelta(days=days_ago)).date().isoformat()
        query = f"created:>{since} stars:>={min_stars}"

        items = await self.github.search_repositories(query, sort="stars", order="desc", per_page=per_page)
        repos = [await self.upsert_from_github(item) for item in items]
        await self.session.commit()

        logger.info("trending_sync query=%r fetched=%s", query, len(repos))
        return repos
