"""Row builders shared by the API and job tests."""

import asyncio
from datetime import datetime, timezone

from repo_recon.auth import encode_token, generate_api_key
from repo_recon.database import SessionLocal
from repo_recon.models import (
    Analysis,
    AnalysisStatus,
    Comparison,
    ComparisonRepository,
    ComparisonStatus,
    QueuedAnalysis,
    Repository,
    User,
    WhitelistedUser,
)


def run(coro):
    return asyncio.run(coro)


def github_repo_payload(full_name: str, *, stars: int = 100, github_id: int | None = None, **extra) -> dict:
    owner, name = full_name.split("/", 1)
    payload = {
        "id": github_id if github_id is not None else abs(hash(full_name)) % 10_000_000,
        "full_name": full_name,
        "name": name,
        "owner": {"login": owner},
        "description": f"{name} does things",
        "html_url": f"https://github.com/{full_name}",
        "homepage": None,
        "language": "Python",
        "license": {"spdx_id": "MIT"},
        "topics": ["tools"],
        "stargazers_count": stars,
        "forks_count": 3,
        "open_issues_count": 1,
        "created_at": "2024-01-02T03:04:05Z",
        "updated_at": "2024-06-01T00:00:00Z",
        "pushed_at": "2024-06-01T00:00:00Z",
    }
    payload.update(extra)
    return payload


async def _add(*rows):
    async with SessionLocal() as session:
        session.add_all(rows)
        await session.commit()
    return rows[0] if len(rows) == 1 else rows


def create_user(*, github_id: int = 1001, username: str = "octocat", whitelisted: bool = True) -> User:
    user = User(github_id=github_id, github_username=username, email=f"{username}@example.com")
    if whitelisted:
        run(_add(user, WhitelistedUser(github_id=github_id, github_username=username)))
    else:
        run(_add(user))
    return user


def whitelist(github_id: int, username: str | None = None) -> None:
    run(_add(WhitelistedUser(github_id=github_id, github_username=username)))


def create_api_key(name: str = "test client") -> str:
    async def _create() -> str:
        async with SessionLocal() as session:
            _, raw_key = await generate_api_key(session, name=name)
            await session.commit()
            return raw_key

    return run(_create())


def auth_headers(raw_key: str, user: User | None = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {raw_key}"}
    if user is not None:
        headers["X-User-Token"] = encode_token({"user_id": user.id})
    return headers


def create_repository(full_name: str = "acme/widget", **overrides) -> Repository:
    owner, name = full_name.split("/", 1)
    fields = {
        "github_id": abs(hash(full_name)) % 10_000_000,
        "full_name": full_name,
        "owner_login": owner,
        "name": name,
        "description": f"{name} repository",
        "html_url": f"https://github.com/{full_name}",
        "language": "Python",
        "topics": [],
        "stargazers_count": 100,
    }
    fields.update(overrides)
    return run(_add(Repository(**fields)))


def create_analysis(repo: Repository, *, analysis_type: str = "basic", cost_usd: float = 0.0, **overrides) -> Analysis:
    fields = {
        "repository_id": repo.id,
        "analysis_type": analysis_type,
        "summary": f"{repo.full_name} summary",
        "strengths": ["fast"],
        "weaknesses": ["young"],
        "cost_usd": cost_usd,
        "is_current": True,
    }
    fields.update(overrides)
    return run(_add(Analysis(**fields)))


def create_comparison(query: str = "python web framework", *, repos: list[Repository] = (), **overrides) -> Comparison:
    fields = {
        "user_query": query,
        "normalized_query": query,
        "technologies": ["python"],
        "repos_compared_count": len(repos),
        "cost_usd": 0.0,
    }
    fields.update(overrides)
    comparison = Comparison(**fields)
    comparison.entries = [
        ComparisonRepository(repository_id=repo.id, rank=rank, pros=["good"], cons=[])
        for rank, repo in enumerate(repos, start=1)
    ]
    return run(_add(comparison))


def create_comparison_status(user: User, session_id: str, **overrides) -> ComparisonStatus:
    return run(_add(ComparisonStatus(session_id=session_id, user_id=user.id, **overrides)))


def create_analysis_status(user: User, repo: Repository, session_id: str, **overrides) -> AnalysisStatus:
    return run(_add(AnalysisStatus(session_id=session_id, user_id=user.id, repository_id=repo.id, **overrides)))


def create_queued_analysis(repo: Repository, **overrides) -> QueuedAnalysis:
    return run(_add(QueuedAnalysis(repository_id=repo.id, analysis_type="basic", **overrides)))


def fetch(model, row_id):
    async def _get():
        async with SessionLocal() as session:
            return await session.get(model, row_id)

    return run(_get())


def fetch_all(stmt):
    async def _all():
        async with SessionLocal() as session:
            return list((await session.execute(stmt)).scalars().all())

    return run(_all())


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)
