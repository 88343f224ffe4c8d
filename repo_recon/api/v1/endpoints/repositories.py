from __future__ import annotations

import logging
import uuid

import httpx
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.api import urls
from repo_recon.api.deps import get_github_client, require_user
from repo_recon.api.errors import ApiError
from repo_recon.clients.github import GitHubClient, GitHubError
from repo_recon.clients.github_urls import InvalidUrlError, parse_github_url
from repo_recon.config import settings
from repo_recon.crud.job_status import get_analysis_status, reserve_analysis_status
from repo_recon.crud.repository import get_repository, get_repository_by_full_name, list_repositories
from repo_recon.database import get_db
from repo_recon.models.job_status import COMPLETED, FAILED
from repo_recon.models.repository import Repository
from repo_recon.models.user import User
from repo_recon.progress.broadcasters import ANALYSIS_CHANNEL
from repo_recon.schemas.common import JobAccepted, paginate
from repo_recon.schemas.job_status import JobStatusRead
from repo_recon.schemas.repository import AnalyzeByUrlRequest, RepositoryListItem, RepositoryRead
from repo_recon.services.budget import check_deep_analysis_gates
from repo_recon.services.repository_syncer import RepositorySyncer
from repo_recon.worker import dispatch


logger = logging.getLogger("repo_recon.api.repositories")

router = APIRouter(prefix="/repositories", tags=["repositories"])

MAX_PER_PAGE = 100
SORTS = {"stars", "created", "updated"}


@router.get("")
async def list_repositories_endpoint(
    search: str | None = Query(None, description="Matches full_name or description"),
    language: str | None = Query(None),
    min_stars: int | None = Query(None, ge=0),
    sort: str = Query("updated", description="stars | created | updated"),
    page: int = Query(1),
    per_page: int = Query(20),
    session: AsyncSession = Depends(get_db),
):
    if sort not in SORTS:
        sort = "updated"
    page = max(1, page)
    per_page = min(max(1, per_page), MAX_PER_PAGE)

    items, total = await list_repositories(
        session,
        search=search,
        language=language,
        min_stars=min_stars,
        sort=sort,
        page=page,
        per_page=per_page,
    )
    return {
        "data": [RepositoryListItem.model_validate(r) for r in items],
        "meta": paginate(page=page, per_page=per_page, total_count=total),
    }


@router.get("/status/{session_id}")
async def repository_status_endpoint(session_id: str, session: AsyncSession = Depends(get_db)):
    record = await get_analysis_status(session, session_id=session_id)
    if record is None:
        raise ApiError(404, "Status not found")

    view = JobStatusRead(status=record.status)
    if record.status == COMPLETED:
        view.repository_id = record.repository_id
        view.repository_url = urls.repository_url(record.repository_id)
    elif record.status == FAILED:
        view.error_message = record.error_message
    return view.model_dump(exclude_none=True)


@router.get("/{repository_id}")
async def get_repository_endpoint(repository_id: int, session: AsyncSession = Depends(get_db)):
    repo = await get_repository(session, repository_id=repository_id)
    if repo is None:
        raise ApiError(404, "Repository not found")
    return {"data": RepositoryRead.model_validate(repo)}


async def _start_deep_analysis(session: AsyncSession, user: User, repo: Repository) -> dict:
    gate = await check_deep_analysis_gates(session, user)
    if not gate.allowed:
        raise ApiError(gate.status_code, gate.message, list(gate.details))

    session_id = str(uuid.uuid4())
    repository_id = repo.id
    await reserve_analysis_status(
        session,
        session_id=session_id,
        user_id=user.id,
        repository_id=repository_id,
        pending_cost_usd=settings.deep_analysis_estimated_cost_usd,
    )
    dispatch.enqueue_create_deep_analysis(user_id=user.id, repository_id=repository_id, session_id=session_id)
    logger.info(
        "deep_analysis_accepted session_id=%s user_id=%s repository_id=%s", session_id, user.id, repository_id
    )

    return JobAccepted(
        session_id=session_id,
        repository_id=repository_id,
        websocket_url=urls.websocket_url(ANALYSIS_CHANNEL, session_id),
        status_url=urls.repository_status_url(session_id),
    ).model_dump(exclude_none=True)


@router.post("/analyze_by_url", status_code=status.HTTP_202_ACCEPTED)
async def analyze_by_url_endpoint(
    payload: AnalyzeByUrlRequest,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
):
    raw_url = (payload.url or "").strip()
    if not raw_url:
        raise ApiError(400, "URL parameter is required")

    try:
        parsed = parse_github_url(raw_url)
    except InvalidUrlError as e:
        raise ApiError(400, "Invalid GitHub URL", [str(e)])
    if parsed["full_name"] is None:
        raise ApiError(400, "Invalid GitHub URL", ["URL must name an owner and a repository"])

    repo = await get_repository_by_full_name(session, full_name=parsed["full_name"])
    if repo is None:
        try:
            repo = await RepositorySyncer(session, github).fetch_and_store(parsed["full_name"])
        except (GitHubError, httpx.HTTPError) as e:
            logger.info("analyze_by_url_fetch_failed full_name=%s error=%s", parsed["full_name"], e)
            await session.rollback()
            raise ApiError(404, "Failed to fetch repository from GitHub", [str(e)])

    return await _start_deep_analysis(session, user, repo)


@router.post("/{repository_id}/analyze", status_code=status.HTTP_202_ACCEPTED)
async def analyze_repository_endpoint(
    repository_id: int,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_db),
):
    repo = await session.get(Repository, repository_id)
    if repo is None:
        raise ApiError(404, "Repository not found")
    return await _start_deep_analysis(session, user, repo)
