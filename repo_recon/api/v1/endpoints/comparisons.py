from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.api import urls
from repo_recon.api.deps import require_user
from repo_recon.api.errors import ApiError
from repo_recon.config import settings
from repo_recon.crud.comparison import get_comparison, list_comparisons
from repo_recon.crud.job_status import get_comparison_status, reserve_comparison_status
from repo_recon.database import get_db
from repo_recon.models.job_status import COMPLETED, FAILED
from repo_recon.models.user import User
from repo_recon.progress.broadcasters import COMPARISON_CHANNEL
from repo_recon.schemas.common import JobAccepted, paginate
from repo_recon.schemas.comparison import ComparisonCreate, ComparisonListItem, ComparisonRead
from repo_recon.schemas.job_status import JobStatusRead
from repo_recon.services.budget import check_comparison_gates
from repo_recon.worker import dispatch


logger = logging.getLogger("repo_recon.api.comparisons")

router = APIRouter(prefix="/comparisons", tags=["comparisons"])

MAX_PER_PAGE = 100
MAX_QUERY_LENGTH = 500


@router.get("")
async def list_comparisons_endpoint(
    search: str | None = Query(None, description="Matches the user or normalized query"),
    date: str | None = Query(None, description="week | month"),
    sort: str = Query("recent", description="recent | popular"),
    page: int = Query(1),
    per_page: int = Query(20),
    session: AsyncSession = Depends(get_db),
):
    page = max(1, page)
    per_page = min(max(1, per_page), MAX_PER_PAGE)

    items, total = await list_comparisons(
        session, search=search, date=date, sort=sort, page=page, per_page=per_page
    )
    return {
        "data": [ComparisonListItem.model_validate(c) for c in items],
        "meta": paginate(page=page, per_page=per_page, total_count=total),
    }


@router.get("/status/{session_id}")
async def comparison_status_endpoint(session_id: str, session: AsyncSession = Depends(get_db)):
    record = await get_comparison_status(session, session_id=session_id)
    if record is None:
        raise ApiError(404, "Status not found")

    view = JobStatusRead(status=record.status)
    if record.status == COMPLETED and record.comparison_id is not None:
        view.comparison_id = record.comparison_id
        view.comparison_url = urls.comparison_url(record.comparison_id)
    elif record.status == FAILED:
        view.error_message = record.error_message
    return view.model_dump(exclude_none=True)


@router.get("/{comparison_id}")
async def get_comparison_endpoint(comparison_id: int, session: AsyncSession = Depends(get_db)):
    comparison = await get_comparison(session, comparison_id=comparison_id)
    if comparison is None:
        raise ApiError(404, "Comparison not found")

    comparison.view_count = (comparison.view_count or 0) + 1
    await session.commit()
    return {"data": ComparisonRead.model_validate(comparison)}


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def create_comparison_endpoint(
    payload: ComparisonCreate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_db),
):
    query = (payload.query or "").strip()
    if not query or len(query) > MAX_QUERY_LENGTH:
        raise ApiError(422, "Invalid query", [f"Query must be between 1 and {MAX_QUERY_LENGTH} characters"])

    gate = await check_comparison_gates(session, user)
    if not gate.allowed:
        raise ApiError(gate.status_code, gate.message, list(gate.details))

    session_id = str(uuid.uuid4())
    await reserve_comparison_status(
        session,
        session_id=session_id,
        user_id=user.id,
        pending_cost_usd=settings.comparison_estimated_cost_usd,
    )
    dispatch.enqueue_create_comparison(user_id=user.id, query=query, session_id=session_id)
    logger.info("comparison_accepted session_id=%s user_id=%s", session_id, user.id)

    return JobAccepted(
        session_id=session_id,
        websocket_url=urls.websocket_url(COMPARISON_CHANNEL, session_id),
        status_url=urls.comparison_status_url(session_id),
    ).model_dump(exclude_none=True)
