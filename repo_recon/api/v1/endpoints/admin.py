from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.api.deps import require_admin
from repo_recon.database import get_db
from repo_recon.models.analysis import Analysis
from repo_recon.models.comparison import Comparison
from repo_recon.models.job_status import AnalysisStatus, ComparisonStatus
from repo_recon.models.queued_analysis import QueuedAnalysis
from repo_recon.models.repository import Repository
from repo_recon.models.user import User
from repo_recon.services.budget import comparison_spend_today, deep_analysis_spend_today


router = APIRouter(prefix="/admin", tags=["admin"])


async def _count(session: AsyncSession, model) -> int:
    return int((await session.execute(select(func.count()).select_from(model))).scalar_one())


async def _total(session: AsyncSession, column) -> float:
    return float((await session.execute(select(func.coalesce(func.sum(column), 0.0)))).scalar_one())


async def _counts_by_status(session: AsyncSession, model) -> dict[str, int]:
    res = await session.execute(select(model.status, func.count()).group_by(model.status))
    return {status: int(count) for status, count in res.all()}


@router.get("/stats")
async def admin_stats_endpoint(
    _admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    analyses_total = await _total(session, Analysis.cost_usd)
    comparisons_total = await _total(session, Comparison.cost_usd)

    return {
        "data": {
            "counts": {
                "users": await _count(session, User),
                "repositories": await _count(session, Repository),
                "comparisons": await _count(session, Comparison),
                "analyses": await _count(session, Analysis),
            },
            "spend_usd": {
                "deep_analyses_today": await deep_analysis_spend_today(session),
                "comparisons_today": await comparison_spend_today(session),
                "total": analyses_total + comparisons_total,
            },
            "statuses": {
                "comparisons": await _counts_by_status(session, ComparisonStatus),
                "analyses": await _counts_by_status(session, AnalysisStatus),
            },
            "queue": await _counts_by_status(session, QueuedAnalysis),
        }
    }
