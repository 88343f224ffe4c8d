"""Daily spend and per-user rate gates checked before a job is enqueued.

Spend today counts both finished work (``cost_usd`` on stored rows) and the
reservations still held by processing status records, so a burst of requests
cannot overshoot the budget while their jobs are queued.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.config import settings
from repo_recon.models.analysis import Analysis
from repo_recon.models.comparison import Comparison
from repo_recon.models.job_status import FAILED, PROCESSING, AnalysisStatus, ComparisonStatus
from repo_recon.models.user import User


def start_of_day(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    status_code: int | None = None
    message: str | None = None
    details: tuple[str, ...] = ()


ALLOWED = GateDecision(allowed=True)


async def _sum(session: AsyncSession, column, *conditions) -> float:
    stmt = select(func.coalesce(func.sum(column), 0.0)).where(*conditions)
    return float((await session.execute(stmt)).scalar_one())


async def _count(session: AsyncSession, model, *conditions) -> int:
    stmt = select(func.count()).select_from(model).where(*conditions)
    return int((await session.execute(stmt)).scalar_one())


async def deep_analysis_spend_today(session: AsyncSession) -> float:
    since = start_of_day()
    spent = await _sum(
        session,
        Analysis.cost_usd,
        Analysis.analysis_type == "deep",
        Analysis.created_at >= since,
    )
    reserved = await _sum(
        session,
        AnalysisStatus.pending_cost_usd,
        AnalysisStatus.status == PROCESSING,
        AnalysisStatus.created_at >= since,
    )
    return spent + reserved


async def comparison_spend_today(session: AsyncSession) -> float:
    since = start_of_day()
    spent = await _sum(session, Comparison.cost_usd, Comparison.created_at >= since)
    reserved = await _sum(
        session,
        ComparisonStatus.pending_cost_usd,
        ComparisonStatus.status == PROCESSING,
        ComparisonStatus.created_at >= since,
    )
    return spent + reserved


async def deep_analyses_today_for(session: AsyncSession, user: User) -> int:
    return await _count(
        session,
        AnalysisStatus,
        AnalysisStatus.user_id == user.id,
        AnalysisStatus.status != FAILED,
        AnalysisStatus.created_at >= start_of_day(),
    )


async def comparisons_today_for(session: AsyncSession, user: User) -> int:
    return await _count(
        session,
        ComparisonStatus,
        ComparisonStatus.user_id == user.id,
        ComparisonStatus.status != FAILED,
        ComparisonStatus.created_at >= start_of_day(),
    )


async def can_create_deep_analysis_today(session: AsyncSession) -> bool:
    spent = await deep_analysis_spend_today(session)
    return spent + settings.deep_analysis_estimated_cost_usd <= settings.deep_analysis_daily_budget_usd


async def user_can_create_deep_analysis_today(session: AsyncSession, user: User) -> bool:
    return await deep_analyses_today_for(session, user) < settings.deep_analysis_rate_limit_per_user


async def can_create_comparison_today(session: AsyncSession) -> bool:
    spent = await comparison_spend_today(session)
    return spent + settings.comparison_estimated_cost_usd <= settings.comparison_daily_budget_usd


async def user_can_create_comparison_today(session: AsyncSession, user: User) -> bool:
    return await comparisons_today_for(session, user) < settings.comparison_rate_limit_per_user


def _budget_exceeded() -> GateDecision:
    return GateDecision(
        allowed=False,
        status_code=403,
        message="Daily analysis budget exceeded",
        details=("Please try again tomorrow",),
    )


def _rate_limited(limit: int, noun: str) -> GateDecision:
    return GateDecision(
        allowed=False,
        status_code=429,
        message="Rate limit exceeded",
        details=(f"You have reached your daily limit of {limit} {noun}",),
    )


async def check_deep_analysis_gates(session: AsyncSession, user: User) -> GateDecision:
    if not await can_create_deep_analysis_today(session):
        return _budget_exceeded()
    if not await user_can_create_deep_analysis_today(session, user):
        return _rate_limited(settings.deep_analysis_rate_limit_per_user, "deep analyses")
    return ALLOWED


async def check_comparison_gates(session: AsyncSession, user: User) -> GateDecision:
    if not await can_create_comparison_today(session):
        return _budget_exceeded()
    if not await user_can_create_comparison_today(session, user):
        return _rate_limited(settings.comparison_rate_limit_per_user, "comparisons")
    return ALLOWED
