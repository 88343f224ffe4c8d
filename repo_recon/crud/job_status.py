from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.models.job_status import PROCESSING, AnalysisStatus, ComparisonStatus


async def get_comparison_status(session: AsyncSession, *, session_id: str) -> ComparisonStatus | None:
    res = await session.execute(select(ComparisonStatus).where(ComparisonStatus.session_id == session_id))
    return res.scalar_one_or_none()


async def get_analysis_status(session: AsyncSession, *, session_id: str) -> AnalysisStatus | None:
    res = await session.execute(select(AnalysisStatus).where(AnalysisStatus.session_id == session_id))
    return res.scalar_one_or_none()


async def reserve_comparison_status(
    session: AsyncSession,
    *,
    session_id: str,
    user_id: int,
    pending_cost_usd: float,
) -> ComparisonStatus:
    """Insert the processing record (with its budget reservation) before enqueueing.

    Reserving up front means concurrent requests see each other's cost in the
    daily budget check. Commits.
    """

    record = ComparisonStatus(
        session_id=session_id,
        user_id=user_id,
        status=PROCESSING,
        pending_cost_usd=pending_cost_usd,
    )
    session.add(record)
    await session.commit()
    return record


async def reserve_analysis_status(
    session: AsyncSession,
    *,
    session_id: str,
    user_id: int,
    repository_id: int,
    pending_cost_usd: float,
) -> AnalysisStatus:
    record = AnalysisStatus(
        session_id=session_id,
        user_id=user_id,
        repository_id=repository_id,
        status=PROCESSING,
        pending_cost_usd=pending_cost_usd,
    )
    session.add(record)
    await session.commit()
    return record
