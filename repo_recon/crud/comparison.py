from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from repo_recon.models.comparison import Comparison, ComparisonRepository


DATE_WINDOWS = {"week": timedelta(days=7), "month": timedelta(days=30)}


async def get_comparison(session: AsyncSession, *, comparison_id: int) -> Comparison | None:
    stmt = (
        select(Comparison)
        .options(selectinload(Comparison.entries).selectinload(ComparisonRepository.repository))
        .where(Comparison.id == comparison_id)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def list_comparisons(
    session: AsyncSession,
    *,
    search: str | None = None,
    date: str | None = None,
    sort: str = "recent",
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Comparison], int]:
    """Return (items, total) for one page of comparisons.

    Unknown ``date`` values are ignored rather than rejected.
    """

    stmt = select(Comparison)

    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(Comparison.user_query.ilike(like), Comparison.normalized_query.ilike(like)))

    window = DATE_WINDOWS.get(date or "")
    if window is not None:
        stmt = stmt.where(Comparison.created_at >= datetime.now(timezone.utc) - window)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = int((await session.execute(count_stmt)).scalar_one())

    if sort == "popular":
        stmt = stmt.order_by(Comparison.view_count.desc(), Comparison.created_at.desc(), Comparison.id.desc())
    else:
        stmt = stmt.order_by(Comparison.created_at.desc(), Comparison.id.desc())

    stmt = stmt.offset((page - 1) * per_page).limit(per_page)
    res = await session.execute(stmt)
    return list(res.scalars().all()), total
