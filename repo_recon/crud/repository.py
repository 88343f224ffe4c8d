from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from repo_recon.models.repository import Repository


async def get_repository(session: AsyncSession, *, repository_id: int) -> Repository | None:
    stmt = (
        select(Repository)
        .options(selectinload(Repository.analyses))
        .where(Repository.id == repository_id)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_repository_by_full_name(session: AsyncSession, *, full_name: str) -> Repository | None:
    # GitHub owner/repo names are case-insensitive.
    stmt = select(Repository).where(func.lower(Repository.full_name) == full_name.lower())
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def list_repositories(
    session: AsyncSession,
    *,
    search: str | None = None,
    language: str | None = None,
    min_stars: int | None = None,
    sort: str = "updated",
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Repository], int]:
    """Return (items, total) for one page of repositories."""

    stmt = select(Repository)

    if search:
        like = f"%{search}%"
        stmt = stmt.where(or_(Repository.full_name.ilike(like), Repository.description.ilike(like)))

    if language:
        stmt = stmt.where(Repository.language == language)

    if min_stars is not None:
        stmt = stmt.where(Repository.stargazers_count >= min_stars)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = int((await session.execute(count_stmt)).scalar_one())

    if sort == "stars":
        stmt = stmt.order_by(Repository.stargazers_count.desc(), Repository.id.desc())
    elif sort == "created":
        stmt = stmt.order_by(Repository.github_created_at.desc().nullslast(), Repository.id.desc())
    else:
        stmt = stmt.order_by(Repository.github_updated_at.desc().nullslast(), Repository.id.desc())

    stmt = stmt.offset((page - 1) * per_page).limit(per_page)
    res = await session.execute(stmt)
    return list(res.scalars().all()), total
