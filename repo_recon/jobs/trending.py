from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.jobs.context import JobContext
from repo_recon.models.base import utcnow
from repo_recon.models.queued_analysis import QueuedAnalysis
from repo_recon.models.repository import Repository
from repo_recon.services.analyzer import ensure_basic_analysis
from repo_recon.services.repository_syncer import RepositorySyncer

logger = logging.getLogger("repo_recon.jobs.trending")

ACTIVE_QUEUE_STATES = ("pending", "processing")


def priority_for_stars(stargazers_count: int) -> int:
    """Queue priority 0-10; more stars are analysed first."""

    if stargazers_count <= 100:
        return 0
    if stargazers_count <= 500:
        return 2
    if stargazers_count <= 1000:
        return 4
    if stargazers_count <= 5000:
        return 6
    if stargazers_count <= 10000:
        return 8
    return 10


async def _already_queued(session: AsyncSession, repository_id: int) -> bool:
    res = await session.execute(
        select(QueuedAnalysis.id).where(
            QueuedAnalysis.repository_id == repository_id,
            QueuedAnalysis.status.in_(ACTIVE_QUEUE_STATES),
        )
    )
    return res.first() is not None


async def sync_trending_repositories(
    ctx: JobContext,
    *,
    days_ago: int = 7,
    min_stars: int = 50,
    per_page: int = 10,
) -> int:
    """Pull recently created popular repositories and queue them for analysis.

    Returns how many queue entries were created.
    """

    enqueued = 0
    async with ctx.session_factory() as session:
        syncer = RepositorySyncer(session, ctx.github)
        repos = await syncer.sync_trending(days_ago=days_ago, min_stars=min_stars, per_page=per_page)

        for repo in repos:
            if await _already_queued(session, repo.id):
                continue
            session.add(
                QueuedAnalysis(
                    repository_id=repo.id,
                    analysis_type="basic",
                    status="pending",
                    priority=priority_for_stars(repo.stargazers_count),
                )
            )
            enqueued += 1

        await session.commit()

    logger.info("trending_enqueued count=%s", enqueued)
    return enqueued


async def process_analysis_queue(ctx: JobContext, *, batch_size: int = 5) -> dict[str, int]:
    """Drain up to ``batch_size`` pending queue entries, highest priority first."""

    counts = {"completed": 0, "failed": 0}
    async with ctx.session_factory() as session:
        res = await session.execute(
            select(QueuedAnalysis)
            .where(QueuedAnalysis.status == "pending")
            .order_by(QueuedAnalysis.priority.desc(), QueuedAnalysis.created_at.asc(), QueuedAnalysis.id.asc())
            .limit(batch_size)
        )
        items = list(res.scalars().all())

        for item in items:
            item.status = "processing"
            item.updated_at = utcnow()
        await session.commit()

        # A rollback expires every loaded row, so each entry is re-read by id.
        claimed = [(item.id, item.repository_id) for item in items]
        for item_id, repository_id in claimed:
            try:
                repo = await session.get(Repository, repository_id)
                if repo is None:
                    raise LookupError(f"repository {repository_id} no longer exists")
                await ensure_basic_analysis(session, ctx.llm, repo)
            except Exception as e:
                logger.exception("queued_analysis_failed id=%s repository_id=%s", item_id, repository_id)
                await session.rollback()
                item = await session.get(QueuedAnalysis, item_id, populate_existing=True)
                item.status = "failed"
                item.retry_count = (item.retry_count or 0) + 1
                item.error_message = str(e)
                counts["failed"] += 1
            else:
                item = await session.get(QueuedAnalysis, item_id)
                item.status = "completed"
                item.error_message = None
                counts["completed"] += 1

            item.processed_at = utcnow()
            item.updated_at = utcnow()
            await session.commit()

    logger.info("analysis_queue_drained completed=%s failed=%s", counts["completed"], counts["failed"])
    return counts
