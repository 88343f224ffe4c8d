from __future__ import annotations

import asyncio
import logging

from repo_recon.config import settings
from repo_recon.jobs.comparison import comparison_retry_exhausted, run_create_comparison
from repo_recon.jobs.context import job_context
from repo_recon.jobs.deep_analysis import deep_analysis_retry_exhausted, run_create_deep_analysis
from repo_recon.jobs.retry import polynomial_backoff
from repo_recon.jobs.trending import process_analysis_queue as drain_analysis_queue
from repo_recon.jobs.trending import sync_trending_repositories
from repo_recon.worker.celery_app import celery_app

logger = logging.getLogger("repo_recon.worker")

MAX_RETRIES = max(0, settings.job_max_attempts - 1)


async def _create_comparison(user_id: int, query: str, session_id: str) -> None:
    async with job_context() as ctx:
        await run_create_comparison(user_id, query, session_id, ctx)


async def _comparison_exhausted(user_id: int, query: str, session_id: str, error: Exception, executions: int) -> None:
    async with job_context() as ctx:
        await comparison_retry_exhausted(user_id, query, session_id, error, ctx, executions=executions)


async def _create_deep_analysis(user_id: int, repository_id: int, session_id: str) -> None:
    async with job_context() as ctx:
        await run_create_deep_analysis(user_id, repository_id, session_id, ctx)


async def _deep_analysis_exhausted(
    user_id: int, repository_id: int, session_id: str, error: Exception, executions: int
) -> None:
    async with job_context() as ctx:
        await deep_analysis_retry_exhausted(user_id, repository_id, session_id, error, ctx, executions=executions)


@celery_app.task(bind=True, name="repo_recon.create_comparison", max_retries=MAX_RETRIES)
def create_comparison(self, user_id: int, query: str, session_id: str) -> None:
    try:
        asyncio.run(_create_comparison(user_id, query, session_id))
    except Exception as exc:
        executions = self.request.retries + 1
        if self.request.retries >= self.max_retries:
            asyncio.run(_comparison_exhausted(user_id, query, session_id, exc, executions))
            return
        raise self.retry(exc=exc, countdown=polynomial_backoff(executions))


@celery_app.task(bind=True, name="repo_recon.create_deep_analysis", max_retries=MAX_RETRIES)
def create_deep_analysis(self, user_id: int, repository_id: int, session_id: str) -> None:
    try:
        asyncio.run(_create_deep_analysis(user_id, repository_id, session_id))
    except Exception as exc:
        executions = self.request.retries + 1
        if self.request.retries >= self.max_retries:
            asyncio.run(_deep_analysis_exhausted(user_id, repository_id, session_id, exc, executions))
            return
        raise self.retry(exc=exc, countdown=polynomial_backoff(executions))


async def _sync_trending() -> int:
    async with job_context() as ctx:
        return await sync_trending_repositories(ctx)


async def _process_queue(batch_size: int) -> dict[str, int]:
    async with job_context() as ctx:
        return await drain_analysis_queue(ctx, batch_size=batch_size)


@celery_app.task(name="repo_recon.sync_trending")
def sync_trending() -> int:
    """Scheduled by beat; queues newly trending repositories for basic analysis."""

    return asyncio.run(_sync_trending())


@celery_app.task(name="repo_recon.process_analysis_queue")
def process_analysis_queue(batch_size: int | None = None) -> dict[str, int]:
    return asyncio.run(_process_queue(batch_size or settings.analysis_queue_batch_size))
