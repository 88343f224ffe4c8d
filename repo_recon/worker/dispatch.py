from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from repo_recon.config import settings
from repo_recon.jobs.comparison import comparison_retry_exhausted, run_create_comparison
from repo_recon.jobs.context import JobContext, job_context
from repo_recon.jobs.deep_analysis import deep_analysis_retry_exhausted, run_create_deep_analysis
from repo_recon.jobs.retry import run_inline_with_retries

logger = logging.getLogger("repo_recon.dispatch")

# Strong references to inline jobs; the event loop only keeps weak ones.
_inline_tasks: set[asyncio.Task] = set()


def _spawn_inline(
    run: Callable[[JobContext], Awaitable[None]],
    exhausted: Callable[[JobContext, Exception, int], Awaitable[None]],
) -> asyncio.Task:
    async def _job() -> None:
        async with job_context() as ctx:
            await run_inline_with_retries(
                lambda: run(ctx),
                lambda exc, executions: exhausted(ctx, exc, executions),
                max_attempts=settings.job_max_attempts,
            )

    task = asyncio.get_running_loop().create_task(_job())
    _inline_tasks.add(task)
    task.add_done_callback(_inline_tasks.discard)
    return task


def enqueue_create_comparison(*, user_id: int, query: str, session_id: str) -> None:
    """Hand a comparison job to the configured task backend.

    The inline backend must be called from a running event loop (an endpoint).
    """

    if settings.task_backend == "inline":
        _spawn_inline(
            lambda ctx: run_create_comparison(user_id, query, session_id, ctx),
            lambda ctx, exc, n: comparison_retry_exhausted(user_id, query, session_id, exc, ctx, executions=n),
        )
        return

    from repo_recon.worker.tasks import create_comparison

    create_comparison.delay(user_id, query, session_id)
    logger.info("enqueued create_comparison session_id=%s", session_id)


def enqueue_create_deep_analysis(*, user_id: int, repository_id: int, session_id: str) -> None:
    if settings.task_backend == "inline":
        _spawn_inline(
            lambda ctx: run_create_deep_analysis(user_id, repository_id, session_id, ctx),
            lambda ctx, exc, n: deep_analysis_retry_exhausted(
                user_id, repository_id, session_id, exc, ctx, executions=n
            ),
        )
        return

    from repo_recon.worker.tasks import create_deep_analysis

    create_deep_analysis.delay(user_id, repository_id, session_id)
    logger.info("enqueued create_deep_analysis session_id=%s", session_id)
