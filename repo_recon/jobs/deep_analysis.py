from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.crud.job_status import get_analysis_status
from repo_recon.crud.user import get_user
from repo_recon.jobs.context import JobContext
from repo_recon.jobs.errors import user_message_for
from repo_recon.models.repository import Repository
from repo_recon.progress.broadcasters import AnalysisProgressBroadcaster
from repo_recon.services.analyzer import DeepAnalyzer

logger = logging.getLogger("repo_recon.jobs.deep_analysis")


async def _fail(
    session: AsyncSession,
    session_id: str,
    broadcaster: AnalysisProgressBroadcaster,
    message: str,
) -> None:
    status_record = await get_analysis_status(session, session_id=session_id)
    if status_record is not None:
        status_record.fail(message)
        await session.commit()
    await broadcaster.broadcast_error(message)


async def run_create_deep_analysis(user_id: int, repository_id: int, session_id: str, ctx: JobContext) -> None:
    logger.info("deep_analysis_start session_id=%s repository_id=%s", session_id, repository_id)
    broadcaster = AnalysisProgressBroadcaster(session_id, ctx.bus)

    async with ctx.session_factory() as session:
        repo = await session.get(Repository, repository_id)
        if repo is None:
            await _fail(session, session_id, broadcaster, "Repository not found")
            return
        user = await get_user(session, user_id=user_id)
        if user is None:
            await _fail(session, session_id, broadcaster, "User not found")
            return

        analyzer = DeepAnalyzer(session, ctx.github, ctx.llm, broadcaster)
        try:
            analysis = await analyzer.analyze(repo, user)
        except Exception:
            logger.exception("deep_analysis_error session_id=%s repository_id=%s", session_id, repository_id)
            await session.rollback()
            raise

        status_record = await get_analysis_status(session, session_id=session_id)
        if status_record is not None:
            status_record.complete(analysis)
        await session.commit()

    await broadcaster.broadcast_complete(repository_id)
    logger.info("deep_analysis_complete session_id=%s repository_id=%s", session_id, repository_id)


async def deep_analysis_retry_exhausted(
    user_id: int,
    repository_id: int,
    session_id: str,
    error: BaseException,
    ctx: JobContext,
    *,
    executions: int,
) -> None:
    logger.error(
        "deep_analysis_retry_exhausted session_id=%s user_id=%s repository_id=%s executions=%s error_class=%s error=%s",
        session_id,
        user_id,
        repository_id,
        executions,
        error.__class__.__name__,
        error,
        exc_info=error,
    )

    message = user_message_for(error)
    broadcaster = AnalysisProgressBroadcaster(session_id, ctx.bus)
    async with ctx.session_factory() as session:
        await _fail(session, session_id, broadcaster, message)
