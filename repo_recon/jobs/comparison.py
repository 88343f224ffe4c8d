from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.crud.job_status import get_comparison_status
from repo_recon.crud.user import get_user
from repo_recon.jobs.context import JobContext
from repo_recon.jobs.errors import user_message_for
from repo_recon.progress.broadcasters import ComparisonProgressBroadcaster
from repo_recon.services.comparison_creator import (
    ComparisonCreator,
    InvalidQueryError,
    NoRepositoriesFoundError,
)

logger = logging.getLogger("repo_recon.jobs.comparison")


async def _fail(
    session: AsyncSession,
    session_id: str,
    broadcaster: ComparisonProgressBroadcaster,
    message: str,
) -> None:
    status_record = await get_comparison_status(session, session_id=session_id)
    if status_record is not None:
        status_record.fail(message)
        await session.commit()
    await broadcaster.broadcast_error(message)


async def run_create_comparison(user_id: int, query: str, session_id: str, ctx: JobContext) -> None:
    """Build a comparison for ``query`` and report progress on its session stream.

    Query and no-result errors are terminal. Anything else propagates so the
    caller's retry policy can run the job again.
    """

    logger.info("create_comparison_start session_id=%s query=%r", session_id, query)
    broadcaster = ComparisonProgressBroadcaster(session_id, ctx.bus)

    async with ctx.session_factory() as session:
        user = await get_user(session, user_id=user_id)
        if user is None:
            logger.error("create_comparison_missing_user session_id=%s user_id=%s", session_id, user_id)
            await _fail(session, session_id, broadcaster, "User not found")
            return

        creator = ComparisonCreator(session, ctx.github, ctx.llm, broadcaster)
        try:
            comparison = await creator.create(query, user)
        except InvalidQueryError as e:
            logger.info("create_comparison_invalid_query session_id=%s reason=%s", session_id, e)
            await session.rollback()
            await _fail(session, session_id, broadcaster, f"Invalid query: {e}")
            return
        except NoRepositoriesFoundError as e:
            logger.info("create_comparison_no_repositories session_id=%s detail=%s", session_id, e)
            await session.rollback()
            await _fail(session, session_id, broadcaster, "No repositories found. Try a different query.")
            return
        except Exception:
            logger.exception("create_comparison_error session_id=%s", session_id)
            await session.rollback()
            raise

        status_record = await get_comparison_status(session, session_id=session_id)
        if status_record is not None:
            status_record.complete(comparison)
        await session.commit()
        comparison_id = comparison.id

    await broadcaster.broadcast_complete(comparison_id)
    logger.info("create_comparison_complete session_id=%s comparison_id=%s", session_id, comparison_id)


async def comparison_retry_exhausted(
    user_id: int,
    query: str,
    session_id: str,
    error: BaseException,
    ctx: JobContext,
    *,
    executions: int,
) -> None:
    logger.error(
        "create_comparison_retry_exhausted session_id=%s user_id=%s executions=%s error_class=%s error=%s query=%r",
        session_id,
        user_id,
        executions,
        error.__class__.__name__,
        error,
        query,
        exc_info=error,
    )

    message = user_message_for(error)
    broadcaster = ComparisonProgressBroadcaster(session_id, ctx.bus)
    async with ctx.session_factory() as session:
        await _fail(session, session_id, broadcaster, message)
