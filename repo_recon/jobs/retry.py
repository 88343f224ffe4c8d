from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

logger = logging.getLogger("repo_recon.jobs")


def polynomial_backoff(executions: int, *, jitter: float = 0.15) -> float:
    """Seconds to wait before the next attempt: executions**4 + 2, plus up to 15% jitter."""

    delay = executions**4 + 2
    return delay + random.uniform(0, delay * jitter)


async def run_inline_with_retries(
    attempt: Callable[[], Awaitable[None]],
    on_exhausted: Callable[[Exception, int], Awaitable[None]],
    *,
    max_attempts: int,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Run ``attempt`` until it succeeds or ``max_attempts`` runs have failed.

    Mirrors the Celery task policy for the inline task backend. The final error
    is handed to ``on_exhausted`` instead of being raised.
    """

    executions = 0
    while True:
        executions += 1
        try:
            await attempt()
            return
        except Exception as exc:
            if executions >= max(1, max_attempts):
                await on_exhausted(exc, executions)
                return
            delay = polynomial_backoff(executions)
            logger.warning(
                "job_retry executions=%s delay_s=%.1f error=%s",
                executions,
                delay,
                exc.__class__.__name__,
            )
            await sleep(delay)
