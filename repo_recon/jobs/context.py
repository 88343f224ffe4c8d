from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repo_recon.clients.github import GitHubClient, build_github_client
from repo_recon.clients.llm import LLMClient, build_llm_client
from repo_recon.database import SessionLocal
from repo_recon.progress.bus import ProgressBus, build_progress_bus


@dataclass
class JobContext:
    session_factory: async_sessionmaker[AsyncSession]
    bus: ProgressBus
    github: GitHubClient
    llm: LLMClient


@asynccontextmanager
async def job_context() -> AsyncIterator[JobContext]:
    """Open per-run clients; everything is closed when the run ends."""

    bus = build_progress_bus()
    github = build_github_client()
    llm = build_llm_client()
    try:
        yield JobContext(session_factory=SessionLocal, bus=bus, github=github, llm=llm)
    finally:
        await github.aclose()
        await llm.aclose()
        await bus.close()
