from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.clients.github import GitHubClient
from repo_recon.clients.llm import LLMClient, LLMUsage
from repo_recon.models.analysis import Analysis
from repo_recon.models.repository import Repository
from repo_recon.models.user import User
from repo_recon.progress.broadcasters import AnalysisProgressBroadcaster
from repo_recon.schemas.llm import RepositoryInsight
from repo_recon.services import prompts

logger = logging.getLogger("repo_recon.services.analyzer")

README_CHAR_LIMIT = 12_000
ISSUE_LIMIT = 15


def _analysis_from_insight(
    repo: Repository,
    insight: RepositoryInsight,
    usage: LLMUsage,
    *,
    analysis_type: str,
    user: User | None = None,
) -> Analysis:
    return Analysis(
        repository_id=repo.id,
        user_id=user.id if user else None,
        analysis_type=analysis_type,
        summary=insight.summary,
        use_cases=insight.use_cases,
        strengths=insight.strengths,
        weaknesses=insight.weaknesses,
        maturity=insight.maturity,
        model_used=usage.model,
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        cost_usd=usage.cost_usd,
        is_current=True,
    )


async def current_analysis(session: AsyncSession, repo: Repository, *, analysis_type: str) -> Analysis | None:
    res = await session.execute(
        select(Analysis)
        .where(
            Analysis.repository_id == repo.id,
            Analysis.analysis_type == analysis_type,
            Analysis.is_current.is_(True),
        )
        .order_by(Analysis.created_at.desc(), Analysis.id.desc())
        .limit(1)
    )
    return res.scalar_one_or_none()


async def _retire_current(session: AsyncSession, repo: Repository, *, analysis_type: str) -> None:
    await session.execute(
        update(Analysis)
        .where(Analysis.repository_id == repo.id, Analysis.analysis_type == analysis_type)
        .values(is_current=False)
    )


async def ensure_basic_analysis(
    session: AsyncSession,
    llm: LLMClient,
    repo: Repository,
) -> tuple[Analysis, LLMUsage | None]:
    """Return the current basic analysis, running the LLM only when none exists.

    The usage is None when a cached analysis was reused. Flushes, does not commit.
    """

    existing = await current_analysis(session, repo, analysis_type="basic")
    if existing is not None:
        return existing, None

    insight, usage = await llm.complete_json(
        system=prompts.ANALYZE_REPOSITORY_SYSTEM,
        user=prompts.describe_repository(repo),
        schema=RepositoryInsight,
    )
    analysis = _analysis_from_insight(repo, insight, usage, analysis_type="basic")
    session.add(analysis)
    await session.flush()
    return analysis, usage


class DeepAnalyzer:
    """README + issues + LLM review of one repository, with progress events."""

    def __init__(
        self,
        session: AsyncSession,
        github: GitHubClient,
        llm: LLMClient,
        broadcaster: AnalysisProgressBroadcaster,
    ) -> None:
        self.session = session
        self.github = github
        self.llm = llm
        self.broadcaster = broadcaster

    async def analyze(self, repo: Repository, user: User | None) -> Analysis:
        await self.broadcaster.broadcast_step("fetching_readme", message="Fetching README...")
        readme = await self.github.get_readme(repo.full_name) or ""

        await self.broadcaster.broadcast_step("fetching_issues", message="Fetching open issues...")
        issues = await self.github.list_issues(repo.full_name, per_page=ISSUE_LIMIT)

        await self.broadcaster.broadcast_step("running_analysis", message="Running AI analysis...")
        insight, usage = await self.llm.complete_json(
            system=prompts.DEEP_ANALYSIS_SYSTEM,
            user=self._build_prompt(repo, readme, issues),
            schema=RepositoryInsight,
        )

        await self.broadcaster.broadcast_step("saving_results", message="Saving results...")
        await _retire_current(self.session, repo, analysis_type="deep")
        analysis = _analysis_from_insight(repo, insight, usage, analysis_type="deep", user=user)
        self.session.add(analysis)
        await self.session.flush()

        logger.info(
            "deep_analysis_created repository=%s analysis_id=%s cost_usd=%.6f",
            repo.full_name,
            analysis.id,
            analysis.cost_usd,
        )
        return analysis

    @staticmethod
    def _build_prompt(repo: Repository, readme: str, issues: list[dict]) -> str:
        issue_lines = [
            f"- #{i.get('number')} {i.get('title')} ({i.get('comments', 0)} comments)"
            for i in issues[:ISSUE_LIMIT]
        ]
        return "\n\n".join(
            [
                prompts.describe_repository(repo),
                "README:\n" + (readme[:README_CHAR_LIMIT] or "(no README)"),
                "Open issues:\n" + ("\n".join(issue_lines) or "(none)"),
            ]
        )
