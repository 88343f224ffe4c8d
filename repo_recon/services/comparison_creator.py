from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.clients.github import GitHubClient
from repo_recon.clients.llm import LLMClient, LLMUsage
from repo_recon.config import settings
from repo_recon.models.comparison import Comparison, ComparisonRepository
from repo_recon.models.repository import Repository
from repo_recon.models.user import User
from repo_recon.progress.broadcasters import ComparisonProgressBroadcaster
from repo_recon.schemas.llm import ComparisonVerdict, ParsedQuery
from repo_recon.services import prompts
from repo_recon.services.analyzer import ensure_basic_analysis
from repo_recon.services.repository_syncer import RepositorySyncer

logger = logging.getLogger("repo_recon.services.comparison")


class InvalidQueryError(Exception):
    pass


class NoRepositoriesFoundError(Exception):
    pass


def merge_search_results(result_sets: list[list[dict[str, Any]]], *, limit: int) -> list[dict[str, Any]]:
    """Deduplicate by full_name (case-insensitive) and keep the most-starred ``limit``."""

    merged: dict[str, dict[str, Any]] = {}
    for items in result_sets:
        for item in items:
            key = str(item.get("full_name", "")).lower()
            if not key:
                continue
            seen = merged.get(key)
            if seen is None or (item.get("stargazers_count") or 0) > (seen.get("stargazers_count") or 0):
                merged[key] = item

    ordered = sorted(merged.values(), key=lambda i: i.get("stargazers_count") or 0, reverse=True)
    return ordered[:limit]


class ComparisonCreator:
    """Query -> GitHub search -> per-repo analysis -> LLM ranking -> Comparison."""

    def __init__(
        self,
        session: AsyncSession,
        github: GitHubClient,
        llm: LLMClient,
        broadcaster: ComparisonProgressBroadcaster,
    ) -> None:
        self.session = session
        self.github = github
        self.llm = llm
        self.broadcaster = broadcaster
        self.usage = LLMUsage(model=llm.model)

    async def create(self, query: str, user: User | None) -> Comparison:
        parsed = await self._parse_query(query)
        search_results = await self._search(parsed)

        await self.broadcaster.broadcast_step("merging_results", message="Merging search results...")
        candidates = merge_search_results(search_results, limit=settings.comparison_max_repositories)
        if not candidates:
            raise NoRepositoriesFoundError(f"No repositories matched {parsed.github_queries!r}")

        syncer = RepositorySyncer(self.session, self.github)
        repos = [await syncer.upsert_from_github(item) for item in candidates]

        await self._analyze(repos)
        verdict = await self._compare(query, parsed, repos)

        await self.broadcaster.broadcast_step("saving_comparison", message="Saving comparison...")
        comparison = self._build_comparison(query, parsed, repos, verdict, user)
        self.session.add(comparison)
        await self.session.flush()

        logger.info(
            "comparison_created id=%s repos=%s cost_usd=%.6f",
            comparison.id,
            len(repos),
            comparison.cost_usd,
        )
        return comparison

    async def _parse_query(self, query: str) -> ParsedQuery:
        await self.broadcaster.broadcast_step("parsing_query", message="Parsing your query...")
        parsed, usage = await self.llm.complete_json(
            system=prompts.PARSE_QUERY_SYSTEM,
            user=query,
            schema=ParsedQuery,
        )
        self.usage += usage

        if not parsed.is_valid:
            raise InvalidQueryError(parsed.invalid_reason or "query does not describe a software need")
        if not parsed.github_queries:
            parsed.github_queries = [parsed.normalized_query or query]
        return parsed

    async def _search(self, parsed: ParsedQuery) -> list[list[dict[str, Any]]]:
        total = len(parsed.github_queries)
        results = []
        for index, github_query in enumerate(parsed.github_queries, start=1):
            await self.broadcaster.broadcast_step(
                "searching_github",
                message=f"Searching GitHub: {github_query}",
                current=index,
                total=total,
            )
            results.append(
                await self.github.search_repositories(
                    github_query,
                    per_page=settings.comparison_search_per_query,
                )
            )
        return results

    async def _analyze(self, repos: list[Repository]) -> None:
        total = len(repos)
        for index, repo in enumerate(repos, start=1):
            await self.broadcaster.broadcast_step(
                "analyzing_repositories",
                message=f"Analyzing {repo.full_name}...",
                current=index,
                total=total,
            )
            _, usage = await ensure_basic_analysis(self.session, self.llm, repo)
            if usage is not None:
                self.usage += usage

    async def _compare(self, query: str, parsed: ParsedQuery, repos: list[Repository]) -> ComparisonVerdict:
        await self.broadcaster.broadcast_step("comparing_repositories", message="Comparing repositories...")
        candidates = "\n\n".join(prompts.describe_repository(r) for r in repos)
        verdict, usage = await self.llm.complete_json(
            system=prompts.COMPARE_SYSTEM,
            user=f"Need: {query}\nNormalized: {parsed.normalized_query}\n\nCandidates:\n\n{candidates}",
            schema=ComparisonVerdict,
        )
        self.usage += usage
        return verdict

    def _build_comparison(
        self,
        query: str,
        parsed: ParsedQuery,
        repos: list[Repository],
        verdict: ComparisonVerdict,
        user: User | None,
    ) -> Comparison:
        by_name = {r.full_name.lower(): r for r in repos}
        ranked = {r.full_name.lower(): r for r in verdict.ranking}

        # Candidates the model forgot to rank go to the bottom in star order.
        entries = []
        next_rank = max((r.rank for r in verdict.ranking), default=0) + 1
        for key, repo in by_name.items():
            ranking = ranked.get(key)
            if ranking is None:
                entries.append(ComparisonRepository(repository_id=repo.id, rank=next_rank))
                next_rank += 1
            else:
                entries.append(
                    ComparisonRepository(
                        repository_id=repo.id,
                        rank=ranking.rank,
                        score=ranking.score,
                        pros=ranking.pros,
                        cons=ranking.cons,
                    )
                )

        recommended = verdict.recommended_repo
        if recommended and recommended.lower() not in by_name:
            recommended = None
        if recommended is None and entries:
            best = min(entries, key=lambda e: e.rank)
            recommended = next(r.full_name for r in repos if r.id == best.repository_id)

        return Comparison(
            user_id=user.id if user else None,
            user_query=query,
            normalized_query=parsed.normalized_query or None,
            technologies=parsed.technologies,
            problem_domains=parsed.problem_domains,
            architecture_patterns=parsed.architecture_patterns,
            github_search_queries=parsed.github_queries,
            repos_compared_count=len(repos),
            recommended_repo=recommended,
            recommendation_reasoning=verdict.recommendation_reasoning,
            model_used=self.usage.model,
            input_tokens=self.usage.input_tokens,
            output_tokens=self.usage.output_tokens,
            cost_usd=self.usage.cost_usd,
            entries=entries,
        )
