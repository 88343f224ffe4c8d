import asyncio

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from repo_recon.clients.github import GitHubRateLimitError
from repo_recon.jobs.comparison import comparison_retry_exhausted, run_create_comparison
from repo_recon.models import Analysis, Comparison, ComparisonRepository, ComparisonStatus, Repository
from repo_recon.schemas.llm import ComparisonVerdict, ParsedQuery, RankedRepository
from tests._factories import (
    create_analysis,
    create_comparison_status,
    create_repository,
    create_user,
    fetch_all,
    github_repo_payload,
)
from tests._fakes import FakeGitHub, FakeLLM, make_context


STREAM = "comparison_progress_sid-1"


def _status() -> ComparisonStatus:
    return fetch_all(select(ComparisonStatus).where(ComparisonStatus.session_id == "sid-1"))[0]


def _github() -> FakeGitHub:
    return FakeGitHub(
        search_results={
            "web framework": [
                github_repo_payload("pallets/flask", stars=60000, github_id=1),
                github_repo_payload("encode/starlette", stars=9000, github_id=2),
            ],
            "asgi framework": [
                github_repo_payload("encode/starlette", stars=9000, github_id=2),
                github_repo_payload("tiangolo/fastapi", stars=70000, github_id=3),
            ],
        }
    )


def _llm() -> FakeLLM:
    parsed = ParsedQuery(
        normalized_query="python web framework",
        technologies=["python"],
        problem_domains=["web"],
        github_queries=["web framework", "asgi framework"],
    )
    verdict = ComparisonVerdict(
        recommended_repo="tiangolo/fastapi",
        recommendation_reasoning="Typed and fast",
        ranking=[
            RankedRepository(full_name="tiangolo/fastapi", rank=1, score=95, pros=["types"]),
            RankedRepository(full_name="pallets/flask", rank=2, score=80, cons=["sync"]),
        ],
    )
    return FakeLLM({ParsedQuery: parsed, ComparisonVerdict: verdict})


def test_successful_comparison_completes_status_and_broadcasts():
    user = create_user()
    create_comparison_status(user, "sid-1", pending_cost_usd=0.05)
    ctx = make_context(_github(), _llm())

    asyncio.run(run_create_comparison(user.id, "best python web framework", "sid-1", ctx))

    comparisons = fetch_all(
        select(Comparison).options(selectinload(Comparison.entries).selectinload(ComparisonRepository.repository))
    )
    assert len(comparisons) == 1
    comparison = comparisons[0]
    assert comparison.user_id == user.id
    assert comparison.user_query == "best python web framework"
    assert comparison.technologies == ["python"]
    assert comparison.github_search_queries == ["web framework", "asgi framework"]
    assert comparison.repos_compared_count == 3
    assert comparison.recommended_repo == "tiangolo/fastapi"
    # parse + three basic analyses + compare
    assert comparison.cost_usd == pytest.approx(0.05)
    assert [(e.rank, e.repository.full_name) for e in comparison.entries] == [
        (1, "tiangolo/fastapi"),
        (2, "pallets/flask"),
        (3, "encode/starlette"),
    ]

    status = _status()
    assert status.status == "completed"
    assert status.comparison_id == comparison.id
    assert status.pending_cost_usd == 0.0

    events = ctx.bus.events(STREAM)
    steps = [e.get("step") for e in events if e["type"] == "progress"]
    assert steps == [
        "parsing_query",
        "searching_github",
        "searching_github",
        "merging_results",
        "analyzing_repositories",
        "analyzing_repositories",
        "analyzing_repositories",
        "comparing_repositories",
        "saving_comparison",
    ]
    percentages = [e["percentage"] for e in events if e["type"] == "progress"]
    assert percentages == sorted(percentages)
    assert events[-1]["type"] == "complete"
    assert events[-1]["comparison_id"] == comparison.id


def test_existing_basic_analyses_are_reused():
    user = create_user()
    create_comparison_status(user, "sid-1")
    for github_id, name in ((1, "pallets/flask"), (2, "encode/starlette"), (3, "tiangolo/fastapi")):
        create_analysis(create_repository(name, github_id=github_id))
    llm = _llm()

    asyncio.run(run_create_comparison(user.id, "web", "sid-1", make_context(_github(), llm)))

    assert [schema.__name__ for schema in llm.calls] == ["ParsedQuery", "ComparisonVerdict"]
    assert len(fetch_all(select(Repository))) == 3
    assert len(fetch_all(select(Analysis))) == 3


def test_invalid_query_fails_without_retry():
    user = create_user()
    create_comparison_status(user, "sid-1", pending_cost_usd=0.05)
    llm = _llm()
    llm.responses[ParsedQuery] = ParsedQuery(is_valid=False, invalid_reason="not about software")
    ctx = make_context(_github(), llm)

    asyncio.run(run_create_comparison(user.id, "what is love", "sid-1", ctx))

    status = _status()
    assert status.status == "failed"
    assert status.error_message == "Invalid query: not about software"
    assert status.pending_cost_usd == 0.0
    assert ctx.bus.events(STREAM)[-1]["message"] == "Invalid query: not about software"
    assert fetch_all(select(Comparison)) == []


def test_no_repositories_found_fails_without_retry():
    user = create_user()
    create_comparison_status(user, "sid-1")
    ctx = make_context(FakeGitHub(), _llm())

    asyncio.run(run_create_comparison(user.id, "obscure", "sid-1", ctx))

    status = _status()
    assert status.status == "failed"
    assert status.error_message == "No repositories found. Try a different query."
    assert ctx.bus.events(STREAM)[-1] == {
        "type": "error",
        "message": "No repositories found. Try a different query.",
        "retry_data": {},
        "timestamp": ctx.bus.events(STREAM)[-1]["timestamp"],
    }


def test_transient_errors_propagate_for_retry():
    user = create_user()
    create_comparison_status(user, "sid-1")
    ctx = make_context(FakeGitHub(error=httpx.ConnectError("down")), _llm())

    with pytest.raises(httpx.ConnectError):
        asyncio.run(run_create_comparison(user.id, "web", "sid-1", ctx))

    assert _status().status == "processing"
    assert fetch_all(select(Repository)) == []


def test_retry_exhausted_marks_failed_with_user_message():
    user = create_user()
    create_comparison_status(user, "sid-1", pending_cost_usd=0.05)
    ctx = make_context()

    error = GitHubRateLimitError("limited", status_code=403)
    asyncio.run(comparison_retry_exhausted(user.id, "web", "sid-1", error, ctx, executions=2))

    status = _status()
    assert status.status == "failed"
    assert status.error_message == "GitHub rate limit reached. Please try again in a few minutes."
    assert status.pending_cost_usd == 0.0
    assert ctx.bus.events(STREAM)[-1]["type"] == "error"


def test_missing_user_fails_the_job():
    user = create_user()
    create_comparison_status(user, "sid-1")
    ctx = make_context(_github(), _llm())

    asyncio.run(run_create_comparison(424242, "web", "sid-1", ctx))

    assert _status().status == "failed"
