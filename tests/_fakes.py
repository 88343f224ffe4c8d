"""In-memory stand-ins for the GitHub and OpenAI clients."""

from typing import Any

from repo_recon.clients.github import GitHubNotFoundError
from repo_recon.clients.llm import LLMUsage
from repo_recon.database import SessionLocal
from repo_recon.jobs.context import JobContext
from repo_recon.progress.bus import InMemoryProgressBus
from repo_recon.schemas.llm import ComparisonVerdict, ParsedQuery, RepositoryInsight


class FakeGitHub:
    def __init__(
        self,
        *,
        users: dict[str, dict] | None = None,
        repos: dict[str, dict] | None = None,
        search_results: dict[str, list[dict]] | None = None,
        readme: str | None = "# Readme",
        issues: list[dict] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.users = users or {}
        self.repos = repos or {}
        self.search_results = search_results or {}
        self.readme = readme
        self.issues = issues or []
        self.error = error
        self.searches: list[str] = []
        self.closed = False

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error

    async def get_authenticated_user(self, token: str) -> dict[str, Any] | None:
        return self.users.get(token)

    async def get_repository(self, full_name: str) -> dict[str, Any]:
        self._maybe_fail()
        payload = self.repos.get(full_name.lower())
        if payload is None:
            raise GitHubNotFoundError(f"GitHub resource not found: /repos/{full_name}", status_code=404)
        return payload

    async def search_repositories(self, query: str, *, sort: str = "stars", order: str = "desc", per_page: int = 10):
        self._maybe_fail()
        self.searches.append(query)
        return list(self.search_results.get(query, []))[:per_page]

    async def get_readme(self, full_name: str) -> str | None:
        self._maybe_fail()
        return self.readme

    async def list_issues(self, full_name: str, *, state: str = "open", per_page: int = 30):
        self._maybe_fail()
        return list(self.issues)

    async def aclose(self) -> None:
        self.closed = True


class FakeLLM:
    """Answers ``complete_json`` from a per-schema table; each call costs a fixed usage."""

    model = "gpt-test"

    def __init__(self, responses: dict[type, Any] | None = None, *, error: Exception | None = None) -> None:
        self.responses = {
            ParsedQuery: ParsedQuery(normalized_query="python web framework", github_queries=["web framework"]),
            RepositoryInsight: RepositoryInsight(summary="A solid library", strengths=["docs"], weaknesses=["size"]),
            ComparisonVerdict: ComparisonVerdict(),
        }
        self.responses.update(responses or {})
        self.error = error
        self.calls: list[type] = []

    async def complete_json(self, *, system: str, user: str, schema: type):
        self.calls.append(schema)
        if self.error is not None:
            raise self.error
        return self.responses[schema], LLMUsage(model=self.model, input_tokens=1000, output_tokens=500, cost_usd=0.01)

    async def aclose(self) -> None:
        return None


class RecordingBus(InMemoryProgressBus):
    """Memory bus that also keeps every published event, subscribed or not."""

    def __init__(self) -> None:
        super().__init__()
        self.published: list[tuple[str, dict]] = []

    async def publish(self, stream: str, payload: dict[str, Any]) -> None:
        self.published.append((stream, dict(payload)))
        await super().publish(stream, payload)

    def events(self, stream: str) -> list[dict]:
        return [payload for name, payload in self.published if name == stream]


def make_context(github: FakeGitHub | None = None, llm: FakeLLM | None = None) -> JobContext:
    return JobContext(
        session_factory=SessionLocal,
        bus=RecordingBus(),
        github=github or FakeGitHub(),
        llm=llm or FakeLLM(),
    )
