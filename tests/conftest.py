import asyncio
import os
import tempfile

_TEST_DB = os.path.join(tempfile.mkdtemp(prefix="repo_recon_"), "test.db")

# Settings are read at import time, so the environment must be in place first.
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB}"
os.environ["PROGRESS_BACKEND"] = "memory"
os.environ["TASK_BACKEND"] = "inline"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["ALLOWED_ADMIN_GITHUB_IDS"] = "9001"
os.environ["OPENAI_API_KEY"] = "sk-test"

import pytest  # noqa: E402

from repo_recon.database import engine  # noqa: E402
from repo_recon.models import Base  # noqa: E402
from repo_recon.progress import bus as progress_bus  # noqa: E402
from repo_recon.worker import dispatch  # noqa: E402


async def _recreate_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def fresh_database():
    asyncio.run(_recreate_schema())
    yield


@pytest.fixture(autouse=True)
def fresh_progress_bus(monkeypatch):
    monkeypatch.setattr(progress_bus, "_memory_bus", None)
    monkeypatch.setattr(progress_bus, "_shared_bus", None)
    yield


@pytest.fixture(autouse=True)
def enqueued(request, monkeypatch):
    """Capture job hand-offs instead of running them; job tests call the jobs directly.

    Tests marked ``real_dispatch`` keep the real enqueue functions.
    """

    calls: list[tuple[str, dict]] = []
    if request.node.get_closest_marker("real_dispatch"):
        return calls

    def _fake_enqueue_create_comparison(**kwargs):
        calls.append(("create_comparison", kwargs))

    def _fake_enqueue_create_deep_analysis(**kwargs):
        calls.append(("create_deep_analysis", kwargs))

    monkeypatch.setattr(dispatch, "enqueue_create_comparison", _fake_enqueue_create_comparison)
    monkeypatch.setattr(dispatch, "enqueue_create_deep_analysis", _fake_enqueue_create_deep_analysis)
    return calls
