from __future__ import annotations

from collections.abc import AsyncGenerator
import os
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from repo_recon.config import settings


_engine_kwargs: dict = {"pool_pre_ping": True}

# NOTE: FastAPI's sync TestClient runs requests on an AnyIO portal loop while
# tests and Celery tasks drive jobs through asyncio.run(). Pooled connections
# must not be shared across those loops, so pooling is disabled under pytest.
# PYTEST_CURRENT_TEST is only set while a test runs; check sys.modules as well
# because the app may be imported during collection.
if os.getenv("PYTEST_CURRENT_TEST") or ("pytest" in sys.modules):
    _engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(settings.database_url, **_engine_kwargs)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
