from __future__ import annotations

import hashlib
import hmac
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.models.api_key import ApiKey


def digest_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


async def generate_api_key(session: AsyncSession, *, name: str) -> tuple[ApiKey, str]:
    """Create an API key and return it together with the raw secret.

    Only the digest is persisted, so the raw key cannot be recovered later.
    Does not commit.
    """

    raw_key = f"rr_{secrets.token_urlsafe(32)}"
    api_key = ApiKey(name=name, key_digest=digest_key(raw_key), key_prefix=raw_key[:10])
    session.add(api_key)
    await session.flush()
    return api_key, raw_key


async def find_api_key(session: AsyncSession, raw_key: str) -> ApiKey | None:
    digest = digest_key(raw_key)
    res = await session.execute(
        select(ApiKey).where(ApiKey.key_digest == digest, ApiKey.revoked_at.is_(None))
    )
    api_key = res.scalar_one_or_none()
    if api_key is None or not hmac.compare_digest(api_key.key_digest, digest):
        return None
    return api_key
