from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.api.errors import ApiError
from repo_recon.auth import TokenError, decode_token, find_api_key
from repo_recon.clients.github import GitHubClient, build_github_client
from repo_recon.config import settings
from repo_recon.crud.user import get_user
from repo_recon.database import get_db
from repo_recon.models.api_key import ApiKey
from repo_recon.models.base import utcnow
from repo_recon.models.user import User


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_api_key(
    authorization: str | None = Header(None),
    session: AsyncSession = Depends(get_db),
) -> ApiKey:
    raw_key = _bearer_token(authorization)
    if raw_key is None:
        raise ApiError(401, "Unauthorized", ["Missing API key"])

    api_key = await find_api_key(session, raw_key)
    if api_key is None:
        raise ApiError(401, "Unauthorized", ["Invalid API key"])

    api_key.request_count = (api_key.request_count or 0) + 1
    api_key.last_used_at = utcnow()
    await session.commit()
    return api_key


async def require_user(
    x_user_token: str | None = Header(None),
    session: AsyncSession = Depends(get_db),
) -> User:
    if not x_user_token:
        raise ApiError(401, "Unauthorized", ["Missing user token"])

    try:
        claims = decode_token(x_user_token)
    except TokenError:
        raise ApiError(401, "Unauthorized", ["Invalid or expired user token"])

    user_id = claims.get("user_id")
    user = await get_user(session, user_id=user_id) if isinstance(user_id, int) else None
    if user is None:
        raise ApiError(401, "Unauthorized", ["User not found"])
    return user


async def require_admin(user: User = Depends(require_user)) -> User:
    if not user.is_admin(settings.admin_github_ids):
        raise ApiError(403, "Forbidden", ["Admin access required"])
    return user


async def get_github_client() -> AsyncGenerator[GitHubClient, None]:
    """Per-request GitHub client; tests swap it through ``dependency_overrides``."""

    client = build_github_client()
    try:
        yield client
    finally:
        await client.aclose()
