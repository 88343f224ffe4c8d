from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.models.base import utcnow
from repo_recon.models.user import User
from repo_recon.models.whitelisted_user import WhitelistedUser


async def get_user(session: AsyncSession, *, user_id: int) -> User | None:
    return await session.get(User, user_id)


async def is_whitelisted(session: AsyncSession, *, github_id: int) -> bool:
    res = await session.execute(select(WhitelistedUser.id).where(WhitelistedUser.github_id == github_id))
    return res.first() is not None


async def upsert_github_user(session: AsyncSession, *, github_user: dict) -> User:
    """Create the user on first login and refresh GitHub profile fields on every login."""

    login = github_user["login"]
    fields = {
        "github_username": login,
        "email": github_user.get("email") or f"{login}@users.noreply.github.com",
        "github_avatar_url": github_user.get("avatar_url"),
        "github_name": github_user.get("name"),
    }

    res = await session.execute(select(User).where(User.github_id == github_user["id"]))
    user = res.scalar_one_or_none()
    if user is None:
        user = User(github_id=github_user["id"], **fields)
        session.add(user)
    else:
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = utcnow()

    await session.commit()
    return user
