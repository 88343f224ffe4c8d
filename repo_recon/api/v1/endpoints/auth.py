from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.api.deps import get_github_client
from repo_recon.api.errors import ApiError
from repo_recon.auth import encode_token
from repo_recon.clients.github import GitHubClient
from repo_recon.config import settings
from repo_recon.crud.user import is_whitelisted, upsert_github_user
from repo_recon.database import get_db
from repo_recon.models.user import User
from repo_recon.schemas.user import TokenExchangeRequest, TokenExchangeResponse, UserRead


logger = logging.getLogger("repo_recon.api.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


def user_read(user: User) -> UserRead:
    return UserRead(
        id=user.id,
        github_id=user.github_id,
        github_username=user.github_username,
        email=user.email,
        avatar_url=user.github_avatar_url,
        name=user.github_name,
        admin=user.is_admin(settings.admin_github_ids),
    )


@router.post("/exchange")
async def exchange_token_endpoint(
    payload: TokenExchangeRequest,
    session: AsyncSession = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
):
    token = (payload.github_token or "").strip()
    if not token:
        raise ApiError(400, "GitHub token required")

    github_user = await github.get_authenticated_user(token)
    if not github_user:
        raise ApiError(401, "Invalid GitHub token")

    if not await is_whitelisted(session, github_id=github_user["id"]):
        logger.info("auth_exchange_denied github_id=%s login=%s", github_user["id"], github_user.get("login"))
        raise ApiError(403, "Access denied", ["Your GitHub account is not on the access list"])

    user = await upsert_github_user(session, github_user=github_user)
    jwt_token = encode_token({"user_id": user.id, "github_id": user.github_id})
    logger.info("auth_exchange user_id=%s github_id=%s", user.id, user.github_id)
    return {"data": TokenExchangeResponse(jwt=jwt_token, user=user_read(user))}
