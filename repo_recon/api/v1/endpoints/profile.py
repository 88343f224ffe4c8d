from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from repo_recon.api.deps import require_user
from repo_recon.api.v1.endpoints.auth import user_read
from repo_recon.config import settings
from repo_recon.database import get_db
from repo_recon.models.user import User
from repo_recon.schemas.user import ProfileRead, UsageRead
from repo_recon.services.budget import comparisons_today_for, deep_analyses_today_for


router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
async def get_profile_endpoint(
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_db),
):
    deep_analyses = await deep_analyses_today_for(session, user)
    comparisons = await comparisons_today_for(session, user)

    usage = UsageRead(
        deep_analyses_today=deep_analyses,
        deep_analyses_remaining=max(0, settings.deep_analysis_rate_limit_per_user - deep_analyses),
        comparisons_today=comparisons,
        comparisons_remaining=max(0, settings.comparison_rate_limit_per_user - comparisons),
    )
    return {"data": ProfileRead(user=user_read(user), usage=usage)}
