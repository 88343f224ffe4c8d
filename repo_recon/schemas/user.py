from __future__ import annotations

from pydantic import BaseModel


class TokenExchangeRequest(BaseModel):
    github_token: str | None = None


class UserRead(BaseModel):
    id: int
    github_id: int
    github_username: str
    email: str
    avatar_url: str | None = None
    name: str | None = None
    admin: bool


class TokenExchangeResponse(BaseModel):
    jwt: str
    user: UserRead


class UsageRead(BaseModel):
    deep_analyses_today: int
    deep_analyses_remaining: int
    comparisons_today: int
    comparisons_remaining: int


class ProfileRead(BaseModel):
    user: UserRead
    usage: UsageRead
