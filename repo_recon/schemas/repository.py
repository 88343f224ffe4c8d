from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AnalysisRead(BaseModel):
    id: int
    repository_id: int
    analysis_type: str

    summary: str
    use_cases: str | None = None
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    maturity: str | None = None

    model_used: str | None = None
    cost_usd: float
    is_current: bool

    created_at: datetime

    class Config:
        from_attributes = True


class RepositoryListItem(BaseModel):
    id: int
    github_id: int
    full_name: str
    owner_login: str
    name: str

    description: str | None = None
    html_url: str
    language: str | None = None
    license: str | None = None
    topics: list[str] = Field(default_factory=list)

    stargazers_count: int
    forks_count: int
    open_issues_count: int

    github_created_at: datetime | None = None
    github_updated_at: datetime | None = None

    class Config:
        from_attributes = True


class RepositoryRead(RepositoryListItem):
    homepage_url: str | None = None
    github_pushed_at: datetime | None = None
    analyses: list[AnalysisRead] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime


class AnalyzeByUrlRequest(BaseModel):
    url: str | None = None
