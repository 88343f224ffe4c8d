from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from repo_recon.schemas.repository import RepositoryListItem


class ComparisonCreate(BaseModel):
    query: str | None = None


class ComparisonEntryRead(BaseModel):
    rank: int
    score: int | None = None
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    repository: RepositoryListItem

    class Config:
        from_attributes = True


class ComparisonListItem(BaseModel):
    id: int
    user_query: str
    normalized_query: str | None = None

    technologies: list[str] = Field(default_factory=list)
    problem_domains: list[str] = Field(default_factory=list)
    architecture_patterns: list[str] = Field(default_factory=list)

    repos_compared_count: int
    recommended_repo: str | None = None
    view_count: int

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ComparisonRead(ComparisonListItem):
    recommendation_reasoning: str | None = None
    github_search_queries: list[str] = Field(default_factory=list)
    cost_usd: float
    repositories: list[ComparisonEntryRead] = Field(default_factory=list, validation_alias="entries")
