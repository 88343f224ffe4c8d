"""Structured shapes the LLM is asked to return."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ParsedQuery(BaseModel):
    is_valid: bool = True
    invalid_reason: str | None = None
    normalized_query: str = ""
    technologies: list[str] = Field(default_factory=list)
    problem_domains: list[str] = Field(default_factory=list)
    architecture_patterns: list[str] = Field(default_factory=list)
    github_queries: list[str] = Field(default_factory=list)


class RepositoryInsight(BaseModel):
    summary: str
    use_cases: str | None = None
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    maturity: str | None = None


class RankedRepository(BaseModel):
    full_name: str
    rank: int
    score: int | None = None
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)


class ComparisonVerdict(BaseModel):
    recommended_repo: str | None = None
    recommendation_reasoning: str | None = None
    ranking: list[RankedRepository] = Field(default_factory=list)
