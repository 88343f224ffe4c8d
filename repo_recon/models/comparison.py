from __future__ import annotations

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, utcnow


class Comparison(Base):
    __tablename__ = "comparisons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    user_query: Mapped[str] = mapped_column(String(500), nullable=False)
    normalized_query: Mapped[str | None] = mapped_column(String(500), nullable=True)

    technologies: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    problem_domains: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    architecture_patterns: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    github_search_queries: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    repos_compared_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    recommended_repo: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recommendation_reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)

    model_used: Mapped[str | None] = mapped_column(String(100), nullable=True)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    cost_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    entries: Mapped[list["ComparisonRepository"]] = relationship(
        back_populates="comparison",
        order_by="ComparisonRepository.rank",
        cascade="all, delete-orphan",
    )


class ComparisonRepository(Base):
    __tablename__ = "comparison_repositories"
    __table_args__ = (UniqueConstraint("comparison_id", "repository_id", name="uq_comparison_repositories_pair"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    comparison_id: Mapped[int] = mapped_column(Integer, ForeignKey("comparisons.id", ondelete="CASCADE"), nullable=False)
    repository_id: Mapped[int] = mapped_column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)

    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pros: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    cons: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    comparison: Mapped[Comparison] = relationship(back_populates="entries")
    repository: Mapped["Repository"] = relationship()  # noqa: F821
