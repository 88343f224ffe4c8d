from __future__ import annotations

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"


class _StatusRecord:
    """Durable point read for clients polling an async job.

    ``pending_cost_usd`` is a budget reservation held while the job runs; it is
    released once the job reaches a terminal state.
    """

    @property
    def is_terminal(self) -> bool:
        return self.status in (COMPLETED, FAILED)

    def fail(self, message: str) -> None:
        self.status = FAILED
        self.error_message = message
        self.pending_cost_usd = 0.0
        self.updated_at = utcnow()


class ComparisonStatus(_StatusRecord, Base):
    __tablename__ = "comparison_statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    comparison_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("comparisons.id", ondelete="SET NULL"), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PROCESSING, server_default=PROCESSING)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    pending_cost_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    def complete(self, comparison) -> None:
        self.status = COMPLETED
        self.comparison_id = comparison.id
        self.error_message = None
        self.pending_cost_usd = 0.0
        self.updated_at = utcnow()


class AnalysisStatus(_StatusRecord, Base):
    __tablename__ = "analysis_statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    repository_id: Mapped[int] = mapped_column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    analysis_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("analyses.id", ondelete="SET NULL"), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PROCESSING, server_default=PROCESSING)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    pending_cost_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    def complete(self, analysis) -> None:
        self.status = COMPLETED
        self.analysis_id = analysis.id
        self.error_message = None
        self.pending_cost_usd = 0.0
        self.updated_at = utcnow()
