from __future__ import annotations

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, utcnow


class Repository(Base):
    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    github_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    owner_login: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_url: Mapped[str] = mapped_column(String(500), nullable=False)
    homepage_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    language: Mapped[str | None] = mapped_column(String(50), nullable=True)
    license: Mapped[str | None] = mapped_column(String(100), nullable=True)
    topics: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    stargazers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    forks_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    open_issues_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    github_created_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    github_updated_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    github_pushed_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    analyses: Mapped[list["Analysis"]] = relationship(  # noqa: F821
        back_populates="repository",
        order_by="Analysis.created_at.desc()",
        cascade="all, delete-orphan",
    )
