"""create users, repositories, analyses, comparisons, job statuses and queue

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    ]


def _jsonb_list(name: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("github_id", sa.BigInteger(), nullable=False),
        sa.Column("github_username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("github_avatar_url", sa.String(length=500), nullable=True),
        sa.Column("github_name", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("github_id", name="uq_users_github_id"),
    )

    op.create_table(
        "whitelisted_users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("github_id", sa.BigInteger(), nullable=False),
        sa.Column("github_username", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("github_id", name="uq_whitelisted_users_github_id"),
    )

    op.create_table(
        "api_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("key_digest", sa.String(length=64), nullable=False),
        sa.Column("key_prefix", sa.String(length=12), nullable=False),
        sa.Column("request_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("key_digest", name="uq_api_keys_key_digest"),
    )

    op.create_table(
        "repositories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("github_id", sa.BigInteger(), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("owner_login", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("html_url", sa.String(length=500), nullable=False),
        sa.Column("homepage_url", sa.String(length=500), nullable=True),
        sa.Column("language", sa.String(length=50), nullable=True),
        sa.Column("license", sa.String(length=100), nullable=True),
        _jsonb_list("topics"),
        sa.Column("stargazers_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("forks_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("open_issues_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("github_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("github_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("github_pushed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("github_id", name="uq_repositories_github_id"),
        sa.UniqueConstraint("full_name", name="uq_repositories_full_name"),
    )
    op.create_index("idx_repositories_stars", "repositories", [sa.text("stargazers_count DESC")], unique=False)
    op.create_index("idx_repositories_language", "repositories", ["language"], unique=False)

    op.create_table(
        "analyses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("repository_id", sa.Integer(), sa.ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("analysis_type", sa.String(length=20), server_default=sa.text("'basic'"), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("use_cases", sa.Text(), nullable=True),
        _jsonb_list("strengths"),
        _jsonb_list("weaknesses"),
        sa.Column("maturity", sa.String(length=30), nullable=True),
        sa.Column("model_used", sa.String(length=100), nullable=True),
        sa.Column("input_tokens", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("output_tokens", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("cost_usd", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("is_current", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.CheckConstraint("analysis_type IN ('basic','deep')", name="ck_analyses_type"),
    )
    op.create_index(
        "idx_analyses_repository_current",
        "analyses",
        ["repository_id", "analysis_type", "is_current"],
        unique=False,
    )
    op.create_index("idx_analyses_type_created", "analyses", ["analysis_type", "created_at"], unique=False)

    op.create_table(
        "comparisons",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("user_query", sa.String(length=500), nullable=False),
        sa.Column("normalized_query", sa.String(length=500), nullable=True),
        _jsonb_list("technologies"),
        _jsonb_list("problem_domains"),
        _jsonb_list("architecture_patterns"),
        _jsonb_list("github_search_queries"),
        sa.Column("repos_compared_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("recommended_repo", sa.String(length=255), nullable=True),
        sa.Column("recommendation_reasoning", sa.Text(), nullable=True),
        sa.Column("model_used", sa.String(length=100), nullable=True),
        sa.Column("input_tokens", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("output_tokens", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("cost_usd", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("view_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_comparisons_created", "comparisons", [sa.text("created_at DESC")], unique=False)

    op.create_table(
        "comparison_repositories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("comparison_id", sa.Integer(), sa.ForeignKey("comparisons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("repository_id", sa.Integer(), sa.ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        _jsonb_list("pros"),
        _jsonb_list("cons"),
        sa.UniqueConstraint("comparison_id", "repository_id", name="uq_comparison_repositories_pair"),
    )

    op.create_table(
        "comparison_statuses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("session_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("comparison_id", sa.Integer(), sa.ForeignKey("comparisons.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=20), server_default=sa.text("'processing'"), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("pending_cost_usd", sa.Float(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("session_id", name="uq_comparison_statuses_session_id"),
        sa.CheckConstraint("status IN ('processing','completed','failed')", name="ck_comparison_statuses_status"),
    )
    op.create_index("idx_comparison_statuses_user_created", "comparison_statuses", ["user_id", "created_at"], unique=False)

    op.create_table(
        "analysis_statuses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("session_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("repository_id", sa.Integer(), sa.ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("analysis_id", sa.Integer(), sa.ForeignKey("analyses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=20), server_default=sa.text("'processing'"), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("pending_cost_usd", sa.Float(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("session_id", name="uq_analysis_statuses_session_id"),
        sa.CheckConstraint("status IN ('processing','completed','failed')", name="ck_analysis_statuses_status"),
    )
    op.create_index("idx_analysis_statuses_user_created", "analysis_statuses", ["user_id", "created_at"], unique=False)

    op.create_table(
        "queued_analyses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("repository_id", sa.Integer(), sa.ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("analysis_type", sa.String(length=20), server_default=sa.text("'basic'"), nullable=False),
        sa.Column("status", sa.String(length=20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("priority", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("retry_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("priority BETWEEN 0 AND 10", name="ck_queued_analyses_priority"),
        sa.CheckConstraint(
            "status IN ('pending','processing','completed','failed')",
            name="ck_queued_analyses_status",
        ),
    )
    op.create_index(
        "idx_queued_analyses_pending",
        "queued_analyses",
        [sa.text("priority DESC"), "created_at"],
        unique=False,
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index("idx_queued_analyses_pending", table_name="queued_analyses")
    op.drop_table("queued_analyses")

    op.drop_index("idx_analysis_statuses_user_created", table_name="analysis_statuses")
    op.drop_table("analysis_statuses")

    op.drop_index("idx_comparison_statuses_user_created", table_name="comparison_statuses")
    op.drop_table("comparison_statuses")

    op.drop_table("comparison_repositories")

    op.drop_index("idx_comparisons_created", table_name="comparisons")
    op.drop_table("comparisons")

    op.drop_index("idx_analyses_type_created", table_name="analyses")
    op.drop_index("idx_analyses_repository_current", table_name="analyses")
    op.drop_table("analyses")

    op.drop_index("idx_repositories_language", table_name="repositories")
    op.drop_index("idx_repositories_stars", table_name="repositories")
    op.drop_table("repositories")

    op.drop_table("api_keys")
    op.drop_table("whitelisted_users")
    op.drop_table("users")
