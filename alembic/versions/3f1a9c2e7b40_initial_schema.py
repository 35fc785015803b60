"""initial schema

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-10-19 09:12:44.201733

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "tenants",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("status", sa.Enum("ACTIVE", "SUSPENDED", name="tenantstatus"), nullable=False),
        sa.Column("plan_type", sa.String(50), nullable=False),
    )
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True)

    op.create_table(
        "users",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum("OWNER", "ADMIN", "MEMBER", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "api_keys",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("key_hash", sa.String(), nullable=False),
        sa.Column("key_prefix", sa.String(12), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_api_keys_tenant_id", "api_keys", ["tenant_id"])
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])
    op.create_index("ix_api_keys_key_hash", "api_keys", ["key_hash"], unique=True)

    op.create_table(
        "subscriptions",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column(
            "plan_type",
            sa.Enum("FREE", "BASIC", "PRO", "ENTERPRISE", name="plantype"),
            nullable=False,
        ),
        sa.Column("quota_total", sa.Integer(), nullable=False),
        sa.Column("quota_used", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "EXPIRED", "CANCELLED", name="subscriptionstatus"),
            nullable=False,
        ),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("auto_renew", sa.Boolean(), nullable=False),
        sa.CheckConstraint("quota_used >= 0", name="ck_subscriptions_quota_used_non_negative"),
        sa.CheckConstraint("quota_used <= quota_total", name="ck_subscriptions_quota_within_total"),
    )
    op.create_index("ix_subscriptions_tenant_id", "subscriptions", ["tenant_id"])
    op.create_index("ix_subscriptions_status", "subscriptions", ["status"])

    op.create_table(
        "quota_logs",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("subscription_id", sa.Uuid(), sa.ForeignKey("subscriptions.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "operation",
            sa.Enum("ANALYSIS", "RECHARGE", "REFUND", name="quotaoperation"),
            nullable=False,
        ),
        sa.Column("quota_change", sa.Integer(), nullable=False),
        sa.Column("balance_before", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("related_id", sa.Uuid(), nullable=True),
        sa.Column("description", sa.String(500), nullable=False),
    )
    op.create_index("ix_quota_logs_tenant_id", "quota_logs", ["tenant_id"])
    op.create_index("ix_quota_logs_subscription_id", "quota_logs", ["subscription_id"])
    op.create_index("ix_quota_logs_related_id", "quota_logs", ["related_id"])

    op.create_table(
        "candidates",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("position", sa.String(100), nullable=True),
        sa.Column("source_text", sa.Text(), nullable=False),
        sa.Column(
            "source_type",
            sa.Enum("TEXT", "FILE", "CHAT", name="candidatesourcetype"),
            nullable=False,
        ),
        sa.Column("is_hired", sa.Boolean(), nullable=False),
        sa.Column("hired_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_candidates_tenant_id", "candidates", ["tenant_id"])
    op.create_index("ix_candidates_position", "candidates", ["position"])

    op.create_table(
        "reports",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("candidate_id", sa.Uuid(), sa.ForeignKey("candidates.id"), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("personality_type", sa.String(20), nullable=False),
        sa.Column("dimension1", sa.String(20), nullable=False),
        sa.Column("dimension2", sa.String(20), nullable=False),
        sa.Column("maturity_score", sa.Float(), nullable=False),
        sa.Column("match_score", sa.Integer(), nullable=False),
        sa.Column("risk_level", sa.String(10), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("risk_factors", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("clues", sa.Text(), nullable=False, server_default=""),
        sa.Column("report_data", sa.Text(), nullable=False, server_default="{}"),
        sa.Column(
            "analysis_status",
            sa.Enum("PENDING", "PROCESSING", "COMPLETED", "FAILED", name="analysisstatus"),
            nullable=False,
        ),
        sa.UniqueConstraint("candidate_id"),
    )
    op.create_index("ix_reports_tenant_id", "reports", ["tenant_id"])
    op.create_index("ix_reports_personality_type", "reports", ["personality_type"])
    op.create_index("ix_reports_risk_level", "reports", ["risk_level"])

    op.create_table(
        "analysis_tasks",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("candidate_id", sa.Uuid(), sa.ForeignKey("candidates.id"), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING", "PROCESSING", "COMPLETED", "FAILED",
                name="analysisstatus", create_type=False,
            ),
            nullable=False,
        ),
        sa.Column("report_id", sa.Uuid(), sa.ForeignKey("reports.id"), nullable=True),
        sa.Column("error_message", sa.String(2000), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_analysis_tasks_tenant_id", "analysis_tasks", ["tenant_id"])
    op.create_index("ix_analysis_tasks_candidate_id", "analysis_tasks", ["candidate_id"])
    op.create_index("ix_analysis_tasks_status", "analysis_tasks", ["status"])


def downgrade() -> None:
    op.drop_table("analysis_tasks")
    op.drop_table("reports")
    op.drop_table("candidates")
    op.drop_table("quota_logs")
    op.drop_table("subscriptions")
    op.drop_table("api_keys")
    op.drop_table("users")
    op.drop_table("tenants")
    for enum_name in (
        "analysisstatus", "candidatesourcetype", "quotaoperation",
        "subscriptionstatus", "plantype", "userrole", "tenantstatus",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
