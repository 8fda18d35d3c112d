"""referral_engine_initial_schema

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-18 10:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5c1e9a7d2b40"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _security_snapshot_columns() -> list[sa.Column]:
    return [
        sa.Column("ip_address", sa.String(64), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("screen_resolution", sa.String(32), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("language", sa.String(32), nullable=True),
        sa.Column("platform", sa.String(64), nullable=True),
        sa.Column("browser", sa.String(64), nullable=True),
        sa.Column("os", sa.String(64), nullable=True),
        sa.Column("device_type", sa.String(16), nullable=True),
        sa.Column("session_id", sa.String(128), nullable=True),
        sa.Column("fingerprint", sa.String(32), nullable=False),
        sa.Column("risk_score", sa.SmallInteger(), nullable=False),
        sa.Column("is_suspicious", sa.Boolean(), nullable=False),
        sa.Column("blocked_reason", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("referral_code", sa.String(20), nullable=False),
        sa.Column("coins", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("referral_earnings", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('ACTIVE','BANNED','DELETED')", name="ck_users_status"),
        sa.CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        sa.UniqueConstraint("referral_code", name="uq_users_referral_code"),
    )
    op.create_index("idx_users_username", "users", ["username"])
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "rewards_ledger",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("balance_before", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("source_category", sa.String(24), nullable=False),
        sa.Column("source_action", sa.String(8), nullable=False),
        sa.Column("reference_id", sa.String(64), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("delta <> 0", name="ck_rewards_ledger_delta_non_zero"),
        sa.CheckConstraint("balance_after = balance_before + delta", name="ck_rewards_ledger_balance"),
        sa.CheckConstraint(
            "source_category IN ('REFERRAL','DAILY_LOGIN','PROMOTION','TRANSFER','REDEEM_CODE','ADMIN_ADJUSTMENT')",
            name="ck_rewards_ledger_source_category",
        ),
        sa.CheckConstraint(
            "source_action IN ('EARN','SPEND','ADJUST')",
            name="ck_rewards_ledger_source_action",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_rewards_ledger_user_created", "rewards_ledger", ["user_id", "created_at"])
    op.create_index("idx_rewards_ledger_source_created", "rewards_ledger", ["source_category", "created_at"])

    op.create_table(
        "referral_clicks",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("click_id", sa.String(64), nullable=False),
        sa.Column("referrer_id", sa.BigInteger(), nullable=False),
        sa.Column("referral_code", sa.String(20), nullable=False),
        *_security_snapshot_columns(),
        sa.Column("click_reward", sa.Integer(), nullable=False),
        sa.Column("total_reward", sa.Integer(), nullable=False),
        sa.Column("converted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("converted_user_id", sa.BigInteger(), nullable=True),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("claimed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("clicked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('PENDING','COMPLETED','BLOCKED','CLAIMED','EXPIRED')",
            name="ck_referral_clicks_status",
        ),
        sa.CheckConstraint(
            "status <> 'BLOCKED' OR (total_reward = 0 AND claimed = false)",
            name="ck_referral_clicks_blocked_unrewarded",
        ),
        sa.CheckConstraint("risk_score BETWEEN 0 AND 100", name="ck_referral_clicks_risk_score_range"),
        sa.CheckConstraint("click_reward >= 0 AND total_reward >= 0", name="ck_referral_clicks_rewards"),
        sa.ForeignKeyConstraint(["referrer_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["converted_user_id"], ["users.id"]),
        sa.UniqueConstraint("click_id", name="uq_referral_clicks_click_id"),
    )
    op.create_index("idx_referral_clicks_referrer_clicked", "referral_clicks", ["referrer_id", "clicked_at"])
    op.create_index("idx_referral_clicks_referrer_status", "referral_clicks", ["referrer_id", "status"])
    op.create_index("idx_referral_clicks_code", "referral_clicks", ["referral_code"])
    op.create_index("idx_referral_clicks_ip_clicked", "referral_clicks", ["ip_address", "clicked_at"])
    op.create_index(
        "idx_referral_clicks_fingerprint_clicked",
        "referral_clicks",
        ["fingerprint", "clicked_at"],
    )
    op.create_index(
        "idx_referral_clicks_referrer_unclaimed",
        "referral_clicks",
        ["referrer_id"],
        postgresql_where=sa.text("claimed = false AND status <> 'BLOCKED'"),
    )
    op.create_index("idx_referral_clicks_expires_at", "referral_clicks", ["expires_at"])

    op.create_table(
        "referral_signups",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("referrer_id", sa.BigInteger(), nullable=False),
        sa.Column("referred_user_id", sa.BigInteger(), nullable=False),
        sa.Column("referral_code", sa.String(20), nullable=False),
        sa.Column("click_id", sa.String(64), nullable=True),
        *_security_snapshot_columns(),
        sa.Column("signup_reward", sa.Integer(), nullable=False),
        sa.Column("tier_bonus", sa.Integer(), nullable=False),
        sa.Column("total_reward", sa.Integer(), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("claimed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signed_up_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('PENDING','COMPLETED','BLOCKED','CLAIMED')",
            name="ck_referral_signups_status",
        ),
        sa.CheckConstraint("referrer_id <> referred_user_id", name="ck_referral_signups_no_self_referral"),
        sa.CheckConstraint(
            "status <> 'BLOCKED' OR (total_reward = 0 AND claimed = false AND verified = false)",
            name="ck_referral_signups_blocked_unrewarded",
        ),
        sa.CheckConstraint(
            "total_reward = signup_reward + tier_bonus",
            name="ck_referral_signups_total_reward",
        ),
        sa.CheckConstraint("risk_score BETWEEN 0 AND 100", name="ck_referral_signups_risk_score_range"),
        sa.ForeignKeyConstraint(["referrer_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["referred_user_id"], ["users.id"]),
        sa.UniqueConstraint("referred_user_id", name="uq_referral_signups_referred_user_id"),
    )
    op.create_index(
        "idx_referral_signups_referrer_signed_up",
        "referral_signups",
        ["referrer_id", "signed_up_at"],
    )
    op.create_index("idx_referral_signups_referrer_verified", "referral_signups", ["referrer_id", "verified"])
    op.create_index("idx_referral_signups_code", "referral_signups", ["referral_code"])
    op.create_index("idx_referral_signups_click_id", "referral_signups", ["click_id"])
    op.create_index("idx_referral_signups_ip_signed_up", "referral_signups", ["ip_address", "signed_up_at"])
    op.create_index(
        "idx_referral_signups_fingerprint_signed_up",
        "referral_signups",
        ["fingerprint", "signed_up_at"],
    )
    op.create_index(
        "idx_referral_signups_referrer_unclaimed",
        "referral_signups",
        ["referrer_id"],
        postgresql_where=sa.text("claimed = false AND verified = true AND status <> 'BLOCKED'"),
    )

    op.create_table(
        "referral_stats",
        sa.Column("user_id", sa.BigInteger(), primary_key=True),
        sa.Column("total_clicks", sa.Integer(), nullable=False),
        sa.Column("unique_clicks", sa.Integer(), nullable=False),
        sa.Column("clicks_today", sa.Integer(), nullable=False),
        sa.Column("clicks_this_week", sa.Integer(), nullable=False),
        sa.Column("clicks_this_month", sa.Integer(), nullable=False),
        sa.Column("total_signups", sa.Integer(), nullable=False),
        sa.Column("signups_today", sa.Integer(), nullable=False),
        sa.Column("signups_this_week", sa.Integer(), nullable=False),
        sa.Column("signups_this_month", sa.Integer(), nullable=False),
        sa.Column("click_to_signup_rate", sa.Float(), nullable=False),
        sa.Column("total_earnings", sa.Integer(), nullable=False),
        sa.Column("pending_earnings", sa.Integer(), nullable=False),
        sa.Column("claimed_earnings", sa.Integer(), nullable=False),
        sa.Column("earnings_today", sa.Integer(), nullable=False),
        sa.Column("earnings_this_week", sa.Integer(), nullable=False),
        sa.Column("earnings_this_month", sa.Integer(), nullable=False),
        sa.Column("current_tier", sa.String(16), nullable=False),
        sa.Column("tier_progress", sa.Float(), nullable=False),
        sa.Column("tier_bonus_percentage", sa.SmallInteger(), nullable=False),
        sa.Column("suspicious_clicks", sa.Integer(), nullable=False),
        sa.Column("blocked_clicks", sa.Integer(), nullable=False),
        sa.Column("fraud_score", sa.Float(), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_referral_stats_current_tier", "referral_stats", ["current_tier"])
    op.create_index("idx_referral_stats_total_signups", "referral_stats", ["total_signups"])
    op.create_index("idx_referral_stats_total_earnings", "referral_stats", ["total_earnings"])
    op.create_index("idx_referral_stats_last_updated", "referral_stats", ["last_updated"])

    op.create_table(
        "referral_events",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("referred_user_id", sa.BigInteger(), nullable=True),
        sa.Column("referral_code", sa.String(20), nullable=True),
        sa.Column("click_id", sa.String(64), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column(
            "payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("happened_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "event_type IN ('referral_click','referral_signup','referral_claim','referral_tier_upgrade','referral_signup_review')",
            name="ck_referral_events_type",
        ),
        sa.CheckConstraint("status IN ('SUCCESS','BLOCKED','PENDING')", name="ck_referral_events_status"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_referral_events_user_time", "referral_events", ["user_id", "happened_at"])
    op.create_index("idx_referral_events_type_time", "referral_events", ["event_type", "happened_at"])
    op.create_index("idx_referral_events_ip_time", "referral_events", ["ip_address", "happened_at"])


def downgrade() -> None:
    op.drop_table("referral_events")
    op.drop_table("referral_stats")
    op.drop_table("referral_signups")
    op.drop_table("referral_clicks")
    op.drop_table("rewards_ledger")
    op.drop_table("users")
