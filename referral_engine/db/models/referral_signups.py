from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.db.models.base import Base


class ReferralSignup(Base):
    __tablename__ = "referral_signups"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING','COMPLETED','BLOCKED','CLAIMED')",
            name="ck_referral_signups_status",
        ),
        CheckConstraint(
            "referrer_id <> referred_user_id",
            name="ck_referral_signups_no_self_referral",
        ),
        CheckConstraint(
            "status <> 'BLOCKED' OR (total_reward = 0 AND claimed = false AND verified = false)",
            name="ck_referral_signups_blocked_unrewarded",
        ),
        CheckConstraint(
            "total_reward = signup_reward + tier_bonus",
            name="ck_referral_signups_total_reward",
        ),
        CheckConstraint("risk_score BETWEEN 0 AND 100", name="ck_referral_signups_risk_score_range"),
        Index("idx_referral_signups_referrer_signed_up", "referrer_id", "signed_up_at"),
        Index("idx_referral_signups_referrer_verified", "referrer_id", "verified"),
        Index("idx_referral_signups_code", "referral_code"),
        Index("idx_referral_signups_click_id", "click_id"),
        Index("idx_referral_signups_ip_signed_up", "ip_address", "signed_up_at"),
        Index("idx_referral_signups_fingerprint_signed_up", "fingerprint", "signed_up_at"),
        Index(
            "idx_referral_signups_referrer_unclaimed",
            "referrer_id",
            postgresql_where=text("claimed = false AND verified = true AND status <> 'BLOCKED'"),
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    referrer_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    referred_user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )
    referral_code: Mapped[str] = mapped_column(String(20), nullable=False)
    click_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    screen_resolution: Mapped[str | None] = mapped_column(String(32), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    language: Mapped[str | None] = mapped_column(String(32), nullable=True)
    platform: Mapped[str | None] = mapped_column(String(64), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(64), nullable=True)
    os: Mapped[str | None] = mapped_column(String(64), nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    fingerprint: Mapped[str] = mapped_column(String(32), nullable=False)
    risk_score: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    is_suspicious: Mapped[bool] = mapped_column(Boolean, nullable=False)
    blocked_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    signup_reward: Mapped[int] = mapped_column(Integer, nullable=False)
    tier_bonus: Mapped[int] = mapped_column(Integer, nullable=False)
    total_reward: Mapped[int] = mapped_column(Integer, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False)
    verification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    signed_up_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
