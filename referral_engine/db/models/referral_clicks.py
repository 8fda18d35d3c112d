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


class ReferralClick(Base):
    __tablename__ = "referral_clicks"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING','COMPLETED','BLOCKED','CLAIMED','EXPIRED')",
            name="ck_referral_clicks_status",
        ),
        CheckConstraint(
            "status <> 'BLOCKED' OR (total_reward = 0 AND claimed = false)",
            name="ck_referral_clicks_blocked_unrewarded",
        ),
        CheckConstraint("risk_score BETWEEN 0 AND 100", name="ck_referral_clicks_risk_score_range"),
        CheckConstraint("click_reward >= 0 AND total_reward >= 0", name="ck_referral_clicks_rewards"),
        Index("idx_referral_clicks_referrer_clicked", "referrer_id", "clicked_at"),
        Index("idx_referral_clicks_referrer_status", "referrer_id", "status"),
        Index("idx_referral_clicks_code", "referral_code"),
        Index("idx_referral_clicks_ip_clicked", "ip_address", "clicked_at"),
        Index("idx_referral_clicks_fingerprint_clicked", "fingerprint", "clicked_at"),
        Index(
            "idx_referral_clicks_referrer_unclaimed",
            "referrer_id",
            postgresql_where=text("claimed = false AND status <> 'BLOCKED'"),
        ),
        Index("idx_referral_clicks_expires_at", "expires_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    click_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    referrer_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    referral_code: Mapped[str] = mapped_column(String(20), nullable=False)

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

    click_reward: Mapped[int] = mapped_column(Integer, nullable=False)
    total_reward: Mapped[int] = mapped_column(Integer, nullable=False)
    converted: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    converted_user_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        nullable=True,
    )
    converted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    clicked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
