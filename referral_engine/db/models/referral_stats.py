from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Index, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.db.models.base import Base


class ReferralStats(Base):
    __tablename__ = "referral_stats"
    __table_args__ = (
        Index("idx_referral_stats_current_tier", "current_tier"),
        Index("idx_referral_stats_total_signups", "total_signups"),
        Index("idx_referral_stats_total_earnings", "total_earnings"),
        Index("idx_referral_stats_last_updated", "last_updated"),
    )

    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), primary_key=True)

    total_clicks: Mapped[int] = mapped_column(Integer, nullable=False)
    unique_clicks: Mapped[int] = mapped_column(Integer, nullable=False)
    clicks_today: Mapped[int] = mapped_column(Integer, nullable=False)
    clicks_this_week: Mapped[int] = mapped_column(Integer, nullable=False)
    clicks_this_month: Mapped[int] = mapped_column(Integer, nullable=False)

    total_signups: Mapped[int] = mapped_column(Integer, nullable=False)
    signups_today: Mapped[int] = mapped_column(Integer, nullable=False)
    signups_this_week: Mapped[int] = mapped_column(Integer, nullable=False)
    signups_this_month: Mapped[int] = mapped_column(Integer, nullable=False)

    click_to_signup_rate: Mapped[float] = mapped_column(Float, nullable=False)

    total_earnings: Mapped[int] = mapped_column(Integer, nullable=False)
    pending_earnings: Mapped[int] = mapped_column(Integer, nullable=False)
    claimed_earnings: Mapped[int] = mapped_column(Integer, nullable=False)
    earnings_today: Mapped[int] = mapped_column(Integer, nullable=False)
    earnings_this_week: Mapped[int] = mapped_column(Integer, nullable=False)
    earnings_this_month: Mapped[int] = mapped_column(Integer, nullable=False)

    current_tier: Mapped[str] = mapped_column(String(16), nullable=False)
    tier_progress: Mapped[float] = mapped_column(Float, nullable=False)
    tier_bonus_percentage: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    suspicious_clicks: Mapped[int] = mapped_column(Integer, nullable=False)
    blocked_clicks: Mapped[int] = mapped_column(Integer, nullable=False)
    fraud_score: Mapped[float] = mapped_column(Float, nullable=False)

    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
