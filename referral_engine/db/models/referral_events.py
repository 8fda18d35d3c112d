from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.db.models.base import Base


class ReferralEvent(Base):
    __tablename__ = "referral_events"
    __table_args__ = (
        CheckConstraint(
            "event_type IN ('referral_click','referral_signup','referral_claim','referral_tier_upgrade','referral_signup_review')",
            name="ck_referral_events_type",
        ),
        CheckConstraint(
            "status IN ('SUCCESS','BLOCKED','PENDING')",
            name="ck_referral_events_status",
        ),
        Index("idx_referral_events_user_time", "user_id", "happened_at"),
        Index("idx_referral_events_type_time", "event_type", "happened_at"),
        Index("idx_referral_events_ip_time", "ip_address", "happened_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    user_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=True)
    referred_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    referral_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    click_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict[str, object]] = mapped_column(
        JSONB, nullable=False, server_default=text("'{}'::jsonb")
    )
    happened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
