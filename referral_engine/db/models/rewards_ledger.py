from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.db.models.base import Base


class RewardsLedgerEntry(Base):
    __tablename__ = "rewards_ledger"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_rewards_ledger_delta_non_zero"),
        CheckConstraint("balance_after = balance_before + delta", name="ck_rewards_ledger_balance"),
        CheckConstraint(
            "source_category IN ('REFERRAL','DAILY_LOGIN','PROMOTION','TRANSFER','REDEEM_CODE','ADMIN_ADJUSTMENT')",
            name="ck_rewards_ledger_source_category",
        ),
        CheckConstraint("source_action IN ('EARN','SPEND','ADJUST')", name="ck_rewards_ledger_source_action"),
        Index("idx_rewards_ledger_user_created", "user_id", "created_at"),
        Index("idx_rewards_ledger_source_created", "source_category", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    source_category: Mapped[str] = mapped_column(String(24), nullable=False)
    source_action: Mapped[str] = mapped_column(String(8), nullable=False)
    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
