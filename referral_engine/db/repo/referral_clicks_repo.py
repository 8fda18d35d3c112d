from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.db.models.referral_clicks import ReferralClick
from referral_engine.economy.referrals.constants import (
    CLICK_STATUS_BLOCKED,
    CLICK_STATUS_CLAIMED,
    CLICK_STATUS_COMPLETED,
    CLICK_STATUS_PENDING,
)
from referral_engine.economy.referrals.types import ClickAggregates, EarningsAggregates


def _count_since(column, since_utc: datetime):
    return func.coalesce(func.sum(case((column >= since_utc, 1), else_=0)), 0)


def _sum_since(column, amount, since_utc: datetime):
    return func.coalesce(func.sum(case((column >= since_utc, amount), else_=0)), 0)


class ReferralClicksRepo:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, click: ReferralClick) -> ReferralClick:
        self.session.add(click)
        await self.session.flush()
        return click

    async def get_by_click_id(self, click_id: str) -> ReferralClick | None:
        stmt = select(ReferralClick).where(ReferralClick.click_id == click_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_by_ip_since(self, ip_address: str, *, since_utc: datetime) -> int:
        stmt = select(func.count(ReferralClick.id)).where(
            ReferralClick.ip_address == ip_address,
            ReferralClick.clicked_at >= since_utc,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def count_by_fingerprint_since(self, fingerprint: str, *, since_utc: datetime) -> int:
        stmt = select(func.count(ReferralClick.id)).where(
            ReferralClick.fingerprint == fingerprint,
            ReferralClick.clicked_at >= since_utc,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def mark_converted(
        self,
        click_id: str,
        *,
        referrer_id: int,
        converted_user_id: int,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(ReferralClick)
            .where(
                ReferralClick.click_id == click_id,
                ReferralClick.referrer_id == referrer_id,
                ReferralClick.converted.is_(False),
                ReferralClick.status != CLICK_STATUS_BLOCKED,
            )
            .values(
                converted=True,
                converted_user_id=converted_user_id,
                converted_at=now_utc,
                status=case(
                    (ReferralClick.status == CLICK_STATUS_PENDING, CLICK_STATUS_COMPLETED),
                    else_=ReferralClick.status,
                ),
                updated_at=now_utc,
            )
            .returning(ReferralClick.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def mark_claimed_for_referrer(self, referrer_id: int, *, now_utc: datetime) -> list[int]:
        stmt = (
            update(ReferralClick)
            .where(
                ReferralClick.referrer_id == referrer_id,
                ReferralClick.claimed.is_(False),
                ReferralClick.status != CLICK_STATUS_BLOCKED,
            )
            .values(
                claimed=True,
                claimed_at=now_utc,
                status=CLICK_STATUS_CLAIMED,
                updated_at=now_utc,
            )
            .returning(ReferralClick.total_reward)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return [int(reward) for reward in result.scalars().all()]

    async def aggregate_for_referrer(
        self,
        referrer_id: int,
        *,
        day_start_utc: datetime,
        week_start_utc: datetime,
        month_start_utc: datetime,
    ) -> ClickAggregates:
        stmt = select(
            func.count(ReferralClick.id),
            func.count(distinct(ReferralClick.ip_address)),
            _count_since(ReferralClick.clicked_at, day_start_utc),
            _count_since(ReferralClick.clicked_at, week_start_utc),
            _count_since(ReferralClick.clicked_at, month_start_utc),
            func.coalesce(func.sum(case((ReferralClick.is_suspicious.is_(True), 1), else_=0)), 0),
            func.coalesce(
                func.sum(case((ReferralClick.status == CLICK_STATUS_BLOCKED, 1), else_=0)), 0
            ),
        ).where(ReferralClick.referrer_id == referrer_id)
        result = await self.session.execute(stmt)
        total, unique_ips, today, week, month, suspicious, blocked = result.one()
        return ClickAggregates(
            total=int(total or 0),
            unique_ips=int(unique_ips or 0),
            today=int(today or 0),
            this_week=int(week or 0),
            this_month=int(month or 0),
            suspicious=int(suspicious or 0),
            blocked=int(blocked or 0),
        )

    async def earnings_for_referrer(
        self,
        referrer_id: int,
        *,
        day_start_utc: datetime,
        week_start_utc: datetime,
        month_start_utc: datetime,
    ) -> EarningsAggregates:
        reward = ReferralClick.total_reward
        stmt = select(
            func.coalesce(func.sum(reward), 0),
            func.coalesce(func.sum(case((ReferralClick.claimed.is_(True), reward), else_=0)), 0),
            _sum_since(ReferralClick.clicked_at, reward, day_start_utc),
            _sum_since(ReferralClick.clicked_at, reward, week_start_utc),
            _sum_since(ReferralClick.clicked_at, reward, month_start_utc),
        ).where(
            ReferralClick.referrer_id == referrer_id,
            ReferralClick.status != CLICK_STATUS_BLOCKED,
        )
        result = await self.session.execute(stmt)
        total, claimed, today, week, month = result.one()
        return EarningsAggregates(
            total=int(total or 0),
            claimed=int(claimed or 0),
            today=int(today or 0),
            this_week=int(week or 0),
            this_month=int(month or 0),
        )

    async def list_referrer_ids_active_since(self, since_utc: datetime, *, limit: int) -> list[int]:
        stmt = (
            select(distinct(ReferralClick.referrer_id))
            .where(ReferralClick.clicked_at >= since_utc)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [int(user_id) for user_id in result.scalars().all()]
