from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, distinct, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.db.models.referral_signups import ReferralSignup
from referral_engine.economy.referrals.constants import SIGNUP_STATUS_BLOCKED, SIGNUP_STATUS_CLAIMED
from referral_engine.economy.referrals.types import EarningsAggregates, SignupAggregates


def _count_since(column, since_utc: datetime):
    return func.coalesce(func.sum(case((column >= since_utc, 1), else_=0)), 0)


def _sum_since(column, amount, since_utc: datetime):
    return func.coalesce(func.sum(case((column >= since_utc, amount), else_=0)), 0)


class ReferralSignupsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def try_create(self, signup: ReferralSignup) -> ReferralSignup | None:
        values = {
            column.key: getattr(signup, column.key)
            for column in ReferralSignup.__table__.columns
            if column.key != "id" and getattr(signup, column.key) is not None
        }
        stmt = (
            pg_insert(ReferralSignup)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[ReferralSignup.referred_user_id])
            .returning(ReferralSignup.id)
        )
        result = await self.session.execute(stmt)
        signup_id = result.scalar_one_or_none()
        if signup_id is None:
            return None
        signup.id = int(signup_id)
        return signup

    async def get_by_id_for_update(self, signup_id: int) -> ReferralSignup | None:
        stmt = select(ReferralSignup).where(ReferralSignup.id == signup_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_by_ip_since(self, ip_address: str, *, since_utc: datetime) -> int:
        stmt = select(func.count(ReferralSignup.id)).where(
            ReferralSignup.ip_address == ip_address,
            ReferralSignup.signed_up_at >= since_utc,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def count_by_fingerprint_since(self, fingerprint: str, *, since_utc: datetime) -> int:
        stmt = select(func.count(ReferralSignup.id)).where(
            ReferralSignup.fingerprint == fingerprint,
            ReferralSignup.signed_up_at >= since_utc,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def count_verified_for_referrer(self, referrer_id: int) -> int:
        stmt = select(func.count(ReferralSignup.id)).where(
            ReferralSignup.referrer_id == referrer_id,
            ReferralSignup.verified.is_(True),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def mark_claimed_for_referrer(self, referrer_id: int, *, now_utc: datetime) -> list[int]:
        stmt = (
            update(ReferralSignup)
            .where(
                ReferralSignup.referrer_id == referrer_id,
                ReferralSignup.claimed.is_(False),
                ReferralSignup.verified.is_(True),
                ReferralSignup.status != SIGNUP_STATUS_BLOCKED,
            )
            .values(
                claimed=True,
                claimed_at=now_utc,
                status=SIGNUP_STATUS_CLAIMED,
                updated_at=now_utc,
            )
            .returning(ReferralSignup.total_reward)
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
    ) -> SignupAggregates:
        stmt = select(
            func.count(ReferralSignup.id),
            _count_since(ReferralSignup.signed_up_at, day_start_utc),
            _count_since(ReferralSignup.signed_up_at, week_start_utc),
            _count_since(ReferralSignup.signed_up_at, month_start_utc),
        ).where(
            ReferralSignup.referrer_id == referrer_id,
            ReferralSignup.verified.is_(True),
        )
        result = await self.session.execute(stmt)
        total, today, week, month = result.one()
        return SignupAggregates(
            verified_total=int(total or 0),
            today=int(today or 0),
            this_week=int(week or 0),
            this_month=int(month or 0),
        )

    async def earnings_for_referrer(
        self,
        referrer_id: int,
        *,
        day_start_utc: datetime,
        week_start_utc: datetime,
        month_start_utc: datetime,
    ) -> EarningsAggregates:
        reward = ReferralSignup.total_reward
        stmt = select(
            func.coalesce(func.sum(reward), 0),
            func.coalesce(func.sum(case((ReferralSignup.claimed.is_(True), reward), else_=0)), 0),
            _sum_since(ReferralSignup.signed_up_at, reward, day_start_utc),
            _sum_since(ReferralSignup.signed_up_at, reward, week_start_utc),
            _sum_since(ReferralSignup.signed_up_at, reward, month_start_utc),
        ).where(
            ReferralSignup.referrer_id == referrer_id,
            ReferralSignup.verified.is_(True),
            ReferralSignup.status != SIGNUP_STATUS_BLOCKED,
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

    async def list_verified_for_referrer(
        self,
        referrer_id: int,
        *,
        limit: int,
        offset: int,
    ) -> list[ReferralSignup]:
        stmt = (
            select(ReferralSignup)
            .where(
                ReferralSignup.referrer_id == referrer_id,
                ReferralSignup.verified.is_(True),
            )
            .order_by(ReferralSignup.signed_up_at.desc(), ReferralSignup.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_referrer_ids_active_since(self, since_utc: datetime, *, limit: int) -> list[int]:
        stmt = (
            select(distinct(ReferralSignup.referrer_id))
            .where(ReferralSignup.signed_up_at >= since_utc)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [int(user_id) for user_id in result.scalars().all()]
