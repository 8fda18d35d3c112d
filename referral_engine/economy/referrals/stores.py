from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.db.models.referral_clicks import ReferralClick
from referral_engine.db.models.referral_signups import ReferralSignup
from referral_engine.db.models.users import User
from referral_engine.economy.referrals.types import (
    ClickAggregates,
    EarningsAggregates,
    ReferralStatsSnapshot,
    SignupAggregates,
)


class ReferralClicksStore(Protocol):
    async def create(self, click: ReferralClick) -> ReferralClick: ...

    async def get_by_click_id(self, click_id: str) -> ReferralClick | None: ...

    async def count_by_ip_since(self, ip_address: str, *, since_utc: datetime) -> int: ...

    async def count_by_fingerprint_since(self, fingerprint: str, *, since_utc: datetime) -> int: ...

    async def mark_converted(
        self,
        click_id: str,
        *,
        referrer_id: int,
        converted_user_id: int,
        now_utc: datetime,
    ) -> bool: ...

    async def mark_claimed_for_referrer(self, referrer_id: int, *, now_utc: datetime) -> list[int]:
        """Flips every claimable row and returns the rewards of exactly the rows it flipped."""
        ...

    async def aggregate_for_referrer(
        self,
        referrer_id: int,
        *,
        day_start_utc: datetime,
        week_start_utc: datetime,
        month_start_utc: datetime,
    ) -> ClickAggregates: ...

    async def earnings_for_referrer(
        self,
        referrer_id: int,
        *,
        day_start_utc: datetime,
        week_start_utc: datetime,
        month_start_utc: datetime,
    ) -> EarningsAggregates: ...

    async def list_referrer_ids_active_since(self, since_utc: datetime, *, limit: int) -> list[int]: ...


class ReferralSignupsStore(Protocol):
    async def try_create(self, signup: ReferralSignup) -> ReferralSignup | None:
        """Inserts the row, or returns None when the referred user already has one."""
        ...

    async def get_by_id_for_update(self, signup_id: int) -> ReferralSignup | None: ...

    async def count_by_ip_since(self, ip_address: str, *, since_utc: datetime) -> int: ...

    async def count_by_fingerprint_since(self, fingerprint: str, *, since_utc: datetime) -> int: ...

    async def count_verified_for_referrer(self, referrer_id: int) -> int: ...

    async def mark_claimed_for_referrer(self, referrer_id: int, *, now_utc: datetime) -> list[int]: ...

    async def aggregate_for_referrer(
        self,
        referrer_id: int,
        *,
        day_start_utc: datetime,
        week_start_utc: datetime,
        month_start_utc: datetime,
    ) -> SignupAggregates: ...

    async def earnings_for_referrer(
        self,
        referrer_id: int,
        *,
        day_start_utc: datetime,
        week_start_utc: datetime,
        month_start_utc: datetime,
    ) -> EarningsAggregates: ...

    async def list_verified_for_referrer(
        self,
        referrer_id: int,
        *,
        limit: int,
        offset: int,
    ) -> list[ReferralSignup]: ...

    async def list_referrer_ids_active_since(self, since_utc: datetime, *, limit: int) -> list[int]: ...


class ReferralStatsStore(Protocol):
    async def get(self, user_id: int) -> ReferralStatsSnapshot | None: ...

    async def upsert(self, snapshot: ReferralStatsSnapshot) -> None: ...


class ReferralEventsStore(Protocol):
    async def record(
        self,
        *,
        event_type: str,
        status: str,
        happened_at: datetime,
        user_id: int | None = None,
        referred_user_id: int | None = None,
        referral_code: str | None = None,
        click_id: str | None = None,
        ip_address: str | None = None,
        payload: dict[str, object] | None = None,
    ) -> None: ...


class UserAccounts(Protocol):
    async def get_by_id(self, user_id: int) -> User | None: ...

    async def get_by_referral_code(self, referral_code: str) -> User | None: ...

    async def list_by_ids(self, user_ids: Sequence[int]) -> list[User]: ...

    async def credit(
        self,
        user_id: int,
        amount: int,
        *,
        reason: str,
        reference_id: str | None,
        now_utc: datetime,
    ) -> int | None:
        """Atomically adds `amount` and returns the new balance, or None when nothing was credited."""
        ...


@dataclass(frozen=True, slots=True)
class ReferralStores:
    clicks: ReferralClicksStore
    signups: ReferralSignupsStore
    stats: ReferralStatsStore
    events: ReferralEventsStore
    users: UserAccounts

    @classmethod
    def for_session(cls, session: AsyncSession) -> ReferralStores:
        from referral_engine.db.repo.referral_clicks_repo import ReferralClicksRepo
        from referral_engine.db.repo.referral_events_repo import ReferralEventsRepo
        from referral_engine.db.repo.referral_signups_repo import ReferralSignupsRepo
        from referral_engine.db.repo.referral_stats_repo import ReferralStatsRepo
        from referral_engine.db.repo.users_repo import UsersRepo

        return cls(
            clicks=ReferralClicksRepo(session),
            signups=ReferralSignupsRepo(session),
            stats=ReferralStatsRepo(session),
            events=ReferralEventsRepo(session),
            users=UsersRepo(session),
        )
