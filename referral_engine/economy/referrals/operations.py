"""Transactional entry points; stats refreshes are dispatched after commit."""

from __future__ import annotations

from datetime import datetime, timezone

from referral_engine.db.session import SessionLocal
from referral_engine.economy.referrals.service import ReferralService
from referral_engine.economy.referrals.stores import ReferralStores
from referral_engine.economy.referrals.types import (
    ClaimResult,
    ClickResult,
    ReferralRewardPolicy,
    ReferralStatsSnapshot,
    ReferredUsersPage,
    SecurityContext,
    SignupResult,
    SignupReviewResult,
    TierSnapshot,
)
from referral_engine.workers.tasks.referral_stats import enqueue_referral_stats_refresh


async def record_click(
    *,
    referral_code: str,
    security: SecurityContext,
    policy: ReferralRewardPolicy | None = None,
) -> ClickResult:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await ReferralService.record_click(
            ReferralStores.for_session(session),
            referral_code=referral_code,
            security=security,
            now_utc=now_utc,
            policy=policy,
        )
    await enqueue_referral_stats_refresh([result.referrer_id])
    return result


async def record_signup(
    *,
    referrer_id: int,
    referred_user_id: int,
    referral_code: str,
    security: SecurityContext,
    click_id: str | None = None,
    policy: ReferralRewardPolicy | None = None,
) -> SignupResult:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await ReferralService.record_signup(
            ReferralStores.for_session(session),
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            referral_code=referral_code,
            security=security,
            click_id=click_id,
            now_utc=now_utc,
            policy=policy,
        )
    await enqueue_referral_stats_refresh([result.referrer_id])
    return result


async def review_signup(
    *,
    signup_id: int,
    approve: bool,
    notes: str | None = None,
) -> SignupReviewResult:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await ReferralService.review_signup(
            ReferralStores.for_session(session),
            signup_id=signup_id,
            approve=approve,
            notes=notes,
            now_utc=now_utc,
        )
    await enqueue_referral_stats_refresh([result.referrer_id])
    return result


async def claim(
    *,
    user_id: int,
    claim_type: str,
    policy: ReferralRewardPolicy | None = None,
) -> ClaimResult:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await ReferralService.claim_rewards(
            ReferralStores.for_session(session),
            user_id=user_id,
            claim_type=claim_type,
            now_utc=now_utc,
            policy=policy,
        )
    if result.click_records_claimed or result.signup_records_claimed:
        await enqueue_referral_stats_refresh([user_id])
    return result


async def get_user_stats(
    *,
    user_id: int,
    policy: ReferralRewardPolicy | None = None,
) -> ReferralStatsSnapshot:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        return await ReferralService.get_user_stats(
            ReferralStores.for_session(session),
            user_id=user_id,
            now_utc=now_utc,
            policy=policy,
        )


async def get_referred_users(
    *,
    user_id: int,
    limit: int = 20,
    offset: int = 0,
) -> ReferredUsersPage:
    async with SessionLocal() as session:
        return await ReferralService.get_referred_users(
            ReferralStores.for_session(session),
            user_id=user_id,
            limit=limit,
            offset=offset,
        )


async def get_tier_overview(*, user_id: int) -> TierSnapshot:
    async with SessionLocal() as session:
        return await ReferralService.get_tier_overview(
            ReferralStores.for_session(session),
            user_id=user_id,
        )
