from __future__ import annotations

from datetime import datetime

import structlog

from referral_engine.economy.referrals.constants import (
    CLAIM_CREDIT_REASON,
    CLAIM_TYPE_ALL,
    CLAIM_TYPE_CLICKS,
    CLAIM_TYPE_SIGNUPS,
    CLAIM_TYPES,
    EVENT_REFERRAL_CLAIM,
    EVENT_STATUS_SUCCESS,
)
from referral_engine.economy.referrals.errors import (
    ReferralCreditFailedError,
    ReferralUserNotFoundError,
    ReferralValidationError,
)
from referral_engine.economy.referrals.stores import ReferralStores
from referral_engine.economy.referrals.types import ClaimResult, ReferralRewardPolicy

from .policy import _ensure_program_enabled, _resolve_policy

logger = structlog.get_logger(__name__)


async def claim_rewards(
    stores: ReferralStores,
    *,
    user_id: int,
    claim_type: str,
    now_utc: datetime,
    policy: ReferralRewardPolicy | None = None,
) -> ClaimResult:
    """Claims every claimable record of the requested kind and credits the sum once."""
    # Caller owns the transaction; a failed credit must roll the claimed flags back.
    _ensure_program_enabled(_resolve_policy(policy))
    normalized_type = (claim_type or "").strip().lower()
    if normalized_type not in CLAIM_TYPES:
        raise ReferralValidationError

    user = await stores.users.get_by_id(user_id)
    if user is None:
        raise ReferralUserNotFoundError

    click_rewards: list[int] = []
    signup_rewards: list[int] = []
    if normalized_type in {CLAIM_TYPE_CLICKS, CLAIM_TYPE_ALL}:
        click_rewards = await stores.clicks.mark_claimed_for_referrer(user_id, now_utc=now_utc)
    if normalized_type in {CLAIM_TYPE_SIGNUPS, CLAIM_TYPE_ALL}:
        signup_rewards = await stores.signups.mark_claimed_for_referrer(user_id, now_utc=now_utc)

    clicks_claimed = sum(click_rewards)
    signups_claimed = sum(signup_rewards)
    total_claimed = clicks_claimed + signups_claimed

    if total_claimed == 0:
        logger.info(
            "referral_claim_empty",
            user_id=user_id,
            claim_type=normalized_type,
            records_claimed=len(click_rewards) + len(signup_rewards),
        )
        return ClaimResult(
            total_claimed=0,
            clicks_claimed=0,
            signups_claimed=0,
            click_records_claimed=len(click_rewards),
            signup_records_claimed=len(signup_rewards),
            new_balance=int(user.coins),
        )

    new_balance = await stores.users.credit(
        user_id,
        total_claimed,
        reason=CLAIM_CREDIT_REASON,
        reference_id=f"referral_claim:{user_id}:{int(now_utc.timestamp() * 1000)}",
        now_utc=now_utc,
    )
    if new_balance is None:
        logger.warning(
            "referral_claim_credit_failed",
            user_id=user_id,
            claim_type=normalized_type,
            total_claimed=total_claimed,
        )
        raise ReferralCreditFailedError

    await stores.events.record(
        event_type=EVENT_REFERRAL_CLAIM,
        status=EVENT_STATUS_SUCCESS,
        happened_at=now_utc,
        user_id=user_id,
        payload={
            "claim_type": normalized_type,
            "total_claimed": total_claimed,
            "clicks_claimed": clicks_claimed,
            "signups_claimed": signups_claimed,
            "click_records_claimed": len(click_rewards),
            "signup_records_claimed": len(signup_rewards),
            "new_balance": new_balance,
        },
    )
    logger.info(
        "referral_claim_completed",
        user_id=user_id,
        claim_type=normalized_type,
        total_claimed=total_claimed,
        new_balance=new_balance,
    )
    return ClaimResult(
        total_claimed=total_claimed,
        clicks_claimed=clicks_claimed,
        signups_claimed=signups_claimed,
        click_records_claimed=len(click_rewards),
        signup_records_claimed=len(signup_rewards),
        new_balance=new_balance,
    )
