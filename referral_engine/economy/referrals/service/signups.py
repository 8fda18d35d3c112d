from __future__ import annotations

from datetime import datetime

import structlog

from referral_engine.core.referral_codes import normalize_referral_code
from referral_engine.db.models.referral_signups import ReferralSignup
from referral_engine.economy.referrals.constants import (
    EVENT_REFERRAL_SIGNUP,
    EVENT_REFERRAL_SIGNUP_REVIEW,
    EVENT_REFERRAL_TIER_UPGRADE,
    EVENT_STATUS_BLOCKED,
    EVENT_STATUS_PENDING,
    EVENT_STATUS_SUCCESS,
    INACTIVE_USER_STATUSES,
    SIGNUP_AUTO_VERIFY_RISK_BELOW,
    SIGNUP_MANUAL_APPROVAL_NOTE,
    SIGNUP_MANUAL_REJECTION_REASON,
    SIGNUP_MANUAL_REVIEW_NOTE,
    SIGNUP_STATUS_BLOCKED,
    SIGNUP_STATUS_COMPLETED,
)
from referral_engine.economy.referrals.errors import (
    ReferralDuplicateSignupError,
    ReferralInvalidCodeError,
    ReferralReferrerInactiveError,
    ReferralSelfReferralError,
    ReferralSignupNotFoundError,
    ReferralUserNotFoundError,
    ReferralValidationError,
)
from referral_engine.economy.referrals.rate_limit import SIGNUP_LIMITS, evaluate_abuse
from referral_engine.economy.referrals.stores import ReferralStores
from referral_engine.economy.referrals.tiers import compute_tier_bonus, tier_for_signups
from referral_engine.economy.referrals.types import (
    ReferralRewardPolicy,
    SecurityContext,
    SignupResult,
    SignupReviewResult,
)

from .policy import _ensure_program_enabled, _resolve_policy
from .security import _security_columns

logger = structlog.get_logger(__name__)


async def _record_tier_upgrade_if_crossed(
    stores: ReferralStores,
    *,
    referrer_id: int,
    verified_before: int,
    now_utc: datetime,
) -> str | None:
    previous_tier = tier_for_signups(verified_before)
    current_tier = tier_for_signups(verified_before + 1)
    if current_tier.code == previous_tier.code:
        return None

    await stores.events.record(
        event_type=EVENT_REFERRAL_TIER_UPGRADE,
        status=EVENT_STATUS_SUCCESS,
        happened_at=now_utc,
        user_id=referrer_id,
        payload={
            "previous_tier": previous_tier.code,
            "tier": current_tier.code,
            "verified_signups": verified_before + 1,
            "bonus_percentage": current_tier.bonus_percentage,
        },
    )
    logger.info(
        "referral_tier_upgraded",
        referrer_id=referrer_id,
        previous_tier=previous_tier.code,
        tier=current_tier.code,
    )
    return current_tier.code


async def record_signup(
    stores: ReferralStores,
    *,
    referrer_id: int,
    referred_user_id: int,
    referral_code: str,
    security: SecurityContext,
    now_utc: datetime,
    click_id: str | None = None,
    policy: ReferralRewardPolicy | None = None,
) -> SignupResult:
    resolved_policy = _resolve_policy(policy)
    _ensure_program_enabled(resolved_policy)
    if referrer_id == referred_user_id:
        raise ReferralSelfReferralError
    if not security.ip_address:
        raise ReferralValidationError

    normalized_code = normalize_referral_code(referral_code)
    if normalized_code is None:
        raise ReferralInvalidCodeError

    referrer = await stores.users.get_by_id(referrer_id)
    if referrer is None:
        raise ReferralUserNotFoundError
    referred_user = await stores.users.get_by_id(referred_user_id)
    if referred_user is None:
        raise ReferralUserNotFoundError
    if referrer.referral_code != normalized_code:
        raise ReferralInvalidCodeError
    if referrer.status in INACTIVE_USER_STATUSES:
        raise ReferralReferrerInactiveError

    verdict = await evaluate_abuse(
        stores.signups,
        security,
        limits=SIGNUP_LIMITS,
        now_utc=now_utc,
    )
    verified_before = await stores.signups.count_verified_for_referrer(referrer_id)
    tier = tier_for_signups(verified_before)

    if verdict.blocked:
        signup_reward = 0
        tier_bonus = 0
        status = SIGNUP_STATUS_BLOCKED
        verified = False
        notes = verdict.reason
    else:
        signup_reward = resolved_policy.signup_reward
        tier_bonus = compute_tier_bonus(signup_reward, tier.bonus_percentage)
        status = SIGNUP_STATUS_COMPLETED
        verified = verdict.risk.score < SIGNUP_AUTO_VERIFY_RISK_BELOW
        notes = None if verified else SIGNUP_MANUAL_REVIEW_NOTE

    signup = await stores.signups.try_create(
        ReferralSignup(
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            referral_code=normalized_code,
            click_id=click_id,
            **_security_columns(security, verdict),
            signup_reward=signup_reward,
            tier_bonus=tier_bonus,
            total_reward=signup_reward + tier_bonus,
            verified=verified,
            verification_notes=notes,
            status=status,
            claimed=False,
            signed_up_at=now_utc,
            created_at=now_utc,
            updated_at=now_utc,
        )
    )
    if signup is None:
        raise ReferralDuplicateSignupError

    click_converted = False
    if click_id:
        click_converted = await stores.clicks.mark_converted(
            click_id,
            referrer_id=referrer_id,
            converted_user_id=referred_user_id,
            now_utc=now_utc,
        )

    if verdict.blocked:
        event_status = EVENT_STATUS_BLOCKED
    elif verified:
        event_status = EVENT_STATUS_SUCCESS
    else:
        event_status = EVENT_STATUS_PENDING
    await stores.events.record(
        event_type=EVENT_REFERRAL_SIGNUP,
        status=event_status,
        happened_at=now_utc,
        user_id=referrer_id,
        referred_user_id=referred_user_id,
        referral_code=normalized_code,
        click_id=click_id,
        ip_address=security.ip_address,
        payload={
            "signup_reward": signup_reward,
            "tier_bonus": tier_bonus,
            "tier": tier.code,
            "risk_score": verdict.risk.score,
            "verified": verified,
            "blocked_reason": verdict.reason,
            "click_converted": click_converted,
        },
    )

    if verified:
        await _record_tier_upgrade_if_crossed(
            stores,
            referrer_id=referrer_id,
            verified_before=verified_before,
            now_utc=now_utc,
        )

    if verdict.blocked:
        logger.warning(
            "referral_signup_blocked",
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            reason=verdict.reason,
            risk_score=verdict.risk.score,
        )
    else:
        logger.info(
            "referral_signup_recorded",
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            verified=verified,
            tier=tier.code,
            total_reward=signup_reward + tier_bonus,
            click_converted=click_converted,
        )

    return SignupResult(
        signup_id=signup.id,
        referrer_id=referrer_id,
        referred_user_id=referred_user_id,
        status=status,
        signup_reward=signup_reward,
        tier_bonus=tier_bonus,
        reward_earned=signup_reward + tier_bonus,
        tier=tier.code,
        verified=verified,
        blocked=verdict.blocked,
        reason=verdict.reason,
        risk_score=verdict.risk.score,
        click_converted=click_converted,
    )


async def review_signup(
    stores: ReferralStores,
    *,
    signup_id: int,
    approve: bool,
    now_utc: datetime,
    notes: str | None = None,
) -> SignupReviewResult:
    signup = await stores.signups.get_by_id_for_update(signup_id)
    if signup is None:
        raise ReferralSignupNotFoundError
    if signup.claimed or signup.status == SIGNUP_STATUS_BLOCKED:
        raise ReferralValidationError

    verified_before = await stores.signups.count_verified_for_referrer(signup.referrer_id)
    was_verified = signup.verified

    if approve:
        signup.verified = True
        signup.verification_notes = notes or SIGNUP_MANUAL_APPROVAL_NOTE
    else:
        reason = notes or SIGNUP_MANUAL_REJECTION_REASON
        signup.status = SIGNUP_STATUS_BLOCKED
        signup.verified = False
        signup.signup_reward = 0
        signup.tier_bonus = 0
        signup.total_reward = 0
        signup.blocked_reason = reason
        signup.verification_notes = reason
    signup.updated_at = now_utc

    await stores.events.record(
        event_type=EVENT_REFERRAL_SIGNUP_REVIEW,
        status=EVENT_STATUS_SUCCESS if approve else EVENT_STATUS_BLOCKED,
        happened_at=now_utc,
        user_id=signup.referrer_id,
        referred_user_id=signup.referred_user_id,
        referral_code=signup.referral_code,
        click_id=signup.click_id,
        payload={"approved": approve, "notes": notes},
    )
    if approve and not was_verified:
        await _record_tier_upgrade_if_crossed(
            stores,
            referrer_id=signup.referrer_id,
            verified_before=verified_before,
            now_utc=now_utc,
        )

    logger.info(
        "referral_signup_reviewed",
        signup_id=signup.id,
        referrer_id=signup.referrer_id,
        approved=approve,
    )
    return SignupReviewResult(
        signup_id=signup.id,
        referrer_id=signup.referrer_id,
        status=signup.status,
        verified=signup.verified,
        reward_earned=signup.total_reward,
    )
