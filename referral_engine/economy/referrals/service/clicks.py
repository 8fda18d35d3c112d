from __future__ import annotations

import secrets
from datetime import datetime

import structlog

from referral_engine.core.referral_codes import normalize_referral_code
from referral_engine.db.models.referral_clicks import ReferralClick
from referral_engine.economy.referrals.constants import (
    CLICK_STATUS_BLOCKED,
    CLICK_STATUS_PENDING,
    CLICK_TTL,
    EVENT_REFERRAL_CLICK,
    EVENT_STATUS_BLOCKED,
    EVENT_STATUS_SUCCESS,
    INACTIVE_USER_STATUSES,
)
from referral_engine.economy.referrals.errors import (
    ReferralInvalidCodeError,
    ReferralReferrerInactiveError,
    ReferralValidationError,
)
from referral_engine.economy.referrals.rate_limit import CLICK_LIMITS, evaluate_abuse
from referral_engine.economy.referrals.stores import ReferralStores
from referral_engine.economy.referrals.types import (
    ClickResult,
    ReferralRewardPolicy,
    SecurityContext,
)

from .policy import _ensure_program_enabled, _resolve_policy
from .security import _security_columns

logger = structlog.get_logger(__name__)


def _generate_click_id(now_utc: datetime) -> str:
    return f"click_{int(now_utc.timestamp() * 1000)}_{secrets.token_hex(6)}"


async def record_click(
    stores: ReferralStores,
    *,
    referral_code: str,
    security: SecurityContext,
    now_utc: datetime,
    policy: ReferralRewardPolicy | None = None,
) -> ClickResult:
    resolved_policy = _resolve_policy(policy)
    _ensure_program_enabled(resolved_policy)
    if not security.ip_address:
        raise ReferralValidationError

    normalized_code = normalize_referral_code(referral_code)
    if normalized_code is None:
        raise ReferralInvalidCodeError

    referrer = await stores.users.get_by_referral_code(normalized_code)
    if referrer is None:
        raise ReferralInvalidCodeError
    if referrer.status in INACTIVE_USER_STATUSES:
        raise ReferralReferrerInactiveError

    verdict = await evaluate_abuse(
        stores.clicks,
        security,
        limits=CLICK_LIMITS,
        now_utc=now_utc,
    )
    reward = 0 if verdict.blocked else resolved_policy.click_reward
    status = CLICK_STATUS_BLOCKED if verdict.blocked else CLICK_STATUS_PENDING
    expires_at = now_utc + CLICK_TTL

    click = await stores.clicks.create(
        ReferralClick(
            click_id=_generate_click_id(now_utc),
            referrer_id=referrer.id,
            referral_code=normalized_code,
            **_security_columns(security, verdict),
            click_reward=reward,
            total_reward=reward,
            converted=False,
            status=status,
            claimed=False,
            clicked_at=now_utc,
            expires_at=expires_at,
            created_at=now_utc,
            updated_at=now_utc,
        )
    )

    await stores.events.record(
        event_type=EVENT_REFERRAL_CLICK,
        status=EVENT_STATUS_BLOCKED if verdict.blocked else EVENT_STATUS_SUCCESS,
        happened_at=now_utc,
        user_id=referrer.id,
        referral_code=normalized_code,
        click_id=click.click_id,
        ip_address=security.ip_address,
        payload={
            "reward": reward,
            "risk_score": verdict.risk.score,
            "is_suspicious": verdict.is_suspicious,
            "blocked_reason": verdict.reason,
        },
    )

    if verdict.blocked:
        logger.warning(
            "referral_click_blocked",
            referrer_id=referrer.id,
            click_id=click.click_id,
            reason=verdict.reason,
            risk_score=verdict.risk.score,
            ip_last_hour=verdict.counts.ip_last_hour,
            ip_last_day=verdict.counts.ip_last_day,
            fingerprint_last_day=verdict.counts.fingerprint_last_day,
        )
    else:
        logger.info(
            "referral_click_recorded",
            referrer_id=referrer.id,
            click_id=click.click_id,
            reward=reward,
            risk_score=verdict.risk.score,
            is_suspicious=verdict.is_suspicious,
        )

    return ClickResult(
        click_id=click.click_id,
        referrer_id=referrer.id,
        status=status,
        reward_earned=reward,
        blocked=verdict.blocked,
        reason=verdict.reason,
        risk_score=verdict.risk.score,
        is_suspicious=verdict.is_suspicious,
        expires_at=expires_at,
    )
