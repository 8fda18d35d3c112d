from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from referral_engine.economy.referrals.constants import (
    BLOCK_REASON_HIGH_RISK,
    CLICK_BLOCK_REASON_FINGERPRINT_DAY,
    CLICK_BLOCK_REASON_IP_DAY,
    CLICK_BLOCK_REASON_IP_HOUR,
    CLICK_BLOCK_RISK_ABOVE,
    CLICK_MAX_PER_FINGERPRINT_DAY,
    CLICK_MAX_PER_IP_DAY,
    CLICK_MAX_PER_IP_HOUR,
    CLICK_SUSPICIOUS_FINGERPRINT_DAY_ABOVE,
    CLICK_SUSPICIOUS_IP_HOUR_ABOVE,
    RATE_WINDOW_DAY,
    RATE_WINDOW_SHORT,
    SIGNUP_BLOCK_REASON_FINGERPRINT_DAY,
    SIGNUP_BLOCK_REASON_IP_DAY,
    SIGNUP_BLOCK_REASON_IP_HOUR,
    SIGNUP_BLOCK_RISK_ABOVE,
    SIGNUP_MAX_PER_FINGERPRINT_DAY,
    SIGNUP_MAX_PER_IP_DAY,
    SIGNUP_MAX_PER_IP_HOUR,
)
from referral_engine.economy.referrals.risk import device_fingerprint, score_risk
from referral_engine.economy.referrals.types import AbuseVerdict, RateLimitCounts, SecurityContext


class RateCountingStore(Protocol):
    async def count_by_ip_since(self, ip_address: str, *, since_utc: datetime) -> int: ...

    async def count_by_fingerprint_since(self, fingerprint: str, *, since_utc: datetime) -> int: ...


@dataclass(frozen=True, slots=True)
class AbuseLimits:
    max_per_ip_hour: int
    max_per_ip_day: int
    max_per_fingerprint_day: int
    block_risk_above: int
    reason_ip_hour: str
    reason_ip_day: str
    reason_fingerprint_day: str
    suspicious_ip_hour_above: int | None = None
    suspicious_fingerprint_day_above: int | None = None


CLICK_LIMITS = AbuseLimits(
    max_per_ip_hour=CLICK_MAX_PER_IP_HOUR,
    max_per_ip_day=CLICK_MAX_PER_IP_DAY,
    max_per_fingerprint_day=CLICK_MAX_PER_FINGERPRINT_DAY,
    block_risk_above=CLICK_BLOCK_RISK_ABOVE,
    reason_ip_hour=CLICK_BLOCK_REASON_IP_HOUR,
    reason_ip_day=CLICK_BLOCK_REASON_IP_DAY,
    reason_fingerprint_day=CLICK_BLOCK_REASON_FINGERPRINT_DAY,
    suspicious_ip_hour_above=CLICK_SUSPICIOUS_IP_HOUR_ABOVE,
    suspicious_fingerprint_day_above=CLICK_SUSPICIOUS_FINGERPRINT_DAY_ABOVE,
)

SIGNUP_LIMITS = AbuseLimits(
    max_per_ip_hour=SIGNUP_MAX_PER_IP_HOUR,
    max_per_ip_day=SIGNUP_MAX_PER_IP_DAY,
    max_per_fingerprint_day=SIGNUP_MAX_PER_FINGERPRINT_DAY,
    block_risk_above=SIGNUP_BLOCK_RISK_ABOVE,
    reason_ip_hour=SIGNUP_BLOCK_REASON_IP_HOUR,
    reason_ip_day=SIGNUP_BLOCK_REASON_IP_DAY,
    reason_fingerprint_day=SIGNUP_BLOCK_REASON_FINGERPRINT_DAY,
)


async def count_recent(
    store: RateCountingStore,
    *,
    ip_address: str,
    fingerprint: str,
    now_utc: datetime,
) -> RateLimitCounts:
    hour_start = now_utc - RATE_WINDOW_SHORT
    day_start = now_utc - RATE_WINDOW_DAY
    return RateLimitCounts(
        ip_last_hour=await store.count_by_ip_since(ip_address, since_utc=hour_start),
        ip_last_day=await store.count_by_ip_since(ip_address, since_utc=day_start),
        fingerprint_last_day=await store.count_by_fingerprint_since(
            fingerprint,
            since_utc=day_start,
        ),
    )


def _block_reason(counts: RateLimitCounts, *, risk_score: int, limits: AbuseLimits) -> str | None:
    # Counts exclude the incoming event, so it is the (count + 1)-th in its window.
    if counts.ip_last_hour + 1 > limits.max_per_ip_hour:
        return limits.reason_ip_hour
    if counts.ip_last_day + 1 > limits.max_per_ip_day:
        return limits.reason_ip_day
    if counts.fingerprint_last_day + 1 > limits.max_per_fingerprint_day:
        return limits.reason_fingerprint_day
    if risk_score > limits.block_risk_above:
        return BLOCK_REASON_HIGH_RISK
    return None


async def evaluate_abuse(
    store: RateCountingStore,
    security: SecurityContext,
    *,
    limits: AbuseLimits,
    now_utc: datetime,
) -> AbuseVerdict:
    fingerprint = device_fingerprint(security.device, security.ip_address)
    counts = await count_recent(
        store,
        ip_address=security.ip_address,
        fingerprint=fingerprint,
        now_utc=now_utc,
    )
    risk = score_risk(security, prior_events=counts.ip_last_day)
    reason = _block_reason(counts, risk_score=risk.score, limits=limits)

    is_suspicious = risk.is_suspicious or reason is not None
    if (
        limits.suspicious_ip_hour_above is not None
        and counts.ip_last_hour > limits.suspicious_ip_hour_above
    ):
        is_suspicious = True
    if (
        limits.suspicious_fingerprint_day_above is not None
        and counts.fingerprint_last_day > limits.suspicious_fingerprint_day_above
    ):
        is_suspicious = True

    return AbuseVerdict(
        fingerprint=fingerprint,
        counts=counts,
        risk=risk,
        blocked=reason is not None,
        reason=reason,
        is_suspicious=is_suspicious,
    )
