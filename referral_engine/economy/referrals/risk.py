from __future__ import annotations

import hashlib

from referral_engine.economy.referrals.constants import (
    FINGERPRINT_LENGTH,
    RISK_MIN_USER_AGENT_LENGTH,
    RISK_PRIOR_EVENTS_ELEVATED,
    RISK_PRIOR_EVENTS_HIGH,
    RISK_SCORE_MAX,
    RISK_SUSPICIOUS_ABOVE,
    RISK_WEIGHT_MISSING_DEVICE_FIELD,
    RISK_WEIGHT_PRIOR_EVENTS_ELEVATED,
    RISK_WEIGHT_PRIOR_EVENTS_HIGH,
    RISK_WEIGHT_WEAK_USER_AGENT,
)
from referral_engine.economy.referrals.types import DeviceInfo, RiskAssessment, SecurityContext


def score_risk(security: SecurityContext, *, prior_events: int) -> RiskAssessment:
    """Additive 0..100 heuristic; `prior_events` is the trailing-24h count for the same IP."""
    device = security.device
    score = 0

    if prior_events > RISK_PRIOR_EVENTS_HIGH:
        score += RISK_WEIGHT_PRIOR_EVENTS_HIGH
    elif prior_events > RISK_PRIOR_EVENTS_ELEVATED:
        score += RISK_WEIGHT_PRIOR_EVENTS_ELEVATED

    if not device.user_agent or len(device.user_agent) < RISK_MIN_USER_AGENT_LENGTH:
        score += RISK_WEIGHT_WEAK_USER_AGENT

    for value in (device.screen_resolution, device.timezone, device.language):
        if not value:
            score += RISK_WEIGHT_MISSING_DEVICE_FIELD

    score = min(score, RISK_SCORE_MAX)
    return RiskAssessment(score=score, is_suspicious=score > RISK_SUSPICIOUS_ABOVE)


def device_fingerprint(device: DeviceInfo, ip_address: str) -> str:
    raw = "_".join(
        value or ""
        for value in (
            device.user_agent,
            device.screen_resolution,
            device.timezone,
            device.language,
            ip_address,
        )
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]
