from __future__ import annotations

from referral_engine.economy.referrals.types import AbuseVerdict, SecurityContext

# Column widths shared by referral_clicks and referral_signups.
_COLUMN_LIMITS = {
    "ip_address": 64,
    "screen_resolution": 32,
    "timezone": 64,
    "language": 32,
    "platform": 64,
    "browser": 64,
    "os": 64,
    "device_type": 16,
    "session_id": 128,
}


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return value[:limit]


def _security_columns(security: SecurityContext, verdict: AbuseVerdict) -> dict[str, object]:
    """Flattens the request security context into the snapshot columns stored on each record."""
    device = security.device
    raw = {
        "ip_address": security.ip_address,
        "screen_resolution": device.screen_resolution,
        "timezone": device.timezone,
        "language": device.language,
        "platform": device.platform,
        "browser": device.browser,
        "os": device.os,
        "device_type": device.device_type,
        "session_id": security.session_id,
    }
    columns: dict[str, object] = {key: _clip(value, _COLUMN_LIMITS[key]) for key, value in raw.items()}
    columns.update(
        user_agent=device.user_agent,
        fingerprint=verdict.fingerprint,
        risk_score=verdict.risk.score,
        is_suspicious=verdict.is_suspicious,
        blocked_reason=verdict.reason,
    )
    return columns
