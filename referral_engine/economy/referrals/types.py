from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class DeviceInfo:
    user_agent: str | None = None
    screen_resolution: str | None = None
    timezone: str | None = None
    language: str | None = None
    platform: str | None = None
    browser: str | None = None
    os: str | None = None
    device_type: str | None = None


@dataclass(frozen=True, slots=True)
class SecurityContext:
    ip_address: str
    device: DeviceInfo = field(default_factory=DeviceInfo)
    session_id: str | None = None


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    score: int
    is_suspicious: bool


@dataclass(frozen=True, slots=True)
class RateLimitCounts:
    """Events already stored for the same IP / fingerprint, excluding the incoming one."""

    ip_last_hour: int
    ip_last_day: int
    fingerprint_last_day: int


@dataclass(frozen=True, slots=True)
class AbuseVerdict:
    fingerprint: str
    counts: RateLimitCounts
    risk: RiskAssessment
    blocked: bool
    reason: str | None
    is_suspicious: bool


@dataclass(frozen=True, slots=True)
class ReferralRewardPolicy:
    program_enabled: bool
    click_reward: int
    signup_reward: int


@dataclass(frozen=True, slots=True)
class TierDefinition:
    code: str
    min_signups: int
    max_signups: int | None
    bonus_percentage: int


@dataclass(frozen=True, slots=True)
class TierSnapshot:
    tier: str
    bonus_percentage: int
    progress: float
    verified_signups: int
    next_tier: str | None
    signups_to_next_tier: int


@dataclass(frozen=True, slots=True)
class ClickResult:
    click_id: str
    referrer_id: int
    status: str
    reward_earned: int
    blocked: bool
    reason: str | None
    risk_score: int
    is_suspicious: bool
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class SignupResult:
    signup_id: int
    referrer_id: int
    referred_user_id: int
    status: str
    signup_reward: int
    tier_bonus: int
    reward_earned: int
    tier: str
    verified: bool
    blocked: bool
    reason: str | None
    risk_score: int
    click_converted: bool


@dataclass(frozen=True, slots=True)
class ClaimResult:
    total_claimed: int
    clicks_claimed: int
    signups_claimed: int
    click_records_claimed: int
    signup_records_claimed: int
    new_balance: int


@dataclass(frozen=True, slots=True)
class SignupReviewResult:
    signup_id: int
    referrer_id: int
    status: str
    verified: bool
    reward_earned: int


@dataclass(frozen=True, slots=True)
class ReferredUser:
    user_id: int
    username: str
    email: str | None
    joined_at: datetime
    status: str
    reward: int


@dataclass(frozen=True, slots=True)
class ReferredUsersPage:
    users: list[ReferredUser]
    total: int
    limit: int
    offset: int
    has_more: bool


@dataclass(frozen=True, slots=True)
class ClickAggregates:
    total: int
    unique_ips: int
    today: int
    this_week: int
    this_month: int
    suspicious: int
    blocked: int


@dataclass(frozen=True, slots=True)
class SignupAggregates:
    verified_total: int
    today: int
    this_week: int
    this_month: int


@dataclass(frozen=True, slots=True)
class EarningsAggregates:
    total: int
    claimed: int
    today: int
    this_week: int
    this_month: int


@dataclass(frozen=True, slots=True)
class ReferralStatsSnapshot:
    user_id: int
    total_clicks: int
    unique_clicks: int
    clicks_today: int
    clicks_this_week: int
    clicks_this_month: int
    total_signups: int
    signups_today: int
    signups_this_week: int
    signups_this_month: int
    click_to_signup_rate: float
    total_earnings: int
    pending_earnings: int
    claimed_earnings: int
    earnings_today: int
    earnings_this_week: int
    earnings_this_month: int
    current_tier: str
    tier_progress: float
    tier_bonus_percentage: int
    suspicious_clicks: int
    blocked_clicks: int
    fraud_score: float
    last_updated: datetime
    created_at: datetime
