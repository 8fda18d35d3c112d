from __future__ import annotations

from datetime import datetime

import structlog

from referral_engine.economy.referrals.errors import ReferralUserNotFoundError
from referral_engine.economy.referrals.stores import ReferralStores
from referral_engine.economy.referrals.tiers import build_tier_snapshot
from referral_engine.economy.referrals.types import ReferralStatsSnapshot

from .policy import get_stats_timezone
from .time_utils import _stats_window_starts_utc

logger = structlog.get_logger(__name__)


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(min(part / whole * 100, 100.0), 2)


async def rebuild_user_stats(
    stores: ReferralStores,
    *,
    user_id: int,
    now_utc: datetime,
    timezone_name: str | None = None,
) -> ReferralStatsSnapshot:
    """Recomputes the whole stats row from live click and signup records, then upserts it."""
    user = await stores.users.get_by_id(user_id)
    if user is None:
        raise ReferralUserNotFoundError

    day_start_utc, week_start_utc, month_start_utc = _stats_window_starts_utc(
        now_utc,
        timezone_name or get_stats_timezone(),
    )
    windows = {
        "day_start_utc": day_start_utc,
        "week_start_utc": week_start_utc,
        "month_start_utc": month_start_utc,
    }
    clicks = await stores.clicks.aggregate_for_referrer(user_id, **windows)
    signups = await stores.signups.aggregate_for_referrer(user_id, **windows)
    click_earnings = await stores.clicks.earnings_for_referrer(user_id, **windows)
    signup_earnings = await stores.signups.earnings_for_referrer(user_id, **windows)

    total_earnings = click_earnings.total + signup_earnings.total
    claimed_earnings = click_earnings.claimed + signup_earnings.claimed
    tier = build_tier_snapshot(signups.verified_total)

    existing = await stores.stats.get(user_id)
    snapshot = ReferralStatsSnapshot(
        user_id=user_id,
        total_clicks=clicks.total,
        unique_clicks=clicks.unique_ips,
        clicks_today=clicks.today,
        clicks_this_week=clicks.this_week,
        clicks_this_month=clicks.this_month,
        total_signups=signups.verified_total,
        signups_today=signups.today,
        signups_this_week=signups.this_week,
        signups_this_month=signups.this_month,
        click_to_signup_rate=_percentage(signups.verified_total, clicks.total),
        total_earnings=total_earnings,
        pending_earnings=max(0, total_earnings - claimed_earnings),
        claimed_earnings=claimed_earnings,
        earnings_today=click_earnings.today + signup_earnings.today,
        earnings_this_week=click_earnings.this_week + signup_earnings.this_week,
        earnings_this_month=click_earnings.this_month + signup_earnings.this_month,
        current_tier=tier.tier,
        tier_progress=round(tier.progress, 2),
        tier_bonus_percentage=tier.bonus_percentage,
        suspicious_clicks=clicks.suspicious,
        blocked_clicks=clicks.blocked,
        fraud_score=_percentage(clicks.suspicious, clicks.total),
        last_updated=now_utc,
        created_at=existing.created_at if existing is not None else now_utc,
    )
    await stores.stats.upsert(snapshot)
    logger.info(
        "referral_stats_rebuilt",
        user_id=user_id,
        total_clicks=snapshot.total_clicks,
        total_signups=snapshot.total_signups,
        pending_earnings=snapshot.pending_earnings,
        current_tier=snapshot.current_tier,
    )
    return snapshot
