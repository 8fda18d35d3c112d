from __future__ import annotations

from referral_engine.economy.referrals.tiers import list_tiers

from .claims import claim_rewards
from .clicks import record_click
from .policy import get_reward_policy, get_stats_timezone
from .queries import get_referral_link, get_referred_users, get_tier_overview, get_user_stats
from .signups import record_signup, review_signup
from .stats import rebuild_user_stats
from .time_utils import _local_day_start_utc, _local_month_start_utc, _stats_window_starts_utc


class ReferralService:
    record_click = staticmethod(record_click)
    record_signup = staticmethod(record_signup)
    review_signup = staticmethod(review_signup)
    claim_rewards = staticmethod(claim_rewards)
    rebuild_user_stats = staticmethod(rebuild_user_stats)
    get_user_stats = staticmethod(get_user_stats)
    get_referred_users = staticmethod(get_referred_users)
    get_tier_overview = staticmethod(get_tier_overview)
    get_referral_link = staticmethod(get_referral_link)
    get_reward_policy = staticmethod(get_reward_policy)
    get_stats_timezone = staticmethod(get_stats_timezone)
    list_tiers = staticmethod(list_tiers)
    _local_day_start_utc = staticmethod(_local_day_start_utc)
    _local_month_start_utc = staticmethod(_local_month_start_utc)
    _stats_window_starts_utc = staticmethod(_stats_window_starts_utc)


__all__ = ["ReferralService"]
