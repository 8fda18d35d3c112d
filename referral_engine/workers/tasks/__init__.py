from referral_engine.workers.tasks.referral_stats import (
    rebuild_recent_referral_stats,
    refresh_referral_stats,
)

__all__ = [
    "rebuild_recent_referral_stats",
    "refresh_referral_stats",
]
