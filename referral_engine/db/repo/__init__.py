from referral_engine.db.repo.referral_clicks_repo import ReferralClicksRepo
from referral_engine.db.repo.referral_events_repo import ReferralEventsRepo
from referral_engine.db.repo.referral_signups_repo import ReferralSignupsRepo
from referral_engine.db.repo.referral_stats_repo import ReferralStatsRepo
from referral_engine.db.repo.users_repo import UsersRepo

__all__ = [
    "ReferralClicksRepo",
    "ReferralEventsRepo",
    "ReferralSignupsRepo",
    "ReferralStatsRepo",
    "UsersRepo",
]
