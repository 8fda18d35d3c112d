from referral_engine.db.models.base import Base
from referral_engine.db.models.referral_clicks import ReferralClick
from referral_engine.db.models.referral_events import ReferralEvent
from referral_engine.db.models.referral_signups import ReferralSignup
from referral_engine.db.models.referral_stats import ReferralStats
from referral_engine.db.models.rewards_ledger import RewardsLedgerEntry
from referral_engine.db.models.users import User

__all__ = [
    "Base",
    "ReferralClick",
    "ReferralEvent",
    "ReferralSignup",
    "ReferralStats",
    "RewardsLedgerEntry",
    "User",
]
