from referral_engine.economy.referrals import ReferralService

__all__ = ["ReferralService"]
