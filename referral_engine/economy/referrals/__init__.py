from referral_engine.economy.referrals.service import ReferralService

__all__ = ["ReferralService"]
