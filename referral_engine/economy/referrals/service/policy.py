from __future__ import annotations

from referral_engine.core.config import get_settings
from referral_engine.economy.referrals.errors import ReferralProgramDisabledError
from referral_engine.economy.referrals.types import ReferralRewardPolicy


def get_reward_policy() -> ReferralRewardPolicy:
    settings = get_settings()
    return ReferralRewardPolicy(
        program_enabled=settings.referral_program_enabled,
        click_reward=settings.referral_click_reward,
        signup_reward=settings.referral_signup_reward,
    )


def get_stats_timezone() -> str:
    return get_settings().referral_stats_timezone


def _resolve_policy(policy: ReferralRewardPolicy | None) -> ReferralRewardPolicy:
    return policy if policy is not None else get_reward_policy()


def _ensure_program_enabled(policy: ReferralRewardPolicy) -> None:
    if not policy.program_enabled:
        raise ReferralProgramDisabledError
