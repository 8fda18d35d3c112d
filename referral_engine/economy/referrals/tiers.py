from __future__ import annotations

import math

from referral_engine.economy.referrals.constants import (
    TIER_BRONZE,
    TIER_DIAMOND,
    TIER_GOLD,
    TIER_SILVER,
)
from referral_engine.economy.referrals.types import TierDefinition, TierSnapshot

TIERS: tuple[TierDefinition, ...] = (
    TierDefinition(code=TIER_BRONZE, min_signups=0, max_signups=4, bonus_percentage=10),
    TierDefinition(code=TIER_SILVER, min_signups=5, max_signups=14, bonus_percentage=25),
    TierDefinition(code=TIER_GOLD, min_signups=15, max_signups=49, bonus_percentage=50),
    TierDefinition(code=TIER_DIAMOND, min_signups=50, max_signups=None, bonus_percentage=100),
)
TIERS_BY_CODE = {tier.code: tier for tier in TIERS}


def list_tiers() -> tuple[TierDefinition, ...]:
    return TIERS


def tier_for_signups(verified_signups: int) -> TierDefinition:
    count = max(0, verified_signups)
    current = TIERS[0]
    for tier in TIERS:
        if count >= tier.min_signups:
            current = tier
    return current


def tier_bonus_percentage(tier_code: str) -> int:
    tier = TIERS_BY_CODE.get(tier_code)
    if tier is None:
        raise ValueError(f"unknown referral tier: {tier_code}")
    return tier.bonus_percentage


def tier_progress(verified_signups: int) -> float:
    """Linear progress (0..100) through the current band; the top tier is always complete."""
    tier = tier_for_signups(verified_signups)
    if tier.max_signups is None:
        return 100.0
    band_width = tier.max_signups - tier.min_signups + 1
    progress = (max(0, verified_signups) - tier.min_signups) / band_width * 100
    return min(progress, 100.0)


def compute_tier_bonus(base_reward: int, bonus_percentage: int) -> int:
    return math.floor(base_reward * bonus_percentage / 100)


def build_tier_snapshot(verified_signups: int) -> TierSnapshot:
    tier = tier_for_signups(verified_signups)
    index = TIERS.index(tier)
    next_tier = TIERS[index + 1] if index + 1 < len(TIERS) else None
    return TierSnapshot(
        tier=tier.code,
        bonus_percentage=tier.bonus_percentage,
        progress=tier_progress(verified_signups),
        verified_signups=max(0, verified_signups),
        next_tier=next_tier.code if next_tier is not None else None,
        signups_to_next_tier=(
            max(0, next_tier.min_signups - verified_signups) if next_tier is not None else 0
        ),
    )
