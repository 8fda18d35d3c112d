from __future__ import annotations

import pytest

from referral_engine.economy.referrals.tiers import (
    build_tier_snapshot,
    compute_tier_bonus,
    list_tiers,
    tier_bonus_percentage,
    tier_for_signups,
    tier_progress,
)


@pytest.mark.parametrize(
    ("verified_signups", "tier_code", "bonus"),
    [
        (0, "BRONZE", 10),
        (4, "BRONZE", 10),
        (5, "SILVER", 25),
        (14, "SILVER", 25),
        (15, "GOLD", 50),
        (49, "GOLD", 50),
        (50, "DIAMOND", 100),
        (1000, "DIAMOND", 100),
    ],
)
def test_tier_boundaries(verified_signups: int, tier_code: str, bonus: int) -> None:
    tier = tier_for_signups(verified_signups)
    assert tier.code == tier_code
    assert tier.bonus_percentage == bonus


def test_tier_bonus_percentage_is_monotonic_in_signups() -> None:
    bonuses = [tier_for_signups(count).bonus_percentage for count in range(0, 80)]
    assert bonuses == sorted(bonuses)


def test_tier_progress_is_linear_within_band() -> None:
    assert tier_progress(0) == 0.0
    assert tier_progress(2) == pytest.approx(40.0)
    assert tier_progress(7) == pytest.approx(20.0)
    assert tier_progress(15) == 0.0
    assert tier_progress(50) == 100.0
    assert tier_progress(120) == 100.0


def test_compute_tier_bonus_floors_fractional_reward() -> None:
    assert compute_tier_bonus(30, 25) == 7
    assert compute_tier_bonus(30, 10) == 3
    assert compute_tier_bonus(30, 100) == 30


def test_tier_bonus_percentage_rejects_unknown_tier() -> None:
    assert tier_bonus_percentage("GOLD") == 50
    with pytest.raises(ValueError):
        tier_bonus_percentage("PLATINUM")


def test_build_tier_snapshot_reports_next_tier() -> None:
    snapshot = build_tier_snapshot(7)
    assert snapshot.tier == "SILVER"
    assert snapshot.next_tier == "GOLD"
    assert snapshot.signups_to_next_tier == 8

    top = build_tier_snapshot(60)
    assert top.next_tier is None
    assert top.signups_to_next_tier == 0


def test_list_tiers_is_ordered_by_threshold() -> None:
    thresholds = [tier.min_signups for tier in list_tiers()]
    assert thresholds == [0, 5, 15, 50]
