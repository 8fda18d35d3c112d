from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from referral_engine.economy.referrals.errors import (
    ReferralCreditFailedError,
    ReferralUserNotFoundError,
    ReferralValidationError,
)
from referral_engine.economy.referrals.service import ReferralService
from tests.economy.referral_fakes import NOW_UTC, POLICY, InMemoryReferralBackend


def _backend_with_rewards() -> InMemoryReferralBackend:
    backend = InMemoryReferralBackend()
    backend.users.add(1, referral_code="ABC123", coins=100)
    for idx in range(3):
        backend.clicks.seed(
            referrer_id=1,
            ip_address=f"192.0.2.{idx}",
            clicked_at=NOW_UTC - timedelta(hours=idx + 1),
        )
    backend.clicks.seed(
        referrer_id=1,
        ip_address="192.0.2.200",
        clicked_at=NOW_UTC - timedelta(hours=1),
        status="BLOCKED",
    )
    backend.signups.seed(
        referrer_id=1,
        referred_user_id=500,
        signed_up_at=NOW_UTC - timedelta(hours=2),
        total_reward=33,
    )
    backend.signups.seed(
        referrer_id=1,
        referred_user_id=501,
        signed_up_at=NOW_UTC - timedelta(hours=2),
        verified=False,
        total_reward=33,
    )
    return backend


async def _claim(backend: InMemoryReferralBackend, claim_type: str = "all", *, user_id: int = 1):
    async with backend.begin() as stores:
        return await ReferralService.claim_rewards(
            stores,
            user_id=user_id,
            claim_type=claim_type,
            now_utc=NOW_UTC,
            policy=POLICY,
        )


def test_claim_all_credits_clicks_and_verified_signups_once() -> None:
    backend = _backend_with_rewards()

    result = asyncio.run(_claim(backend))

    assert result.clicks_claimed == 45
    assert result.signups_claimed == 33
    assert result.total_claimed == 78
    assert result.click_records_claimed == 3
    assert result.signup_records_claimed == 1
    assert result.new_balance == 178
    assert backend.users.users[1].coins == 178
    assert backend.users.ledger == [
        {
            "user_id": 1,
            "delta": 78,
            "balance_before": 100,
            "balance_after": 178,
            "reason": "Referral rewards claim",
            "reference_id": backend.users.ledger[0]["reference_id"],
            "created_at": NOW_UTC,
        }
    ]
    assert len(backend.events.of_type("referral_claim")) == 1

    again = asyncio.run(_claim(backend))

    assert again.total_claimed == 0
    assert again.new_balance == 178
    assert backend.users.users[1].coins == 178
    assert len(backend.users.ledger) == 1


def test_claim_single_click_and_single_signup_totals_48() -> None:
    backend = InMemoryReferralBackend()
    backend.users.add(1, referral_code="ABC123")
    backend.clicks.seed(referrer_id=1, ip_address="192.0.2.10", clicked_at=NOW_UTC - timedelta(hours=1))
    backend.signups.seed(
        referrer_id=1,
        referred_user_id=500,
        signed_up_at=NOW_UTC - timedelta(minutes=30),
        total_reward=33,
    )

    result = asyncio.run(_claim(backend))

    assert result.clicks_claimed == 15
    assert result.signups_claimed == 33
    assert result.total_claimed == 48
    assert result.new_balance == 48

    again = asyncio.run(_claim(backend))
    assert again.total_claimed == 0


def test_claim_never_touches_blocked_or_unverified_records() -> None:
    backend = _backend_with_rewards()
    asyncio.run(_claim(backend))

    blocked_click = backend.clicks.rows[3]
    unverified_signup = backend.signups.rows[1]
    assert blocked_click.claimed is False
    assert blocked_click.status == "BLOCKED"
    assert unverified_signup.claimed is False


def test_claim_clicks_leaves_signups_claimable() -> None:
    backend = _backend_with_rewards()

    clicks = asyncio.run(_claim(backend, "clicks"))
    signups = asyncio.run(_claim(backend, "signups"))

    assert clicks.total_claimed == 45
    assert clicks.signup_records_claimed == 0
    assert signups.total_claimed == 33
    assert signups.new_balance == 178
    assert all(row.status == "CLAIMED" for row in backend.clicks.rows[:3])


def test_claim_with_nothing_to_claim_returns_current_balance() -> None:
    backend = InMemoryReferralBackend()
    backend.users.add(1, referral_code="ABC123", coins=12)

    result = asyncio.run(_claim(backend))

    assert result.total_claimed == 0
    assert result.new_balance == 12
    assert backend.users.ledger == []
    assert backend.events.of_type("referral_claim") == []


def test_claim_credit_failure_rolls_back_claimed_flags() -> None:
    backend = _backend_with_rewards()
    backend.users.fail_credit = True

    with pytest.raises(ReferralCreditFailedError) as exc_info:
        asyncio.run(_claim(backend))

    assert exc_info.value.retryable is True
    assert all(row.claimed is False for row in backend.clicks.rows)
    assert all(row.claimed is False for row in backend.signups.rows)
    assert backend.clicks.rows[0].status == "PENDING"
    assert backend.users.users[1].coins == 100

    backend.users.fail_credit = False
    retried = asyncio.run(_claim(backend))
    assert retried.total_claimed == 78


def test_claim_rejects_unknown_claim_type() -> None:
    backend = _backend_with_rewards()
    with pytest.raises(ReferralValidationError):
        asyncio.run(_claim(backend, "everything"))


def test_claim_requires_existing_user() -> None:
    backend = InMemoryReferralBackend()
    with pytest.raises(ReferralUserNotFoundError) as exc_info:
        asyncio.run(_claim(backend, user_id=42))
    assert exc_info.value.code == "USER_NOT_FOUND"
