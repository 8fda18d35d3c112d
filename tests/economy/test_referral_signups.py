from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from referral_engine.economy.referrals.errors import (
    ReferralDuplicateSignupError,
    ReferralInvalidCodeError,
    ReferralSelfReferralError,
    ReferralSignupNotFoundError,
    ReferralUserNotFoundError,
    ReferralValidationError,
)
from referral_engine.economy.referrals.service import ReferralService
from referral_engine.economy.referrals.types import DeviceInfo
from tests.economy.referral_fakes import NOW_UTC, POLICY, InMemoryReferralBackend, security

MODERATE_RISK_DEVICE = DeviceInfo()


def _backend(*referred_ids: int) -> InMemoryReferralBackend:
    backend = InMemoryReferralBackend()
    backend.users.add(1, referral_code="ABC123")
    backend.users.add(2, referral_code="OTHER1")
    for referred_id in referred_ids:
        backend.users.add(referred_id, referral_code=f"REF{referred_id}")
    return backend


def _seed_verified(backend: InMemoryReferralBackend, count: int) -> None:
    for idx in range(count):
        backend.signups.seed(
            referrer_id=1,
            referred_user_id=1000 + idx,
            signed_up_at=NOW_UTC - timedelta(days=3, minutes=idx),
        )


async def _signup(
    backend: InMemoryReferralBackend,
    referred_user_id: int,
    *,
    ip: str = "203.0.113.50",
    device: DeviceInfo | None = None,
    click_id: str | None = None,
    referrer_id: int = 1,
    code: str = "ABC123",
    at=NOW_UTC,
):
    context = security(ip) if device is None else security(ip, device=device)
    return await ReferralService.record_signup(
        backend.stores,
        referrer_id=referrer_id,
        referred_user_id=referred_user_id,
        referral_code=code,
        security=context,
        click_id=click_id,
        now_utc=at,
        policy=POLICY,
    )


def test_record_signup_applies_silver_tier_bonus() -> None:
    backend = _backend(200)
    _seed_verified(backend, 7)

    result = asyncio.run(_signup(backend, 200))

    assert result.tier == "SILVER"
    assert result.signup_reward == 30
    assert result.tier_bonus == 7
    assert result.reward_earned == 37
    assert result.verified is True
    assert result.status == "COMPLETED"
    stored = backend.signups.rows[-1]
    assert stored.total_reward == stored.signup_reward + stored.tier_bonus


def test_record_signup_with_exactly_five_verified_signups_reaches_silver() -> None:
    backend = _backend(200)
    _seed_verified(backend, 5)

    result = asyncio.run(_signup(backend, 200))

    assert result.tier == "SILVER"
    assert result.tier_bonus == 7
    assert result.reward_earned == 37


def test_record_signup_devices_sharing_a_user_agent_are_not_pooled() -> None:
    backend = _backend(201, 202, 203, 204)
    shared_ua = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    devices = [
        DeviceInfo(user_agent=shared_ua, screen_resolution=screen, timezone=tz, language=lang)
        for screen, tz, lang in (
            ("1920x1080", "Europe/Berlin", "de-DE"),
            ("1366x768", "America/New_York", "en-US"),
            ("2560x1440", "Asia/Tokyo", "ja-JP"),
            ("1440x900", "Europe/Paris", "fr-FR"),
        )
    ]

    async def _run():
        results = []
        for idx, referred_id in enumerate((201, 202, 203, 204)):
            referrer_id, code = (1, "ABC123") if idx % 2 == 0 else (2, "OTHER1")
            results.append(
                await _signup(
                    backend,
                    referred_id,
                    ip=f"198.51.100.{idx + 1}",
                    device=devices[idx],
                    referrer_id=referrer_id,
                    code=code,
                    at=NOW_UTC + timedelta(hours=2 * idx),
                )
            )
        return results

    results = asyncio.run(_run())

    assert [result.blocked for result in results] == [False, False, False, False]
    assert len({row.fingerprint for row in backend.signups.rows}) == 4


def test_record_signup_with_moderate_risk_needs_manual_verification() -> None:
    backend = _backend(200)

    result = asyncio.run(_signup(backend, 200, device=MODERATE_RISK_DEVICE))

    assert result.risk_score == 55
    assert result.blocked is False
    assert result.status == "COMPLETED"
    assert result.verified is False
    stored = backend.signups.rows[0]
    assert stored.verification_notes == "Moderate risk score - requires manual verification"
    assert backend.events.of_type("referral_signup")[0]["status"] == "PENDING"

    claim = asyncio.run(
        ReferralService.claim_rewards(
            backend.stores,
            user_id=1,
            claim_type="signups",
            now_utc=NOW_UTC,
            policy=POLICY,
        )
    )
    assert claim.total_claimed == 0
    assert stored.claimed is False


def test_record_signup_rejects_self_referral() -> None:
    backend = _backend()
    with pytest.raises(ReferralSelfReferralError) as exc_info:
        asyncio.run(_signup(backend, 1))
    assert exc_info.value.code == "SELF_REFERRAL"


def test_record_signup_rejects_duplicate_referred_user() -> None:
    backend = _backend(200)
    asyncio.run(_signup(backend, 200))

    with pytest.raises(ReferralDuplicateSignupError):
        asyncio.run(_signup(backend, 200, ip="198.51.100.77"))

    assert len(backend.signups.rows) == 1
    assert len(backend.events.of_type("referral_signup")) == 1


def test_record_signup_requires_existing_users() -> None:
    backend = _backend()
    with pytest.raises(ReferralUserNotFoundError):
        asyncio.run(_signup(backend, 999))
    with pytest.raises(ReferralUserNotFoundError):
        asyncio.run(_signup(backend, 2, referrer_id=77, code="ABC123"))


def test_record_signup_rejects_code_of_another_referrer() -> None:
    backend = _backend(200)
    with pytest.raises(ReferralInvalidCodeError):
        asyncio.run(_signup(backend, 200, code="OTHER1"))


@pytest.mark.parametrize("code", ["a", "ab", "abc-123", "JO_X1234"])
def test_record_signup_rejects_malformed_code(code: str) -> None:
    backend = _backend(200)
    with pytest.raises(ReferralInvalidCodeError) as exc_info:
        asyncio.run(_signup(backend, 200, code=code))
    assert exc_info.value.code == "INVALID_CODE"


def test_record_signup_blocks_third_signup_from_ip_within_hour() -> None:
    backend = _backend(201, 202, 203)

    async def _run():
        return [
            await _signup(backend, referred_id, at=NOW_UTC + timedelta(minutes=offset))
            for offset, referred_id in enumerate((201, 202, 203))
        ]

    first, second, third = asyncio.run(_run())

    assert first.blocked is False
    assert second.blocked is False
    assert third.blocked is True
    assert third.status == "BLOCKED"
    assert third.reason == "Too many signups per hour from this IP"
    assert third.reward_earned == 0
    assert third.verified is False
    stored = backend.signups.rows[-1]
    assert stored.total_reward == 0
    assert stored.verification_notes == third.reason


def test_record_signup_converts_click_without_extra_reward() -> None:
    backend = _backend(200, 201)

    async def _run():
        click = await ReferralService.record_click(
            backend.stores,
            referral_code="ABC123",
            security=security("192.0.2.1"),
            now_utc=NOW_UTC - timedelta(minutes=5),
            policy=POLICY,
        )
        first = await _signup(backend, 200, click_id=click.click_id)
        second = await _signup(backend, 201, ip="192.0.2.99", click_id=click.click_id)
        return click, first, second

    click, first, second = asyncio.run(_run())

    assert first.click_converted is True
    assert second.click_converted is False
    stored_click = backend.clicks.rows[0]
    assert stored_click.converted is True
    assert stored_click.converted_user_id == 200
    assert stored_click.status == "COMPLETED"
    assert stored_click.total_reward == click.reward_earned == 15


def test_record_signup_ignores_click_of_other_referrer() -> None:
    backend = _backend(200)
    other_click = backend.clicks.seed(
        referrer_id=2,
        ip_address="192.0.2.1",
        clicked_at=NOW_UTC - timedelta(minutes=1),
    )

    result = asyncio.run(_signup(backend, 200, click_id=other_click.click_id))

    assert result.click_converted is False
    assert other_click.converted is False


def test_record_signup_records_tier_upgrade_event() -> None:
    backend = _backend(200)
    _seed_verified(backend, 4)

    result = asyncio.run(_signup(backend, 200))

    assert result.tier == "BRONZE"
    assert result.tier_bonus == 3
    upgrades = backend.events.of_type("referral_tier_upgrade")
    assert len(upgrades) == 1
    assert upgrades[0]["payload"]["tier"] == "SILVER"


def test_review_signup_approves_pending_verification() -> None:
    backend = _backend(200)
    signup = asyncio.run(_signup(backend, 200, device=MODERATE_RISK_DEVICE))

    review = asyncio.run(
        ReferralService.review_signup(
            backend.stores,
            signup_id=signup.signup_id,
            approve=True,
            now_utc=NOW_UTC,
        )
    )

    assert review.verified is True
    assert review.reward_earned == signup.reward_earned
    claim = asyncio.run(
        ReferralService.claim_rewards(
            backend.stores,
            user_id=1,
            claim_type="signups",
            now_utc=NOW_UTC,
            policy=POLICY,
        )
    )
    assert claim.total_claimed == signup.reward_earned


def test_review_signup_rejection_blocks_and_zeroes_reward() -> None:
    backend = _backend(200)
    signup = asyncio.run(_signup(backend, 200, device=MODERATE_RISK_DEVICE))

    review = asyncio.run(
        ReferralService.review_signup(
            backend.stores,
            signup_id=signup.signup_id,
            approve=False,
            notes="Disposable email",
            now_utc=NOW_UTC,
        )
    )

    assert review.status == "BLOCKED"
    assert review.verified is False
    assert review.reward_earned == 0
    stored = backend.signups.rows[0]
    assert stored.blocked_reason == "Disposable email"

    with pytest.raises(ReferralValidationError):
        asyncio.run(
            ReferralService.review_signup(
                backend.stores,
                signup_id=signup.signup_id,
                approve=True,
                now_utc=NOW_UTC,
            )
        )


def test_review_signup_requires_existing_signup() -> None:
    backend = _backend()
    with pytest.raises(ReferralSignupNotFoundError):
        asyncio.run(
            ReferralService.review_signup(
                backend.stores,
                signup_id=404,
                approve=True,
                now_utc=NOW_UTC,
            )
        )
