from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from referral_engine.economy.referrals.errors import ReferralUserNotFoundError
from referral_engine.economy.referrals.service import ReferralService
from tests.economy.referral_fakes import NOW_UTC, POLICY, UTC, InMemoryReferralBackend


def _backend_with_activity() -> InMemoryReferralBackend:
    backend = InMemoryReferralBackend()
    backend.users.add(1, referral_code="ABC123")
    backend.clicks.seed(
        referrer_id=1,
        ip_address="192.0.2.1",
        clicked_at=NOW_UTC - timedelta(hours=1),
        is_suspicious=True,
    )
    backend.clicks.seed(referrer_id=1, ip_address="192.0.2.1", clicked_at=NOW_UTC - timedelta(hours=2))
    backend.clicks.seed(
        referrer_id=1,
        ip_address="192.0.2.2",
        clicked_at=NOW_UTC - timedelta(days=3),
        status="BLOCKED",
    )
    backend.clicks.seed(referrer_id=1, ip_address="192.0.2.3", clicked_at=NOW_UTC - timedelta(days=20))

    backend.signups.seed(referrer_id=1, referred_user_id=10, signed_up_at=NOW_UTC - timedelta(hours=1))
    claimed = backend.signups.seed(
        referrer_id=1,
        referred_user_id=11,
        signed_up_at=NOW_UTC - timedelta(days=10),
    )
    claimed.claimed = True
    claimed.status = "CLAIMED"
    backend.signups.seed(
        referrer_id=1,
        referred_user_id=12,
        signed_up_at=NOW_UTC - timedelta(hours=1),
        verified=False,
    )
    return backend


def _rebuild(backend: InMemoryReferralBackend, *, at: datetime = NOW_UTC):
    return asyncio.run(
        ReferralService.rebuild_user_stats(
            backend.stores,
            user_id=1,
            now_utc=at,
            timezone_name="UTC",
        )
    )


def test_rebuild_user_stats_aggregates_clicks_and_signups() -> None:
    backend = _backend_with_activity()

    snapshot = _rebuild(backend)

    assert snapshot.total_clicks == 4
    assert snapshot.unique_clicks == 3
    assert (snapshot.clicks_today, snapshot.clicks_this_week, snapshot.clicks_this_month) == (2, 3, 3)
    assert snapshot.total_signups == 2
    assert (snapshot.signups_today, snapshot.signups_this_week, snapshot.signups_this_month) == (1, 1, 2)
    assert snapshot.click_to_signup_rate == 50.0
    assert snapshot.suspicious_clicks == 2
    assert snapshot.blocked_clicks == 1
    assert snapshot.fraud_score == 50.0
    assert snapshot.current_tier == "BRONZE"
    assert snapshot.tier_progress == 40.0
    assert snapshot.tier_bonus_percentage == 10
    assert backend.stats.rows[1] == snapshot


def test_rebuild_user_stats_splits_earnings() -> None:
    snapshot = _rebuild(_backend_with_activity())

    assert snapshot.total_earnings == 45 + 66
    assert snapshot.claimed_earnings == 33
    assert snapshot.pending_earnings == 78
    assert snapshot.earnings_today == 63
    assert snapshot.earnings_this_week == 63
    assert snapshot.earnings_this_month == 96


def test_rebuild_user_stats_keeps_created_at_and_refreshes_last_updated() -> None:
    backend = _backend_with_activity()
    first = _rebuild(backend)
    later = NOW_UTC + timedelta(minutes=30)

    second = _rebuild(backend, at=later)

    assert second.created_at == first.created_at == NOW_UTC
    assert second.last_updated == later


def test_rebuild_user_stats_for_user_without_activity() -> None:
    backend = InMemoryReferralBackend()
    backend.users.add(1, referral_code="ABC123")

    snapshot = _rebuild(backend)

    assert snapshot.total_clicks == 0
    assert snapshot.click_to_signup_rate == 0.0
    assert snapshot.fraud_score == 0.0
    assert snapshot.pending_earnings == 0


def test_rebuild_user_stats_requires_existing_user() -> None:
    with pytest.raises(ReferralUserNotFoundError):
        _rebuild(InMemoryReferralBackend())


def test_get_user_stats_builds_missing_snapshot_then_serves_cached_row() -> None:
    backend = _backend_with_activity()

    built = asyncio.run(
        ReferralService.get_user_stats(
            backend.stores,
            user_id=1,
            now_utc=NOW_UTC,
            policy=POLICY,
            timezone_name="UTC",
        )
    )
    assert built.total_clicks == 4

    backend.stats.rows[1] = replace(built, total_clicks=999)
    cached = asyncio.run(
        ReferralService.get_user_stats(
            backend.stores,
            user_id=1,
            now_utc=NOW_UTC,
            policy=POLICY,
        )
    )
    assert cached.total_clicks == 999


def test_stats_window_starts_follow_local_timezone() -> None:
    day_start, week_start, month_start = ReferralService._stats_window_starts_utc(
        NOW_UTC,
        "America/New_York",
    )

    assert day_start == datetime(2026, 3, 18, 4, 0, tzinfo=UTC)
    assert week_start == NOW_UTC - timedelta(days=7)
    assert month_start == datetime(2026, 3, 1, 5, 0, tzinfo=UTC)
