from __future__ import annotations

from sqlalchemy import CheckConstraint

from referral_engine.db.models import Base


def test_all_referral_tables_registered() -> None:
    expected_tables = {
        "users",
        "rewards_ledger",
        "referral_clicks",
        "referral_signups",
        "referral_stats",
        "referral_events",
    }
    assert expected_tables.issubset(set(Base.metadata.tables))


def _check_names(table_name: str) -> set[str]:
    table = Base.metadata.tables[table_name]
    return {
        constraint.name for constraint in table.constraints if isinstance(constraint, CheckConstraint)
    }


def test_critical_constraints_present() -> None:
    assert "ck_referral_clicks_blocked_unrewarded" in _check_names("referral_clicks")
    assert "ck_referral_clicks_risk_score_range" in _check_names("referral_clicks")

    signup_checks = _check_names("referral_signups")
    assert "ck_referral_signups_no_self_referral" in signup_checks
    assert "ck_referral_signups_blocked_unrewarded" in signup_checks
    assert "ck_referral_signups_total_reward" in signup_checks

    assert "ck_rewards_ledger_balance" in _check_names("rewards_ledger")


def test_uniqueness_and_rate_limit_indexes_present() -> None:
    clicks = Base.metadata.tables["referral_clicks"]
    assert clicks.c.click_id.unique is True
    click_indexes = {index.name for index in clicks.indexes}
    assert "idx_referral_clicks_ip_clicked" in click_indexes
    assert "idx_referral_clicks_fingerprint_clicked" in click_indexes
    assert "idx_referral_clicks_referrer_unclaimed" in click_indexes

    signups = Base.metadata.tables["referral_signups"]
    assert signups.c.referred_user_id.unique is True
    signup_indexes = {index.name for index in signups.indexes}
    assert "idx_referral_signups_ip_signed_up" in signup_indexes
    assert "idx_referral_signups_referrer_unclaimed" in signup_indexes

    stats = Base.metadata.tables["referral_stats"]
    assert [column.name for column in stats.primary_key.columns] == ["user_id"]
