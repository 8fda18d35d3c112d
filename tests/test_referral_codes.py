from __future__ import annotations

import pytest

from referral_engine.core.referral_codes import (
    ALPHABET,
    build_referral_url,
    generate_referral_code,
    normalize_referral_code,
)


def test_generate_referral_code_length_and_charset() -> None:
    code = generate_referral_code(8)
    assert len(code) == 8
    assert set(code).issubset(set(ALPHABET))
    assert normalize_referral_code(code) == code


def test_generate_referral_code_rejects_non_positive_length() -> None:
    with pytest.raises(ValueError):
        generate_referral_code(0)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("abc123", "ABC123"),
        ("  ABCD  ", "ABCD"),
        ("A" * 20, "A" * 20),
        ("ab1", None),
        ("A" * 21, None),
        ("ABC-123", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_referral_code(raw: str | None, expected: str | None) -> None:
    assert normalize_referral_code(raw) == expected


def test_build_referral_url_strips_trailing_slash() -> None:
    assert (
        build_referral_url("ABC123", base_url="https://panel.example.com/")
        == "https://panel.example.com/auth/register?ref=ABC123"
    )
