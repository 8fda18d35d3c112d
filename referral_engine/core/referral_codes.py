from __future__ import annotations

import re
import secrets
from urllib.parse import quote

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_RE = re.compile(r"^[A-Z0-9]{4,20}$")


def generate_referral_code(length: int = 8) -> str:
    """Generates a short uppercase referral code with low typo ambiguity."""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def normalize_referral_code(referral_code: str | None) -> str | None:
    """Returns the upper-cased code, or None when it cannot be a referral code."""
    if not referral_code:
        return None
    normalized = referral_code.strip().upper()
    if REFERRAL_CODE_RE.match(normalized) is None:
        return None
    return normalized


def build_referral_url(referral_code: str, *, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/auth/register?ref={quote(referral_code)}"
