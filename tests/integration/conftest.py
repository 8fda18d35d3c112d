from __future__ import annotations

import os

import pytest
from sqlalchemy import text

from referral_engine.core.integration_db_safety import assert_safe_integration_db
from referral_engine.db.models import Base
from referral_engine.db.session import engine

TRUNCATE_TABLES = (
    "referral_events",
    "referral_stats",
    "referral_signups",
    "referral_clicks",
    "rewards_ledger",
    "users",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} RESTART IDENTITY CASCADE"


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> None:
    if not os.getenv("DATABASE_URL"):
        pytest.skip("DATABASE_URL must point at a local PostgreSQL test DB for integration tests")
    assert_safe_integration_db(str(engine.url))


@pytest.fixture(autouse=True)
async def cleanup_db() -> None:
    # Dispose pooled connections between tests to avoid cross-event-loop asyncpg reuse.
    await engine.dispose()

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    async with engine.begin() as conn:
        await conn.execute(text(TRUNCATE_SQL))

    yield

    await engine.dispose()
