from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime, timezone

import structlog

from referral_engine.core.config import get_settings
from referral_engine.db.session import SessionLocal
from referral_engine.economy.referrals.constants import STATS_REBUILD_ACTIVITY_WINDOW
from referral_engine.economy.referrals.errors import ReferralUserNotFoundError
from referral_engine.economy.referrals.service import ReferralService
from referral_engine.economy.referrals.stores import ReferralStores
from referral_engine.workers.asyncio_runner import run_async_job
from referral_engine.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


def _is_celery_task(task_obj: object) -> bool:
    return type(task_obj).__module__.startswith("celery.")


async def refresh_referral_stats_async(*, user_id: int) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            snapshot = await ReferralService.rebuild_user_stats(
                ReferralStores.for_session(session),
                user_id=user_id,
                now_utc=now_utc,
            )
    except ReferralUserNotFoundError:
        logger.warning("referral_stats_refresh_user_missing", user_id=user_id)
        return {"user_id": user_id, "refreshed": 0}
    return {
        "user_id": user_id,
        "refreshed": 1,
        "total_clicks": snapshot.total_clicks,
        "total_signups": snapshot.total_signups,
    }


async def rebuild_recent_referral_stats_async(*, batch_size: int | None = None) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    resolved_batch_size = batch_size or get_settings().referral_stats_rebuild_batch_size
    since_utc = now_utc - STATS_REBUILD_ACTIVITY_WINDOW

    async with SessionLocal.begin() as session:
        stores = ReferralStores.for_session(session)
        click_referrers = await stores.clicks.list_referrer_ids_active_since(
            since_utc,
            limit=resolved_batch_size,
        )
        signup_referrers = await stores.signups.list_referrer_ids_active_since(
            since_utc,
            limit=resolved_batch_size,
        )
    referrer_ids = sorted(set(click_referrers) | set(signup_referrers))[:resolved_batch_size]

    rebuilt = 0
    failed = 0
    for user_id in referrer_ids:
        try:
            async with SessionLocal.begin() as session:
                await ReferralService.rebuild_user_stats(
                    ReferralStores.for_session(session),
                    user_id=user_id,
                    now_utc=now_utc,
                )
            rebuilt += 1
        except Exception:
            failed += 1
            logger.exception("referral_stats_rebuild_failed", user_id=user_id)

    result = {
        "referrers_found": len(referrer_ids),
        "rebuilt": rebuilt,
        "failed": failed,
    }
    logger.info("referral_stats_rebuild_finished", **result)
    return result


async def _enqueue_one(*, user_id: int, timeout_seconds: float) -> bool:
    def enqueue_call() -> object:
        return refresh_referral_stats.delay(user_id=user_id)

    try:
        if _is_celery_task(refresh_referral_stats):
            await asyncio.wait_for(asyncio.to_thread(enqueue_call), timeout=timeout_seconds)
        else:
            await asyncio.wait_for(
                refresh_referral_stats_async(user_id=user_id),
                timeout=timeout_seconds,
            )
        return True
    except asyncio.TimeoutError:
        logger.warning(
            "referral_stats_refresh_enqueue_timeout",
            user_id=user_id,
            enqueue_timeout_seconds=timeout_seconds,
        )
        return False
    except Exception as exc:
        logger.warning(
            "referral_stats_refresh_failed",
            user_id=user_id,
            error_type=type(exc).__name__,
        )
        return False


async def enqueue_referral_stats_refresh(user_ids: Iterable[int]) -> int:
    """Schedules a stats rebuild per user; never raises, returns how many were dispatched."""
    timeout_ms = max(1, int(get_settings().referral_stats_enqueue_timeout_ms))
    dispatched = 0
    for user_id in sorted({int(user_id) for user_id in user_ids}):
        if await _enqueue_one(user_id=user_id, timeout_seconds=timeout_ms / 1000.0):
            dispatched += 1
    return dispatched


@celery_app.task(name="referral_engine.workers.tasks.referral_stats.refresh_referral_stats")
def refresh_referral_stats(user_id: int) -> dict[str, int]:
    return run_async_job(refresh_referral_stats_async(user_id=user_id))


@celery_app.task(name="referral_engine.workers.tasks.referral_stats.rebuild_recent_referral_stats")
def rebuild_recent_referral_stats(batch_size: int | None = None) -> dict[str, int]:
    return run_async_job(rebuild_recent_referral_stats_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "referral-stats-rebuild-every-30-minutes": {
            "task": "referral_engine.workers.tasks.referral_stats.rebuild_recent_referral_stats",
            "schedule": 1800.0,
            "options": {"queue": "q_normal"},
        },
    }
)
