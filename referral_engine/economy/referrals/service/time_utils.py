from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

STATS_WEEK_WINDOW = timedelta(days=7)


def _local_datetime(now_utc: datetime, timezone_name: str) -> datetime:
    return now_utc.astimezone(ZoneInfo(timezone_name))


def _local_day_start_utc(now_utc: datetime, timezone_name: str) -> datetime:
    local_now = _local_datetime(now_utc, timezone_name)
    local_day_start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    return local_day_start.astimezone(now_utc.tzinfo)


def _local_month_start_utc(now_utc: datetime, timezone_name: str) -> datetime:
    local_now = _local_datetime(now_utc, timezone_name)
    local_month_start = local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return local_month_start.astimezone(now_utc.tzinfo)


def _stats_window_starts_utc(
    now_utc: datetime,
    timezone_name: str,
) -> tuple[datetime, datetime, datetime]:
    """Returns (today, trailing week, calendar month) starts for stats buckets."""
    return (
        _local_day_start_utc(now_utc, timezone_name),
        now_utc - STATS_WEEK_WINDOW,
        _local_month_start_utc(now_utc, timezone_name),
    )
