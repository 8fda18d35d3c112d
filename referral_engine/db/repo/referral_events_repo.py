from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.db.models.referral_events import ReferralEvent


class ReferralEventsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record(
        self,
        *,
        event_type: str,
        status: str,
        happened_at: datetime,
        user_id: int | None = None,
        referred_user_id: int | None = None,
        referral_code: str | None = None,
        click_id: str | None = None,
        ip_address: str | None = None,
        payload: dict[str, object] | None = None,
    ) -> None:
        self.session.add(
            ReferralEvent(
                event_type=event_type,
                status=status,
                user_id=user_id,
                referred_user_id=referred_user_id,
                referral_code=referral_code,
                click_id=click_id,
                ip_address=ip_address,
                payload=payload or {},
                happened_at=happened_at,
            )
        )
        await self.session.flush()
