from __future__ import annotations

from dataclasses import asdict, fields

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.db.models.referral_stats import ReferralStats
from referral_engine.economy.referrals.types import ReferralStatsSnapshot


class ReferralStatsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: int) -> ReferralStatsSnapshot | None:
        row = await self.session.get(ReferralStats, user_id, populate_existing=True)
        if row is None:
            return None
        return ReferralStatsSnapshot(
            **{field.name: getattr(row, field.name) for field in fields(ReferralStatsSnapshot)}
        )

    async def upsert(self, snapshot: ReferralStatsSnapshot) -> None:
        values = asdict(snapshot)
        update_values = {key: value for key, value in values.items() if key not in {"user_id", "created_at"}}
        stmt = insert(ReferralStats).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ReferralStats.user_id],
            set_=update_values,
        )
        await self.session.execute(stmt)
