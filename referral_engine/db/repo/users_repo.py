from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.db.models.rewards_ledger import RewardsLedgerEntry
from referral_engine.db.models.users import User
from referral_engine.economy.referrals.constants import (
    LEDGER_ACTION_EARN,
    LEDGER_SOURCE_REFERRAL,
    USER_STATUS_ACTIVE,
)


class UsersRepo:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_by_referral_code(self, referral_code: str) -> User | None:
        stmt = select(User).where(User.referral_code == referral_code)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_ids(self, user_ids: Sequence[int]) -> list[User]:
        ids = tuple({int(user_id) for user_id in user_ids})
        if not ids:
            return []
        stmt = select(User).where(User.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self,
        *,
        username: str,
        referral_code: str,
        email: str | None = None,
        status: str = USER_STATUS_ACTIVE,
    ) -> User:
        user = User(
            username=username,
            email=email,
            referral_code=referral_code,
            status=status,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def credit(
        self,
        user_id: int,
        amount: int,
        *,
        reason: str,
        reference_id: str | None,
        now_utc: datetime,
    ) -> int | None:
        if amount <= 0:
            return None
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                coins=User.coins + amount,
                referral_earnings=User.referral_earnings + amount,
                updated_at=now_utc,
            )
            .returning(User.coins)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        new_balance = result.scalar_one_or_none()
        if new_balance is None:
            return None

        self.session.add(
            RewardsLedgerEntry(
                user_id=user_id,
                delta=amount,
                balance_before=int(new_balance) - amount,
                balance_after=int(new_balance),
                source_category=LEDGER_SOURCE_REFERRAL,
                source_action=LEDGER_ACTION_EARN,
                reference_id=reference_id,
                message=reason,
                created_at=now_utc,
            )
        )
        await self.session.flush()
        return int(new_balance)
