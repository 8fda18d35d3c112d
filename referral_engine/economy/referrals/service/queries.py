from __future__ import annotations

from datetime import datetime

from referral_engine.core.config import get_settings
from referral_engine.core.referral_codes import build_referral_url
from referral_engine.economy.referrals.constants import REFERRED_USERS_MAX_PAGE_SIZE
from referral_engine.economy.referrals.errors import (
    ReferralUserNotFoundError,
    ReferralValidationError,
)
from referral_engine.economy.referrals.stores import ReferralStores
from referral_engine.economy.referrals.tiers import build_tier_snapshot
from referral_engine.economy.referrals.types import (
    ReferralRewardPolicy,
    ReferralStatsSnapshot,
    ReferredUser,
    ReferredUsersPage,
    TierSnapshot,
)

from .policy import _ensure_program_enabled, _resolve_policy
from .stats import rebuild_user_stats


async def get_user_stats(
    stores: ReferralStores,
    *,
    user_id: int,
    now_utc: datetime,
    policy: ReferralRewardPolicy | None = None,
    timezone_name: str | None = None,
) -> ReferralStatsSnapshot:
    _ensure_program_enabled(_resolve_policy(policy))
    user = await stores.users.get_by_id(user_id)
    if user is None:
        raise ReferralUserNotFoundError

    snapshot = await stores.stats.get(user_id)
    if snapshot is not None:
        return snapshot
    return await rebuild_user_stats(
        stores,
        user_id=user_id,
        now_utc=now_utc,
        timezone_name=timezone_name,
    )


async def get_referred_users(
    stores: ReferralStores,
    *,
    user_id: int,
    limit: int = 20,
    offset: int = 0,
) -> ReferredUsersPage:
    if limit < 1 or limit > REFERRED_USERS_MAX_PAGE_SIZE or offset < 0:
        raise ReferralValidationError

    user = await stores.users.get_by_id(user_id)
    if user is None:
        raise ReferralUserNotFoundError

    total = await stores.signups.count_verified_for_referrer(user_id)
    signups = await stores.signups.list_verified_for_referrer(user_id, limit=limit, offset=offset)
    users_by_id = {
        referred.id: referred
        for referred in await stores.users.list_by_ids(
            [signup.referred_user_id for signup in signups]
        )
    }

    referred_users: list[ReferredUser] = []
    for signup in signups:
        referred = users_by_id.get(signup.referred_user_id)
        referred_users.append(
            ReferredUser(
                user_id=signup.referred_user_id,
                username=referred.username if referred is not None else "Unknown",
                email=referred.email if referred is not None else None,
                joined_at=signup.signed_up_at,
                status=signup.status,
                reward=signup.total_reward,
            )
        )

    return ReferredUsersPage(
        users=referred_users,
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(signups) < total,
    )


async def get_tier_overview(stores: ReferralStores, *, user_id: int) -> TierSnapshot:
    user = await stores.users.get_by_id(user_id)
    if user is None:
        raise ReferralUserNotFoundError
    verified_signups = await stores.signups.count_verified_for_referrer(user_id)
    return build_tier_snapshot(verified_signups)


async def get_referral_link(
    stores: ReferralStores,
    *,
    user_id: int,
    base_url: str | None = None,
) -> str:
    user = await stores.users.get_by_id(user_id)
    if user is None:
        raise ReferralUserNotFoundError
    return build_referral_url(
        user.referral_code,
        base_url=base_url or get_settings().referral_base_url,
    )
