"""
inventory_services.identity_session -- The authenticated caller and its cached views.

Responsibility:
    Drives sign-in / sign-out through the cache guard: fetches the caller's
    profile and raw role from the identity directory, resolves the role to
    the closed ``AppRole`` set and caches the role-scoped round stats.

Architecture position:
    Services -- thin shell over IdentityScopedCacheGuard, the injected
    IdentityDirectory and RoleScopedStatsAggregator.

Invariants enforced:
    - Every cached value is written through the guard, so a profile or
      stats fetch started for identity A never lands in B's session.
    - Sign-out clears the profile, the role and all cached stats.

Failure modes:
    - UnknownRoleError: the directory returned a role outside the closed
      set.  Nothing is cached.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from inventory_kernel.domain.roles import (
    AppRole,
    ControlScope,
    control_scope_for,
    is_administrative,
    resolve_role,
)
from inventory_kernel.logging_config import get_logger
from inventory_services.cache_guard import IdentityScopedCacheGuard
from inventory_services.stats_service import RoleScopedStatsAggregator, RoundStats

logger = get_logger("services.identity_session")

PROFILE_KEY = "profile"
ROUND_STATS_KEY = "round_stats"


class IdentityDirectory(Protocol):
    """External profile/role lookup."""

    async def fetch_profile(self, user_id: str) -> Mapping[str, Any] | None:
        ...

    async def fetch_role(self, user_id: str) -> str | None:
        ...


@dataclass(frozen=True)
class IdentityProfile:
    user_id: str
    full_name: str | None
    raw_role: str | None
    role: AppRole

    @property
    def control_scope(self) -> ControlScope:
        return control_scope_for(self.role)

    @property
    def is_administrative(self) -> bool:
        return is_administrative(self.role)


class IdentitySession:
    """
    Usage:
        session = IdentitySession(guard, directory, stats=aggregator)
        profile = await session.sign_in("user-a")
        stats = await session.round_stats()
        session.sign_out()
    """

    def __init__(
        self,
        guard: IdentityScopedCacheGuard,
        directory: IdentityDirectory,
        stats: RoleScopedStatsAggregator | None = None,
    ):
        self._guard = guard
        self._directory = directory
        self._stats = stats

    @property
    def user_id(self) -> str | None:
        return self._guard.identity_id

    @property
    def profile(self) -> IdentityProfile | None:
        return self._guard.get(PROFILE_KEY)

    @property
    def role(self) -> AppRole:
        profile = self.profile
        return profile.role if profile else AppRole.NONE

    @property
    def control_scope(self) -> ControlScope:
        return control_scope_for(self.role)

    async def sign_in(self, user_id: str) -> IdentityProfile | None:
        """Activate ``user_id`` and load its profile.

        Returns None if another sign-in or a sign-out superseded this one
        before the profile arrived.
        """
        self._guard.sign_in(user_id)
        return await self.refresh_profile()

    async def refresh_profile(self) -> IdentityProfile | None:
        user_id = self._guard.identity_id
        if user_id is None:
            return None
        return await self._guard.fetch(PROFILE_KEY, lambda: self._load_profile(user_id))

    async def _load_profile(self, user_id: str) -> IdentityProfile:
        data, raw_role = await asyncio.gather(
            self._directory.fetch_profile(user_id),
            self._directory.fetch_role(user_id),
        )
        profile = IdentityProfile(
            user_id=user_id,
            full_name=(data or {}).get("full_name"),
            raw_role=raw_role,
            role=resolve_role(raw_role),
        )
        logger.info(
            "identity_profile_loaded",
            extra={"identity_id": user_id, "role": profile.role.value},
        )
        return profile

    def sign_out(self) -> None:
        self._guard.sign_out()

    async def round_stats(self, refresh: bool = False) -> RoundStats | None:
        """Cached per-round tallies for the current identity."""
        if self._stats is None:
            raise RuntimeError("IdentitySession was created without a stats aggregator")
        if not refresh:
            cached = self._guard.get(ROUND_STATS_KEY)
            if cached is not None:
                return cached
        profile = self.profile
        if profile is None:
            return None
        return await self._guard.fetch(
            ROUND_STATS_KEY, lambda: self._stats.compute(profile.role, profile.user_id)
        )
