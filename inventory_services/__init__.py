"""
inventory_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure engines
    (inventory_engines/) with database sessions, the clock and the
    identity-scoped cache.  This is the only layer that writes round state,
    reads the wall clock or holds session state for the caller.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        inventory_services/ -> inventory_engines/  (allowed)
        inventory_services/ -> inventory_kernel/   (allowed)
        inventory_engines/  -> inventory_services/ (FORBIDDEN)
        inventory_kernel/   -> inventory_services/ (FORBIDDEN)
"""

from inventory_services.cache_guard import (
    ContinuationQueue,
    DeferredTask,
    DrainReport,
    GenerationToken,
    IdentityScopedCacheGuard,
)
from inventory_services.identity_session import (
    IdentityDirectory,
    IdentityProfile,
    IdentitySession,
)
from inventory_services.round_service import CountResult, RoundService
from inventory_services.stats_service import (
    InMemoryRoundSource,
    RoleScopedStatsAggregator,
    RoundLocationSource,
    RoundStats,
    SelectorRoundSource,
)

__all__ = [
    "ContinuationQueue",
    "CountResult",
    "DeferredTask",
    "DrainReport",
    "GenerationToken",
    "IdentityDirectory",
    "IdentityProfile",
    "IdentityScopedCacheGuard",
    "IdentitySession",
    "InMemoryRoundSource",
    "RoleScopedStatsAggregator",
    "RoundLocationSource",
    "RoundService",
    "RoundStats",
    "SelectorRoundSource",
]
