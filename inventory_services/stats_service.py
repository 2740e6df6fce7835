"""
inventory_services.stats_service -- Role-scoped per-round progress counters.

Responsibility:
    Computes pending / assigned / counted totals for rounds 1-4 as seen by
    one caller.  The four rounds are fetched concurrently; a failure in one
    round degrades only that round to zeros.

Architecture position:
    Services -- orchestration over a read source + the scope engine.
    The source is injected (``RoundLocationSource``) so the same aggregator
    runs against the database selector or an in-memory fixture.

Invariants enforced:
    - The caller's ReadScope (control partition, then supervisor ownership)
      is applied to every round.
    - Rounds 3 and 4 only contain references escalated that far; the source
      is responsible for that filter.
    - A FetchError in round N never touches the tallies of other rounds.

Failure modes:
    - FetchError from the source: logged, round reported as zero and listed
      in ``failed_rounds``.
    - Any other exception propagates.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_engines.scope import RoundTally, tally_round
from inventory_kernel.domain.dtos import ORDINARY_ROUNDS, LocationRoundView
from inventory_kernel.domain.roles import AppRole, ReadScope
from inventory_kernel.exceptions import FetchError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.selectors.location_selector import LocationSelector

logger = get_logger("services.stats")


class RoundLocationSource(Protocol):
    """Read side for one round's location views."""

    async def fetch_round(
        self, round_number: int, scope: ReadScope
    ) -> Sequence[LocationRoundView]:
        ...


class SelectorRoundSource:
    """Database-backed source; database errors become FetchError.

    Queries are blocking, so each fetch runs in a worker thread and the
    event loop stays free.  A Session is not thread-safe: fetches on one
    source take turns on its session.
    """

    def __init__(self, session: Session):
        self._selector = LocationSelector(session)
        self._session_lock = threading.Lock()

    def _round_views(self, round_number: int, scope: ReadScope) -> list[LocationRoundView]:
        with self._session_lock:
            return self._selector.round_views(round_number, scope)

    async def fetch_round(
        self, round_number: int, scope: ReadScope
    ) -> Sequence[LocationRoundView]:
        try:
            return await asyncio.to_thread(self._round_views, round_number, scope)
        except SQLAlchemyError as exc:
            raise FetchError(f"locations/round{round_number}", str(exc)) from exc


class InMemoryRoundSource:
    """Views held in memory, keyed by round.

    ``failing_rounds`` raise FetchError on fetch.
    """

    def __init__(
        self,
        views: Mapping[int, Iterable[LocationRoundView]],
        failing_rounds: Iterable[int] = (),
    ):
        self._views = {rnd: list(items) for rnd, items in views.items()}
        self._failing = frozenset(failing_rounds)

    async def fetch_round(
        self, round_number: int, scope: ReadScope
    ) -> Sequence[LocationRoundView]:
        if round_number in self._failing:
            raise FetchError(f"memory/round{round_number}", "source unavailable")
        return [
            view
            for view in self._views.get(round_number, [])
            if scope.admits(view.control, view.assigned_supervisor_id)
        ]


@dataclass(frozen=True)
class RoundStats:
    """Per-round tallies for one caller."""

    role: AppRole
    scope: ReadScope
    rounds: tuple[RoundTally, ...]
    failed_rounds: tuple[int, ...] = ()

    def for_round(self, round_number: int) -> RoundTally:
        for tally in self.rounds:
            if tally.round == round_number:
                return tally
        raise KeyError(round_number)

    @property
    def is_degraded(self) -> bool:
        return bool(self.failed_rounds)


class RoleScopedStatsAggregator:
    """
    Usage:
        aggregator = RoleScopedStatsAggregator(SelectorRoundSource(session))
        stats = await aggregator.compute(AppRole.SUPERVISOR, caller_id="sup-1")
        stats.for_round(1).counted
    """

    def __init__(self, source: RoundLocationSource, rounds: tuple[int, ...] = ORDINARY_ROUNDS):
        self._source = source
        self._rounds = rounds

    async def compute(self, role: AppRole, caller_id: str | None) -> RoundStats:
        scope = ReadScope.for_caller(role, caller_id)
        results = await asyncio.gather(
            *(self._tally(round_number, scope) for round_number in self._rounds)
        )
        failed = tuple(tally.round for tally, ok in results if not ok)
        stats = RoundStats(
            role=role,
            scope=scope,
            rounds=tuple(tally for tally, _ in results),
            failed_rounds=failed,
        )
        logger.debug(
            "round_stats_computed",
            extra={
                "role": role.value,
                "control_scope": scope.control.value,
                "owner_restricted": scope.is_owner_restricted,
                "failed_rounds": list(failed),
            },
        )
        return stats

    async def _tally(self, round_number: int, scope: ReadScope) -> tuple[RoundTally, bool]:
        try:
            views = await self._source.fetch_round(round_number, scope)
        except FetchError as exc:
            logger.warning(
                "round_stats_fetch_failed",
                extra={
                    "audit_round": round_number,
                    "source": exc.source,
                    "reason": exc.reason,
                },
            )
            return RoundTally.zero(round_number), False
        return tally_round(round_number, views, scope), True
