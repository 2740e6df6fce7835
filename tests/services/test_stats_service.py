"""Tests for the role-scoped per-round stats aggregator."""

import asyncio
import threading

import pytest
from sqlalchemy.exc import SQLAlchemyError

from inventory_engines.reconciliation import tolerance_policy
from inventory_engines.scope import RoundTally
from inventory_kernel.domain.dtos import LocationRoundView
from inventory_kernel.domain.roles import AppRole, ControlScope
from inventory_kernel.exceptions import FetchError
from inventory_kernel.selectors import LocationSelector
from inventory_services import (
    InMemoryRoundSource,
    RoleScopedStatsAggregator,
    RoundService,
    SelectorRoundSource,
)


def _view(loc, round_number, control="C1", supervisor="sup-1", worker=None, counted=False):
    return LocationRoundView(
        location_id=loc,
        master_reference="R",
        audit_round=round_number,
        control=control,
        assigned_supervisor_id=supervisor,
        worker_id=worker,
        has_count=counted,
    )


def _views():
    return {
        rnd: [
            _view(f"a{rnd}", rnd, worker="w1", counted=True),
            _view(f"b{rnd}", rnd, worker="w1"),
            _view(f"c{rnd}", rnd, control=None, supervisor="sup-2"),
        ]
        for rnd in (1, 2, 3, 4)
    }


class TestRoleScopedStats:
    def test_superadmin_sees_everything(self):
        stats = asyncio.run(
            RoleScopedStatsAggregator(InMemoryRoundSource(_views())).compute(AppRole.SUPERADMIN, "u")
        )
        assert [t.round for t in stats.rounds] == [1, 2, 3, 4]
        assert stats.for_round(1) == RoundTally(round=1, pending=1, assigned=1, counted=1)
        assert not stats.is_degraded

    def test_admin_pp_sees_only_null_control(self):
        stats = asyncio.run(
            RoleScopedStatsAggregator(InMemoryRoundSource(_views())).compute(AppRole.ADMIN_PP, "u")
        )
        assert stats.scope.control is ControlScope.NULL
        assert stats.for_round(2) == RoundTally(round=2, pending=1)

    def test_supervisor_sees_only_owned(self):
        stats = asyncio.run(
            RoleScopedStatsAggregator(InMemoryRoundSource(_views())).compute(AppRole.SUPERVISOR, "sup-1")
        )
        assert stats.for_round(3) == RoundTally(round=3, assigned=1, counted=1)

    def test_no_not_null_references_gives_zeros(self):
        views = {rnd: [_view(f"x{rnd}", rnd, control=None)] for rnd in (1, 2, 3, 4)}
        stats = asyncio.run(
            RoleScopedStatsAggregator(InMemoryRoundSource(views)).compute(AppRole.ADMIN_MP, "u")
        )
        assert stats.rounds == tuple(RoundTally.zero(rnd) for rnd in (1, 2, 3, 4))
        assert not stats.is_degraded

    def test_fetch_error_isolated_to_its_round(self, captured_logs):
        source = InMemoryRoundSource(_views(), failing_rounds=(3,))
        stats = asyncio.run(RoleScopedStatsAggregator(source).compute(AppRole.SUPERADMIN, "u"))
        assert stats.failed_rounds == (3,)
        assert stats.for_round(3) == RoundTally.zero(3)
        for rnd in (1, 2, 4):
            assert stats.for_round(rnd).total == 3
        failures = [r for r in captured_logs() if r["message"] == "round_stats_fetch_failed"]
        assert [r["audit_round"] for r in failures] == [3]

    def test_fetches_run_concurrently(self):
        started: list[int] = []
        release = asyncio.Event()

        class GatedSource:
            async def fetch_round(self, round_number, scope):
                started.append(round_number)
                if len(started) == 4:
                    release.set()
                await release.wait()
                return []

        async def run():
            return await asyncio.wait_for(
                RoleScopedStatsAggregator(GatedSource()).compute(AppRole.SUPERADMIN, "u"), 1
            )

        stats = asyncio.run(run())
        assert sorted(started) == [1, 2, 3, 4]
        assert stats.rounds == tuple(RoundTally.zero(rnd) for rnd in (1, 2, 3, 4))

    def test_other_errors_propagate(self):
        class BrokenSource:
            async def fetch_round(self, round_number, scope):
                raise RuntimeError("bug")

        with pytest.raises(RuntimeError, match="bug"):
            asyncio.run(RoleScopedStatsAggregator(BrokenSource()).compute(AppRole.SUPERADMIN, "u"))

    def test_fetch_error_carries_source(self):
        class FailingSource:
            async def fetch_round(self, round_number, scope):
                raise FetchError("remote", "timeout")

        stats = asyncio.run(RoleScopedStatsAggregator(FailingSource()).compute(AppRole.NONE, None))
        assert stats.failed_rounds == (1, 2, 3, 4)


class TestSelectorRoundSource:
    def test_database_backed_stats(self, session, make_reference, make_location, make_worker, deterministic_clock):
        make_reference("REF-A", control="C1")
        make_reference("REF-B", control=None)
        counted = make_location("REF-A", supervisor_id="sup-1")
        make_location("REF-A", supervisor_id="sup-1")
        make_location("REF-B", supervisor_id="sup-2")
        worker = make_worker("Ana", turno=1)

        rounds = RoundService(session, agrees=tolerance_policy(2), clock=deterministic_clock)
        rounds.assign_worker(counted.id, 1, worker.id)
        rounds.record_count(counted.id, 1, "10", submitted_by="sup-1")

        aggregator = RoleScopedStatsAggregator(SelectorRoundSource(session))
        admin_mp = asyncio.run(aggregator.compute(AppRole.ADMIN_MP, "u"))
        assert admin_mp.for_round(1) == RoundTally(round=1, pending=1, counted=1)
        assert admin_mp.for_round(2) == RoundTally(round=2, pending=2)
        assert admin_mp.for_round(3) == RoundTally.zero(3)

        supervisor = asyncio.run(aggregator.compute(AppRole.SUPERVISOR, "sup-2"))
        assert supervisor.for_round(1) == RoundTally(round=1, pending=1)

    def test_queries_run_off_the_event_loop_thread(self, session, monkeypatch):
        query_threads: list[int] = []

        def round_views(selector, round_number, scope):
            query_threads.append(threading.get_ident())
            return []

        monkeypatch.setattr(LocationSelector, "round_views", round_views)

        async def run():
            loop_thread = threading.get_ident()
            stats = await RoleScopedStatsAggregator(SelectorRoundSource(session)).compute(
                AppRole.SUPERADMIN, "u"
            )
            return loop_thread, stats

        loop_thread, stats = asyncio.run(run())
        assert len(query_threads) == 4
        assert loop_thread not in query_threads
        assert not stats.is_degraded

    def test_database_error_degrades_round(self, session, monkeypatch):
        def round_views(selector, round_number, scope):
            if round_number == 2:
                raise SQLAlchemyError("connection lost")
            return []

        monkeypatch.setattr(LocationSelector, "round_views", round_views)
        stats = asyncio.run(
            RoleScopedStatsAggregator(SelectorRoundSource(session)).compute(AppRole.SUPERADMIN, "u")
        )
        assert stats.failed_rounds == (2,)
