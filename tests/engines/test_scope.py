"""Tests for scope filtering and per-round tallies."""

from inventory_engines.scope import RoundTally, filter_views, tally_round
from inventory_kernel.domain.dtos import LocationRoundView
from inventory_kernel.domain.roles import AppRole, ControlScope, ReadScope


def _view(loc, control="C1", supervisor="sup-1", worker=None, counted=False, round_number=1):
    return LocationRoundView(
        location_id=loc,
        master_reference="R",
        audit_round=round_number,
        control=control,
        assigned_supervisor_id=supervisor,
        worker_id=worker,
        has_count=counted,
    )


class TestTallyRound:
    def test_counts_by_derived_state(self):
        views = [
            _view("a"),
            _view("b", worker="w1"),
            _view("c", worker="w1", counted=True),
            _view("d", worker="w2", counted=True),
        ]
        tally = tally_round(1, views, ReadScope())
        assert (tally.pending, tally.assigned, tally.counted) == (1, 1, 2)
        assert tally.total == 4

    def test_other_rounds_ignored(self):
        tally = tally_round(2, [_view("a", round_number=1)], ReadScope())
        assert tally == RoundTally.zero(2)

    def test_control_then_ownership(self):
        views = [
            _view("a", control="C1", supervisor="sup-1"),
            _view("b", control=None, supervisor="sup-1"),
            _view("c", control="C1", supervisor="sup-2"),
        ]
        assert tally_round(1, views, ReadScope(control=ControlScope.NOT_NULL)).pending == 2
        assert tally_round(1, views, ReadScope(control=ControlScope.NULL)).pending == 1
        supervisor = ReadScope.for_caller(AppRole.SUPERVISOR, "sup-1")
        assert [v.location_id for v in filter_views(views, supervisor)] == ["a", "b"]

    def test_no_matches_is_zero(self):
        views = [_view("a", control=None)]
        scope = ReadScope.for_caller(AppRole.ADMIN_MP, "u")
        assert tally_round(1, views, scope) == RoundTally.zero(1)
