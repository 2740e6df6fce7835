"""Tests for engine setup and the unit-of-work scope."""

import pytest
from sqlalchemy import select

from inventory_kernel.db.engine import (
    DATABASE_URL_ENV,
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_env,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from inventory_kernel.db.immutability import unregister_immutability_listeners
from inventory_kernel.models import Worker


@pytest.fixture
def engine():
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    unregister_immutability_listeners()
    drop_tables()
    reset_engine()


class TestSessionScope:
    def test_commits_on_success(self, engine):
        with session_scope(actor_id="admin") as session:
            session.add(Worker(full_name="Ana", turno=1))
        with get_session() as session:
            assert session.execute(select(Worker.full_name)).scalars().all() == ["Ana"]

    def test_rolls_back_on_error(self, engine, captured_logs):
        with pytest.raises(RuntimeError):
            with session_scope(actor_id="admin") as session:
                session.add(Worker(full_name="Beto", turno=2))
                session.flush()
                raise RuntimeError("boom")
        with get_session() as session:
            assert session.execute(select(Worker)).first() is None
        [record] = [r for r in captured_logs() if r["message"] == "transaction_rolled_back"]
        assert record["actor_id"] == "admin"
        assert record["exc_type"] == "RuntimeError"


class TestInitFromEnv:
    def test_missing_url_raises(self, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        with pytest.raises(RuntimeError, match=DATABASE_URL_ENV):
            init_engine_from_env()

    def test_reads_url(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "sqlite://")
        try:
            assert init_engine_from_env().dialect.name == "sqlite"
        finally:
            unregister_immutability_listeners()
            reset_engine()

    def test_get_session_before_init(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_session()
