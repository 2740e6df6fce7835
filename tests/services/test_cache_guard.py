"""Tests for the identity-scoped cache guard and the continuation queue."""

import asyncio

import pytest

from inventory_kernel.exceptions import StaleIdentityDiscard
from inventory_services import ContinuationQueue, GenerationToken, IdentityScopedCacheGuard


class TestIdentityTransitions:
    def test_sign_in_bumps_generation_and_clears(self):
        guard = IdentityScopedCacheGuard()
        token = guard.sign_in("A")
        guard.commit(token, "profile", "A-profile")

        guard.sign_in("B")
        assert guard.generation == token.generation + 1
        assert guard.entries() == {}
        assert guard.identity_id == "B"

    def test_token_refresh_keeps_generation_and_entries(self):
        guard = IdentityScopedCacheGuard()
        token = guard.sign_in("A")
        guard.commit(token, "profile", "A-profile")

        refreshed = guard.sign_in("A")
        assert refreshed == token
        assert guard.get("profile") == "A-profile"

    def test_sign_out_invalidates(self):
        guard = IdentityScopedCacheGuard()
        token = guard.sign_in("A")
        guard.commit(token, "profile", "A-profile")
        guard.sign_out()
        assert guard.identity_id is None
        assert guard.get("profile") is None
        assert not guard.is_current(token)

    def test_discard_removes_one_entry(self):
        guard = IdentityScopedCacheGuard()
        token = guard.sign_in("A")
        guard.commit(token, "profile", "A-profile")
        guard.commit(token, "stats", "A-stats")
        guard.discard("stats")
        guard.discard("missing")
        assert guard.entries() == {"profile": "A-profile"}


class TestCommit:
    def test_stale_commit_raises_and_writes_nothing(self):
        guard = IdentityScopedCacheGuard()
        token_a = guard.sign_in("A")
        guard.sign_in("B")
        with pytest.raises(StaleIdentityDiscard) as exc_info:
            guard.commit(token_a, "profile", "A-profile")
        assert exc_info.value.captured_generation == token_a.generation
        assert guard.entries() == {}

    def test_same_generation_other_identity_rejected(self):
        guard = IdentityScopedCacheGuard()
        token = guard.sign_in("B")
        forged = GenerationToken("A", token.generation)
        with pytest.raises(StaleIdentityDiscard):
            guard.commit(forged, "profile", "x")


class TestFetch:
    def test_fetch_for_a_resolving_after_b_mutates_nothing(self, captured_logs):
        guard = IdentityScopedCacheGuard()

        async def scenario():
            a_may_finish = asyncio.Event()

            async def load_a():
                await a_may_finish.wait()
                return "A-stats"

            async def load_b():
                return "B-stats"

            guard.sign_in("A")
            pending_a = asyncio.create_task(guard.fetch("stats", load_a))
            await asyncio.sleep(0)

            guard.sign_in("B")
            b_value = await guard.fetch("stats", load_b)
            a_may_finish.set()
            a_value = await pending_a
            return a_value, b_value

        a_value, b_value = asyncio.run(scenario())
        assert a_value is None
        assert b_value == "B-stats"
        assert guard.entries() == {"stats": "B-stats"}
        assert any(r["message"] == "stale_fetch_discarded" for r in captured_logs())

    def test_fetch_after_sign_out_discarded(self):
        guard = IdentityScopedCacheGuard()

        async def scenario():
            gate = asyncio.Event()

            async def load():
                await gate.wait()
                return "A-profile"

            guard.sign_in("A")
            task = asyncio.create_task(guard.fetch("profile", load))
            await asyncio.sleep(0)
            guard.sign_out()
            gate.set()
            return await task

        assert asyncio.run(scenario()) is None
        assert guard.entries() == {}

    def test_loader_errors_propagate(self):
        guard = IdentityScopedCacheGuard()
        guard.sign_in("A")

        async def load():
            raise LookupError("no profile")

        with pytest.raises(LookupError):
            asyncio.run(guard.fetch("profile", load))


class TestContinuationQueue:
    def test_runs_in_order_and_drops_stale(self):
        guard = IdentityScopedCacheGuard()
        queue = ContinuationQueue(guard)
        calls: list[str] = []

        guard.sign_in("A")
        queue.enqueue("a-1", lambda: calls.append("a-1"))
        guard.sign_in("B")

        async def b_async():
            calls.append("b-2")

        queue.enqueue("b-1", lambda: calls.append("b-1"))
        queue.enqueue("b-2", b_async)
        assert len(queue) == 3

        report = asyncio.run(queue.drain())
        assert calls == ["b-1", "b-2"]
        assert report.executed == ("b-1", "b-2")
        assert report.dropped == ("a-1",)
        assert len(queue) == 0

    def test_task_invalidated_by_earlier_task(self):
        guard = IdentityScopedCacheGuard()
        queue = ContinuationQueue(guard)
        calls: list[str] = []

        guard.sign_in("A")
        queue.enqueue("sign-out", guard.sign_out)
        queue.enqueue("write", lambda: calls.append("write"))

        report = asyncio.run(queue.drain())
        assert calls == []
        assert report.dropped == ("write",)
