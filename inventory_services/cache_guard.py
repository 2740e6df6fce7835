"""
inventory_services.cache_guard -- Identity-scoped cache with a generation counter.

Responsibility:
    Holds the active identity, a monotonically increasing generation and
    every cache entry derived for that identity.  Any identity change
    (sign-in over a different identity, sign-out) clears the entries and
    bumps the generation in one critical section, so no fetch started under
    the old identity can ever populate the new one's cache.

Architecture position:
    Services -- process-wide session state shared by the identity session
    and by any read view that caches per-identity data.

Invariants enforced:
    - Invalidation happens-before the new generation is published.
    - Token refresh for the same identity keeps the generation.
    - A commit re-checks the captured token under the lock immediately
      before writing; a mismatch raises StaleIdentityDiscard and writes
      nothing.
    - Deferred continuations run in enqueue order; a continuation whose
      captured generation is no longer current is dropped unexecuted.

Failure modes:
    - StaleIdentityDiscard: internal only.  ``fetch`` logs it and returns
      None; it never reaches callers.
"""

from __future__ import annotations

import inspect
import threading
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from inventory_kernel.exceptions import StaleIdentityDiscard
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.cache_guard")

T = TypeVar("T")


@dataclass(frozen=True)
class GenerationToken:
    """Identity and generation captured when work was started."""

    identity_id: str | None
    generation: int


class IdentityScopedCacheGuard:
    """
    Usage:
        guard = IdentityScopedCacheGuard()
        guard.sign_in("user-a")
        profile = await guard.fetch("profile", lambda: directory.fetch_profile("user-a"))
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._identity_id: str | None = None
        self._generation = 0
        self._entries: dict[str, Any] = {}

    @property
    def identity_id(self) -> str | None:
        return self._identity_id

    @property
    def generation(self) -> int:
        return self._generation

    def capture(self) -> GenerationToken:
        with self._lock:
            return GenerationToken(self._identity_id, self._generation)

    def is_current(self, token: GenerationToken) -> bool:
        with self._lock:
            return self._matches(token)

    def _matches(self, token: GenerationToken) -> bool:
        return (
            token.generation == self._generation
            and token.identity_id == self._identity_id
        )

    # ------------------------------------------------------------------
    # Identity transitions
    # ------------------------------------------------------------------

    def sign_in(self, identity_id: str) -> GenerationToken:
        """Activate ``identity_id``.  Same identity = token refresh."""
        with self._lock:
            if identity_id == self._identity_id:
                logger.debug("identity_token_refreshed", extra={"generation": self._generation})
                return GenerationToken(self._identity_id, self._generation)
            self._invalidate_locked()
            self._identity_id = identity_id
            token = GenerationToken(self._identity_id, self._generation)
        logger.info(
            "identity_changed",
            extra={"identity_id": identity_id, "generation": token.generation},
        )
        return token

    def sign_out(self) -> GenerationToken:
        with self._lock:
            previous = self._identity_id
            self._invalidate_locked()
            self._identity_id = None
            token = GenerationToken(None, self._generation)
        logger.info(
            "identity_signed_out",
            extra={"previous_identity_id": previous, "generation": token.generation},
        )
        return token

    def _invalidate_locked(self) -> None:
        # Clear before the generation moves so no reader sees old entries
        # under the new generation
        self._entries.clear()
        self._generation += 1

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def entries(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._entries)

    def commit(self, token: GenerationToken, key: str, value: Any) -> None:
        """Write ``value`` only if ``token`` is still current."""
        with self._lock:
            if not self._matches(token):
                raise StaleIdentityDiscard(key, token.generation, self._generation)
            self._entries[key] = value

    def discard(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def fetch(self, key: str, loader: Callable[[], Awaitable[T]]) -> T | None:
        """Run ``loader`` and cache its result under the captured generation.

        Returns None when the identity changed while the loader was pending.
        """
        token = self.capture()
        value = await loader()
        try:
            self.commit(token, key, value)
        except StaleIdentityDiscard as exc:
            logger.info(
                "stale_fetch_discarded",
                extra={
                    "key": key,
                    "captured_generation": exc.captured_generation,
                    "current_generation": exc.current_generation,
                },
            )
            return None
        return value


@dataclass(frozen=True)
class DeferredTask:
    """A continuation queued together with the token it was created under."""

    name: str
    token: GenerationToken
    action: Callable[[], Any]


@dataclass(frozen=True)
class DrainReport:
    executed: tuple[str, ...] = ()
    dropped: tuple[str, ...] = ()


class ContinuationQueue:
    """FIFO of deferred continuations, each re-validated before it runs."""

    def __init__(self, guard: IdentityScopedCacheGuard):
        self._guard = guard
        self._tasks: deque[DeferredTask] = deque()

    def __len__(self) -> int:
        return len(self._tasks)

    def enqueue(
        self,
        name: str,
        action: Callable[[], Any],
        token: GenerationToken | None = None,
    ) -> DeferredTask:
        task = DeferredTask(name=name, token=token or self._guard.capture(), action=action)
        self._tasks.append(task)
        return task

    async def drain(self) -> DrainReport:
        """Run queued tasks in order; drop those from a superseded generation."""
        executed: list[str] = []
        dropped: list[str] = []
        while self._tasks:
            task = self._tasks.popleft()
            if not self._guard.is_current(task.token):
                logger.info(
                    "deferred_task_dropped",
                    extra={"task": task.name, "captured_generation": task.token.generation},
                )
                dropped.append(task.name)
                continue
            result = task.action()
            if inspect.isawaitable(result):
                await result
            executed.append(task.name)
        return DrainReport(executed=tuple(executed), dropped=tuple(dropped))
