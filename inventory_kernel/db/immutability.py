"""
Append-only count history, enforced at the ORM layer.

A location's visible round status only says counted / not counted, but
every submission is kept: a disputed round can always be re-derived from
its count events.  Once flushed, a CountEvent can be neither updated nor
deleted; a correction is a new event with the next ``attempt``.

    register_immutability_listeners()    # done by init_engine_from_url
    unregister_immutability_listeners()  # tests only
"""

from collections.abc import Callable

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_BLOCKED_OPERATIONS = {
    "before_update": ("UPDATE", "count events are append-only; submit a new count instead"),
    "before_delete": ("DELETE", "count events are never deleted"),
}


def _blocker(operation: str, reason: str) -> Callable:
    def block(mapper, connection, target):
        entity_type = type(target).__name__
        logger.error(
            "immutability_violation_blocked",
            extra={
                "entity_type": entity_type,
                "entity_id": str(target.id),
                "operation": operation,
            },
        )
        raise ImmutabilityViolationError(
            entity_type=entity_type, entity_id=str(target.id), reason=reason
        )

    return block


# Built once so event.contains/remove see the same function objects
_LISTENERS: dict[str, Callable] = {
    hook: _blocker(operation, reason)
    for hook, (operation, reason) in _BLOCKED_OPERATIONS.items()
}


def _count_event_model():
    from inventory_kernel.models.count_event import CountEvent

    return CountEvent


def register_immutability_listeners() -> None:
    """Idempotent."""
    model = _count_event_model()
    for hook, listener in _LISTENERS.items():
        if not event.contains(model, hook, listener):
            event.listen(model, hook, listener)


def unregister_immutability_listeners() -> None:
    model = _count_event_model()
    for hook, listener in _LISTENERS.items():
        if event.contains(model, hook, listener):
            event.remove(model, hook, listener)
