"""ORM models for the inventory audit."""

from inventory_kernel.models.count_event import CountEvent
from inventory_kernel.models.location import Location
from inventory_kernel.models.reference import InventoryReference
from inventory_kernel.models.worker import CROSS_SHIFT, Worker

__all__ = [
    "CROSS_SHIFT",
    "CountEvent",
    "InventoryReference",
    "Location",
    "Worker",
]
