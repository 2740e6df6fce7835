"""Read-only query selectors returning DTOs."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.location_selector import LocationSelector

__all__ = ["BaseSelector", "LocationSelector"]
