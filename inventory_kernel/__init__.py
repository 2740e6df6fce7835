"""
Inventory Kernel

Core of the periodic physical inventory audit:
- Append-only count history per location and round
- Closed role set with composed read scopes
- Structured JSON logging and typed exceptions
"""

__version__ = "0.1.0"
