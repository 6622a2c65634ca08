"""Route group exports."""

from . import dispatch, health, multi_orders

__all__ = ["dispatch", "health", "multi_orders"]
