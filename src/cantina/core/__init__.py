"""Core order storage, projection, and runtime helpers."""

from .logging import ensure_runtime_dirs, log_event
from .models import Order, OrderStatus
from .store import OrderStore

__all__ = ["Order", "OrderStatus", "OrderStore", "ensure_runtime_dirs", "log_event"]
