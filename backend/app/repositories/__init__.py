"""Repository abstractions for database interactions."""

from .order_repository import OrderRepository
from .relay_repository import RelayJobRepository

__all__ = [
    "OrderRepository",
    "RelayJobRepository",
]
