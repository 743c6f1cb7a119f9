"""Domain models representing normalized marketplace orders."""

from .models import (
    SEAPORT_KIND,
    WYVERN_V23_KIND,
    NormalizedOrder,
    OrderRow,
    RelayEnvelope,
)

__all__ = [
    "SEAPORT_KIND",
    "WYVERN_V23_KIND",
    "NormalizedOrder",
    "OrderRow",
    "RelayEnvelope",
]
