"""Typed domain representations shared by ingestion, persistence, and APIs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


WYVERN_V23_KIND = "wyvern-v2.3"
SEAPORT_KIND = "seaport"


@dataclass(frozen=True, slots=True)
class NormalizedOrder:
    """Protocol-level order produced by a marketplace parser."""

    kind: str
    contract: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_envelope(self) -> RelayEnvelope:
        return RelayEnvelope(kind=self.kind, data=self.params)


@dataclass(frozen=True, slots=True)
class RelayEnvelope:
    """Unit forwarded to the downstream relay queue."""

    kind: str
    data: dict[str, Any]


@dataclass(slots=True)
class OrderRow:
    """Row persisted to the ``orders`` table; ``hash`` is the dedup key."""

    hash: str
    target: str
    maker: str
    created_at: datetime
    data: dict[str, Any]
    source: str
    delayed: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "target": self.target,
            "maker": self.maker,
            "created_at": self.created_at,
            "data": self.data,
            "delayed": self.delayed,
            "source": self.source,
        }
