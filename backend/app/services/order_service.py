"""Read-side conveniences for the stored orders API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from app.repositories import OrderRepository
from app.schemas import Order


@dataclass(slots=True)
class OrderQuery:
    target: str | None = None
    maker: str | None = None
    source: str | None = None
    limit: int = 50
    offset: int = 0

    def to_repository_kwargs(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "maker": self.maker,
            "source": self.source,
            "limit": self.limit,
            "offset": self.offset,
        }


@dataclass(slots=True)
class OrderQueryResult:
    total: int
    orders: list[Order]


class OrderService:
    def __init__(self, session: Session) -> None:
        self._repository = OrderRepository(session)

    def list_orders(self, query: OrderQuery) -> OrderQueryResult:
        records, total = self._repository.list_orders(**query.to_repository_kwargs())
        return OrderQueryResult(
            total=total,
            orders=[Order.model_validate(record) for record in records],
        )

    def get_order(self, order_hash: str) -> Order | None:
        record = self._repository.get_order(order_hash)
        return Order.model_validate(record) if record else None
