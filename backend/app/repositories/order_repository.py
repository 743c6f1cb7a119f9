"""Order persistence helpers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.domain import OrderRow
from app.models import Order


_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class OrderRepository:
    """Encapsulate writes and reads against the ``orders`` table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _insert(self):
        dialect = self._session.get_bind().dialect.name
        try:
            return _DIALECT_INSERTS[dialect](Order)
        except KeyError:
            raise NotImplementedError(
                f"Conflict-ignoring inserts are not supported on {dialect}"
            ) from None

    # ------------------------------------------------------------------
    # Mutations

    def insert_orders(self, rows: Sequence[OrderRow]) -> list[str]:
        """Insert ``rows``, skipping hash conflicts; return the hashes actually inserted."""

        if not rows:
            return []

        statement = (
            self._insert()
            .values([row.as_dict() for row in rows])
            .on_conflict_do_nothing(index_elements=[Order.hash])
            .returning(Order.hash)
        )
        return list(self._session.execute(statement).scalars().all())

    # ------------------------------------------------------------------
    # Queries

    def get_order(self, order_hash: str) -> Order | None:
        return self._session.get(Order, order_hash.lower())

    def list_orders(
        self,
        *,
        target: str | None = None,
        maker: str | None = None,
        source: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        filters: list[Any] = []
        if target:
            filters.append(Order.target == target.lower())
        if maker:
            filters.append(Order.maker == maker.lower())
        if source:
            filters.append(Order.source == source)

        query = (
            select(Order)
            .where(*filters)
            .order_by(desc(Order.created_at))
            .limit(limit)
            .offset(offset)
        )
        total_query = select(func.count(Order.hash)).where(*filters)

        orders = list(self._session.execute(query).scalars().all())
        total = self._session.execute(total_query).scalar_one()
        return orders, total
