"""Write-side collaborators of the sync loops: the order store and relay queue."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import ContextManager, Protocol

from sqlalchemy.orm import Session

from app.domain import OrderRow, RelayEnvelope
from app.repositories import OrderRepository, RelayJobRepository


class OrderStore(Protocol):
    def insert_orders(self, rows: Sequence[OrderRow]) -> list[str]:
        """Insert rows ignoring hash conflicts; return the hashes newly stored."""
        ...


class RelayQueue(Protocol):
    def enqueue(self, envelopes: Sequence[RelayEnvelope], *, delayed: bool) -> None: ...


SessionScope = Callable[[], ContextManager[Session]]


class DatabaseOrderStore:
    """Order store committing each batch in its own transaction."""

    def __init__(self, session_scope: SessionScope) -> None:
        self._session_scope = session_scope

    def insert_orders(self, rows: Sequence[OrderRow]) -> list[str]:
        with self._session_scope() as session:
            return OrderRepository(session).insert_orders(rows)


class DatabaseRelayQueue:
    """Relay queue backed by the ``relay_jobs`` outbox table."""

    def __init__(self, session_scope: SessionScope, *, delay_seconds: int = 0) -> None:
        self._session_scope = session_scope
        self._delay_seconds = delay_seconds

    def enqueue(self, envelopes: Sequence[RelayEnvelope], *, delayed: bool) -> None:
        with self._session_scope() as session:
            RelayJobRepository(session, delay_seconds=self._delay_seconds).enqueue(
                envelopes, delayed=delayed
            )
