"""Outbox of relay jobs consumed by the downstream order processor."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain import RelayEnvelope
from app.models import RelayJob, utcnow


class RelayJobRepository:
    def __init__(self, session: Session, *, delay_seconds: int = 0) -> None:
        self._session = session
        self._delay = timedelta(seconds=delay_seconds)

    def enqueue(self, envelopes: Sequence[RelayEnvelope], *, delayed: bool) -> list[RelayJob]:
        now = utcnow()
        available_at = now + self._delay if delayed else now
        jobs = [
            RelayJob(
                kind=envelope.kind,
                payload=envelope.data,
                delayed=delayed,
                available_at=available_at,
                created_at=now,
            )
            for envelope in envelopes
        ]
        self._session.add_all(jobs)
        self._session.flush()
        return jobs

    def list_available(self, *, now: datetime | None = None, limit: int = 100) -> list[RelayJob]:
        query = (
            select(RelayJob)
            .where(RelayJob.available_at <= (now or utcnow()))
            .order_by(RelayJob.id)
            .limit(limit)
        )
        return list(self._session.execute(query).scalars().all())
