from __future__ import annotations

from collections.abc import Callable
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.db import SessionLocal

from .sinks import DatabaseOrderStore, DatabaseRelayQueue, SessionScope


def session_scope_for(factory: Callable[[], Session]) -> SessionScope:
    @contextmanager
    def scope():
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return scope


session_scope = session_scope_for(SessionLocal)


def default_store() -> DatabaseOrderStore:
    return DatabaseOrderStore(session_scope)


def default_queue(settings: Settings) -> DatabaseRelayQueue:
    return DatabaseRelayQueue(session_scope, delay_seconds=settings.relay_delay_seconds)


def format_timestamp(value: int | None) -> str | None:
    """Render unix seconds as ``YYYY-MM-DD HH:MM:SS`` (UTC) for log lines."""

    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def now_timestamp() -> int:
    return int(datetime.now(timezone.utc).timestamp())
