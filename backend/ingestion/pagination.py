"""Page-level plumbing shared by the offset and cursor sync loops.

A page is fetched by a marketplace client, its orders are parsed with
bounded concurrency, one row per raw order is written to the order store and
the successfully parsed orders are forwarded to the relay queue.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger

from app.domain import NormalizedOrder, OrderRow

if TYPE_CHECKING:
    from .normalize import OrderParser
    from .sinks import OrderStore, RelayQueue


RawOrder = dict[str, Any]
RowBuilder = Callable[[RawOrder, NormalizedOrder | None], OrderRow]


class MalformedPageError(RuntimeError):
    """Raised when an orders endpoint answers 2xx with an unusable body."""


@dataclass(frozen=True, slots=True)
class OffsetPosition:
    offset: int = 0

    def advance(self, by: int) -> OffsetPosition:
        return OffsetPosition(self.offset + by)


@dataclass(frozen=True, slots=True)
class CursorPosition:
    cursor: str | None = None


@dataclass(slots=True)
class OrdersPage:
    """Raw orders of one page, newest first, plus the upstream continuation token."""

    orders: list[RawOrder] = field(default_factory=list)
    next_cursor: str | None = None

    @property
    def last_created_date(self) -> str | None:
        if not self.orders:
            return None
        value = self.orders[-1].get("created_date")
        return str(value) if value else None


@dataclass(slots=True)
class PageResult:
    fetched: int
    inserted: int
    relayed: int
    last_created_date: str | None = None
    next_cursor: str | None = None


def parse_orders(
    orders: Sequence[RawOrder],
    parser: OrderParser,
    *,
    concurrency: int,
) -> list[tuple[RawOrder, NormalizedOrder | None]]:
    """Parse ``orders`` with at most ``concurrency`` parses in flight.

    Results are drained on the calling thread in completion order, so the
    returned pairs do not follow the page order.
    """

    if not orders:
        return []

    results: list[tuple[RawOrder, NormalizedOrder | None]] = []
    with ThreadPoolExecutor(max_workers=min(concurrency, len(orders))) as executor:
        futures = {executor.submit(parser.parse, order): order for order in orders}
        for future in as_completed(futures):
            results.append((futures[future], future.result()))
    return results


def process_page(
    page: OrdersPage,
    *,
    parser: OrderParser,
    build_row: RowBuilder,
    store: OrderStore,
    queue: RelayQueue,
    concurrency: int = 20,
    relay_delayed: bool = True,
) -> PageResult:
    rows: list[OrderRow] = []
    parsed_orders: list[NormalizedOrder] = []
    for raw_order, parsed in parse_orders(page.orders, parser, concurrency=concurrency):
        if parsed is not None:
            parsed_orders.append(parsed)
        rows.append(build_row(raw_order, parsed))

    inserted = store.insert_orders(rows) if rows else []
    if parsed_orders:
        queue.enqueue([order.to_envelope() for order in parsed_orders], delayed=relay_delayed)

    if len(parsed_orders) < len(rows):
        logger.debug(
            "{} of {} {} orders failed to parse", len(rows) - len(parsed_orders), len(rows), parser.kind
        )

    return PageResult(
        fetched=len(page.orders),
        inserted=len(inserted),
        relayed=len(parsed_orders),
        last_created_date=page.last_created_date,
        next_cursor=page.next_cursor,
    )


def require_field(raw_order: RawOrder, *path: str) -> Any:
    """Return a nested identity field or fail the page when it is missing."""

    value: Any = raw_order
    for key in path:
        if not isinstance(value, dict) or not value.get(key):
            raise MalformedPageError(f"order is missing {'.'.join(path)}")
        value = value[key]
    return value
