"""Offset-paginated sync of OpenSea Wyvern v2.3 orders.

Three modes share one loop:

* realtime (default): tail the newest orders, stop after
  ``realtime_max_orders`` and hand the last seen ``created_date`` back to the
  scheduler. Upstream or store failures end the run early instead of raising.
* backfill: walk a historical ``listed_after``/``listed_before`` window until
  the API runs dry. Failures propagate.
* once: fetch a single uncached page of the latest listings.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from contextlib import ExitStack
from functools import partial

import httpx
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import Settings, get_settings
from app.domain import NormalizedOrder, OrderRow

from .client import OpenSeaClient
from .normalize import OrderParser, WyvernOrderParser, parse_created_date
from .pagination import MalformedPageError, OffsetPosition, RawOrder, process_page, require_field
from .payloads import fallback_wyvern_target
from .service import default_queue, default_store, now_timestamp
from .sinks import OrderStore, RelayQueue


SYNC_ERRORS = (httpx.HTTPError, MalformedPageError, SQLAlchemyError)


def build_wyvern_row(
    raw_order: RawOrder,
    parsed: NormalizedOrder | None,
    *,
    delayed: bool,
    source: str,
) -> OrderRow:
    order_hash = str(require_field(raw_order, "prefixed_hash")).lower()
    maker = str(require_field(raw_order, "maker", "address")).lower()
    created_at = parse_created_date(require_field(raw_order, "created_date"))
    if created_at is None:
        raise MalformedPageError(f"order {order_hash} has an invalid created_date")

    target = parsed.contract if parsed else fallback_wyvern_target(raw_order)
    if not target:
        raise MalformedPageError(f"order {order_hash} has no target to fall back to")

    # The embedded asset document is large and not needed for replay.
    data = {key: value for key, value in raw_order.items() if key != "asset"}
    if parsed is not None and "nonce" in parsed.params:
        data["nonce"] = parsed.params["nonce"]

    return OrderRow(
        hash=order_hash,
        target=target.lower(),
        maker=maker,
        created_at=created_at,
        data=data,
        delayed=delayed,
        source=source,
    )


def sync_opensea_orders(
    listed_after: int,
    listed_before: int = 0,
    backfill: bool = False,
    once: bool = False,
    offset: int = 0,
    limit: int | None = None,
    *,
    client: OpenSeaClient | None = None,
    parser: OrderParser | None = None,
    store: OrderStore | None = None,
    queue: RelayQueue | None = None,
    sleep: Callable[[float], None] = time.sleep,
    settings: Settings | None = None,
) -> str:
    """Sync Wyvern orders page by page and return the last seen ``created_date``.

    The returned value is the ``created_date`` of the last order of the last
    successfully processed page, or ``""`` when nothing was processed.
    Realtime callers use it as the lower bound of their next invocation.
    """

    settings = settings or get_settings()
    limit = limit or settings.sync_page_size
    parser = parser or WyvernOrderParser()
    store = store or default_store()
    queue = queue or default_queue(settings)
    build_row = partial(build_wyvern_row, delayed=not once, source=settings.order_source)

    logger.info("({}, {}) Fetching orders from OpenSea", listed_after, listed_before)

    position = OffsetPosition(offset)
    num_orders = 0
    last_created_date = ""

    with ExitStack() as stack:
        if client is None:
            client = stack.enter_context(OpenSeaClient(backfill=backfill, settings=settings))

        while True:
            try:
                page = client.fetch_page(
                    position,
                    limit=limit,
                    listed_after=None if once else listed_after,
                    # A moving upper bound defeats the API cache for one-shot fetches.
                    listed_before=now_timestamp() if once else listed_before,
                )
                result = process_page(
                    page,
                    parser=parser,
                    build_row=build_row,
                    store=store,
                    queue=queue,
                    concurrency=settings.sync_parse_concurrency,
                )
            except SYNC_ERRORS as exc:
                if backfill:
                    raise
                logger.info(
                    "({}, {}) Got {} orders error={}", listed_after, listed_before, num_orders, exc
                )
                return last_created_date

            if backfill and result.inserted:
                logger.warning(
                    "OpenSea ({}, {}) Backfilled {} new orders",
                    listed_after,
                    listed_before,
                    result.inserted,
                )

            num_orders += result.fetched
            if result.last_created_date:
                last_created_date = result.last_created_date

            logger.info(
                "{}{} orders at offset={} ({} relayed)",
                "[LIVE] " if once else "",
                result.fetched,
                position.offset,
                result.relayed,
            )

            if once or result.fetched < limit:
                break
            # Realtime runs are re-triggered by the scheduler.
            if not backfill and num_orders >= settings.realtime_max_orders:
                break

            position = position.advance(limit)
            sleep(settings.sync_rate_limit_seconds)

    logger.info(
        "FINAL - OpenSea - ({}, {}) Got {} orders up to {}",
        listed_after,
        listed_before,
        num_orders,
        last_created_date,
    )
    return last_created_date
