from __future__ import annotations

from contextlib import ExitStack
from functools import partial

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import NormalizedOrder, OrderRow

from .client import SeaportClient
from .normalize import OrderParser, SeaportOrderParser, parse_created_date
from .pagination import CursorPosition, MalformedPageError, RawOrder, process_page, require_field
from .payloads import fallback_seaport_target
from .service import default_queue, default_store, format_timestamp
from .sinks import OrderStore, RelayQueue


def build_seaport_row(raw_order: RawOrder, parsed: NormalizedOrder | None, *, source: str) -> OrderRow:
    order_hash = str(require_field(raw_order, "order_hash")).lower()
    maker = str(require_field(raw_order, "maker", "address")).lower()
    created_at = parse_created_date(require_field(raw_order, "created_date"))
    if created_at is None:
        raise MalformedPageError(f"order {order_hash} has an invalid created_date")

    target = parsed.contract if parsed else fallback_seaport_target(raw_order)
    if not target:
        raise MalformedPageError(f"order {order_hash} has no offer item to derive a target from")

    return OrderRow(
        hash=order_hash,
        target=target.lower(),
        maker=maker,
        created_at=created_at,
        data=require_field(raw_order, "protocol_data"),
        source=source,
    )


def sync_seaport_orders(
    *,
    client: SeaportClient | None = None,
    parser: OrderParser | None = None,
    store: OrderStore | None = None,
    queue: RelayQueue | None = None,
    settings: Settings | None = None,
) -> None:
    """Drain Seaport listings newest first until a page holds nothing new.

    A page whose rows all collide with stored orders means the sync has
    caught up with history. Every error propagates.
    """

    settings = settings or get_settings()
    parser = parser or SeaportOrderParser()
    store = store or default_store()
    queue = queue or default_queue(settings)
    build_row = partial(build_seaport_row, source=settings.order_source)

    logger.info("Seaport Fetch orders")

    position = CursorPosition()
    with ExitStack() as stack:
        if client is None:
            client = stack.enter_context(SeaportClient(settings=settings))

        while True:
            page = client.fetch_page(position, limit=settings.sync_page_size)
            result = process_page(
                page,
                parser=parser,
                build_row=build_row,
                store=store,
                queue=queue,
                concurrency=settings.sync_parse_concurrency,
            )
            logger.info(
                "Seaport - DONE - cursor={} Got {} orders, relayed {}",
                result.next_cursor,
                result.fetched,
                result.relayed,
            )

            if result.inserted == 0:
                if result.last_created_date:
                    logger.info(
                        "Seaport empty result cursor={}, reached to={}",
                        result.next_cursor,
                        result.last_created_date,
                    )
                return
            if not result.next_cursor:
                logger.info("Seaport listings exhausted after {} orders", result.fetched)
                return

            position = CursorPosition(result.next_cursor)


def sync_seaport_window(
    from_timestamp: int | None = None,
    to_timestamp: int | None = None,
    cursor: str | None = None,
    *,
    client: SeaportClient | None = None,
    parser: OrderParser | None = None,
    store: OrderStore | None = None,
    queue: RelayQueue | None = None,
    settings: Settings | None = None,
) -> str | None:
    """Fetch one page of listings created inside a time window.

    Returns the upstream ``next`` cursor so the caller can schedule the
    following slice, or ``None`` when the window is exhausted.
    """

    settings = settings or get_settings()
    parser = parser or SeaportOrderParser()
    store = store or default_store()
    queue = queue or default_queue(settings)

    window_from = format_timestamp(from_timestamp)
    window_to = format_timestamp(to_timestamp)
    logger.info(
        "Seaport Fetch all orders fromTimestamp={}, toTimestamp={}, cursor={}",
        window_from,
        window_to,
        cursor,
    )

    with ExitStack() as stack:
        if client is None:
            client = stack.enter_context(SeaportClient(settings=settings))

        page = client.fetch_page(
            CursorPosition(cursor),
            limit=settings.sync_page_size,
            listed_after=from_timestamp,
            listed_before=to_timestamp,
        )
        result = process_page(
            page,
            parser=parser,
            build_row=partial(build_seaport_row, source=settings.order_source),
            store=store,
            queue=queue,
            concurrency=settings.sync_parse_concurrency,
        )

    if result.inserted:
        logger.info(
            "Seaport - fromTimestamp={}, toTimestamp={}, New listings found={}, cursor={}",
            window_from,
            window_to,
            result.inserted,
            cursor,
        )
    logger.info(
        "Seaport - fromTimestamp={}, toTimestamp={}, newCursor={} Got {} orders",
        window_from,
        window_to,
        result.next_cursor,
        result.fetched,
    )
    return result.next_cursor
