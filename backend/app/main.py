from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query
from loguru import logger

from ingestion.opensea_sync import SYNC_ERRORS, sync_opensea_orders
from ingestion.seaport_sync import sync_seaport_orders, sync_seaport_window

from . import schemas
from .core.config import settings
from .db import get_db, init_db
from .services.order_service import OrderQuery, OrderService


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Create the order tables when the API boots."""

    init_db()
    yield


app = FastAPI(title="Order Relayer API", version="0.1.0", debug=settings.debug, lifespan=lifespan)


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


def _order_query(
    *,
    target: Annotated[str | None, Query(description="Token contract address")] = None,
    maker: Annotated[str | None, Query(description="Maker address")] = None,
    source: Annotated[str | None, Query(description="Upstream marketplace tag")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> OrderQuery:
    return OrderQuery(target=target, maker=maker, source=source, limit=limit, offset=offset)


def _order_service(db=Depends(get_db)) -> OrderService:
    return OrderService(db)


def _opensea_sync() -> Callable[..., str]:
    return sync_opensea_orders


def _seaport_sync() -> Callable[..., None]:
    return sync_seaport_orders


def _seaport_window_sync() -> Callable[..., str | None]:
    return sync_seaport_window


@app.get("/orders", response_model=schemas.OrderList, tags=["orders"])
def list_orders(
    *,
    query: OrderQuery = Depends(_order_query),
    service: OrderService = Depends(_order_service),
):
    """List stored orders, newest first."""

    result = service.list_orders(query)
    return schemas.OrderList(total=result.total, items=list(result.orders))


@app.get("/orders/{order_hash}", response_model=schemas.Order, tags=["orders"])
def get_order(order_hash: str, service: OrderService = Depends(_order_service)):
    order = service.get_order(order_hash)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@app.post("/sync/opensea", response_model=schemas.OpenSeaSyncResult, tags=["sync"])
def trigger_opensea_sync(
    request: schemas.OpenSeaSyncRequest,
    run_sync: Callable[..., str] = Depends(_opensea_sync),
):
    """Run one Wyvern sync and return the resume point for the next run."""

    try:
        last_created_date = run_sync(
            request.listed_after,
            request.listed_before,
            backfill=request.backfill,
            once=request.once,
            offset=request.offset,
            limit=request.limit,
        )
    except SYNC_ERRORS as exc:
        logger.error("OpenSea sync failed: {}", exc)
        raise HTTPException(status_code=502, detail=f"OpenSea sync failed: {exc}") from exc
    return schemas.OpenSeaSyncResult(last_created_date=last_created_date)


@app.post("/sync/seaport", response_model=schemas.SyncCompleted, tags=["sync"])
def trigger_seaport_sync(run_sync: Callable[..., None] = Depends(_seaport_sync)):
    """Drain Seaport listings until already-stored history is reached."""

    try:
        run_sync()
    except SYNC_ERRORS as exc:
        logger.error("Seaport sync failed: {}", exc)
        raise HTTPException(status_code=502, detail=f"Seaport sync failed: {exc}") from exc
    return schemas.SyncCompleted()


@app.post("/sync/seaport/window", response_model=schemas.SeaportWindowResult, tags=["sync"])
def trigger_seaport_window_sync(
    request: schemas.SeaportWindowRequest,
    run_sync: Callable[..., str | None] = Depends(_seaport_window_sync),
):
    """Fetch one page of a Seaport time window and return the next cursor."""

    try:
        next_cursor = run_sync(request.from_timestamp, request.to_timestamp, request.cursor)
    except SYNC_ERRORS as exc:
        logger.error("Seaport window sync failed: {}", exc)
        raise HTTPException(status_code=502, detail=f"Seaport window sync failed: {exc}") from exc
    return schemas.SeaportWindowResult(next_cursor=next_cursor)
