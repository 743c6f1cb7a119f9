from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from app.core.config import Settings, get_settings

from .pagination import CursorPosition, MalformedPageError, OffsetPosition, OrdersPage


def _orders_from_payload(payload: Any, *, endpoint: str) -> list[dict[str, Any]]:
    if not isinstance(payload, dict) or not isinstance(payload.get("orders"), list):
        raise MalformedPageError(f"{endpoint} returned a body without an 'orders' list")
    orders = payload["orders"]
    if not all(isinstance(order, dict) for order in orders):
        raise MalformedPageError(f"{endpoint} returned non-object orders")
    return orders


class _MarketplaceClient:
    def __init__(
        self,
        *,
        base_url: str,
        timeout: float,
        headers: dict[str, str],
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.client = httpx.Client(
            base_url=base_url, timeout=timeout, headers=headers, transport=transport
        )

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        logger.debug("OpenSea GET {} params={}", path, params)
        response = self.client.get(path, params=params)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedPageError(f"{path} returned a non-JSON body") from exc

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class OpenSeaClient(_MarketplaceClient):
    """Offset-paginated client for the Wyvern v2.3 orders endpoint."""

    def __init__(
        self,
        *,
        backfill: bool = False,
        settings: Settings | None = None,
        base_url: str | None = None,
        orders_path: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        headers: dict[str, str] = {}
        api_key = settings.opensea_api_key(backfill=backfill)
        if api_key:
            headers["x-api-key"] = api_key
        super().__init__(
            base_url=base_url or settings.resolved_opensea_base_url,
            timeout=timeout or settings.opensea_request_timeout,
            headers=headers,
            transport=transport,
        )
        self.orders_path = orders_path or settings.opensea_orders_path

    @staticmethod
    def build_params(
        *,
        offset: int,
        limit: int,
        listed_after: int | None = None,
        listed_before: int | None = None,
        order_direction: str = "desc",
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "bundled": "false",
            "include_bundled": "false",
            "include_invalid": "false",
            "side": 1,
            "order_by": "created_date",
            "order_direction": order_direction,
            "offset": offset,
            "limit": limit,
        }
        # Zero means "unbounded" for both window edges.
        if listed_after:
            params["listed_after"] = listed_after
        if listed_before:
            params["listed_before"] = listed_before
        return params

    def fetch_page(
        self,
        position: OffsetPosition,
        *,
        limit: int,
        listed_after: int | None = None,
        listed_before: int | None = None,
    ) -> OrdersPage:
        params = self.build_params(
            offset=position.offset,
            limit=limit,
            listed_after=listed_after,
            listed_before=listed_before,
        )
        payload = self._get(self.orders_path, params)
        return OrdersPage(orders=_orders_from_payload(payload, endpoint=self.orders_path))


class SeaportClient(_MarketplaceClient):
    """Cursor-paginated client for the Seaport listings endpoint."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        base_url: str | None = None,
        listings_path: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        headers = {"user-agent": settings.seaport_user_agent}
        if settings.seaport_api_key:
            headers["x-api-key"] = settings.seaport_api_key
        super().__init__(
            base_url=base_url or settings.resolved_opensea_base_url,
            timeout=timeout or settings.seaport_request_timeout,
            headers=headers,
            transport=transport,
        )
        self.listings_path = listings_path or settings.resolved_seaport_listings_path

    @staticmethod
    def build_params(
        *,
        limit: int,
        cursor: str | None = None,
        listed_after: int | None = None,
        listed_before: int | None = None,
        order_direction: str = "desc",
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "order_by": "created_date",
            "order_direction": order_direction,
            "limit": limit,
        }
        if cursor:
            params["cursor"] = cursor
        if listed_after:
            params["listed_after"] = listed_after
        if listed_before:
            params["listed_before"] = listed_before
        return params

    def fetch_page(
        self,
        position: CursorPosition,
        *,
        limit: int,
        listed_after: int | None = None,
        listed_before: int | None = None,
    ) -> OrdersPage:
        params = self.build_params(
            limit=limit,
            cursor=position.cursor,
            listed_after=listed_after,
            listed_before=listed_before,
        )
        payload = self._get(self.listings_path, params)
        orders = _orders_from_payload(payload, endpoint=self.listings_path)
        next_cursor = payload.get("next")
        return OrdersPage(orders=orders, next_cursor=next_cursor if isinstance(next_cursor, str) else None)
