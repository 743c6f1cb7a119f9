from __future__ import annotations

import httpx
import pytest

from conftest import MemoryStore, ScriptedClient, make_seaport_orders
from ingestion.pagination import CursorPosition, MalformedPageError, OrdersPage
from ingestion.seaport_sync import build_seaport_row, sync_seaport_orders, sync_seaport_window


def _page(template, count, *, start=0, next_cursor=None) -> OrdersPage:
    return OrdersPage(orders=make_seaport_orders(template, count, start=start), next_cursor=next_cursor)


def test_drain_follows_cursor_until_history_is_reached(
    seaport_order_payload, memory_queue, test_settings
):
    store = MemoryStore(existing={f"0x{index:064x}" for index in range(100, 150)})
    client = ScriptedClient(
        [
            _page(seaport_order_payload, 50, next_cursor="cj0xJnA9MjAyMg=="),
            _page(seaport_order_payload, 50, start=50, next_cursor="cj0xJnA9MjAyMw=="),
            _page(seaport_order_payload, 50, start=100, next_cursor="cj0xJnA9MjAyNA=="),
            _page(seaport_order_payload, 50, start=150, next_cursor="cj0xJnA9MjAyNQ=="),
        ]
    )

    sync_seaport_orders(client=client, store=store, queue=memory_queue, settings=test_settings)

    assert [call["position"] for call in client.calls] == [
        CursorPosition(None),
        CursorPosition("cj0xJnA9MjAyMg=="),
        CursorPosition("cj0xJnA9MjAyMw=="),
    ]
    assert all(call["limit"] == 50 for call in client.calls)
    assert len(store.rows) == 100
    # Parsed orders of the all-duplicate page are still forwarded downstream.
    assert len(memory_queue.envelopes) == 150


def test_drain_stops_immediately_when_store_is_current(
    seaport_order_payload, memory_queue, test_settings
):
    store = MemoryStore(existing={f"0x{index:064x}" for index in range(50)})
    client = ScriptedClient([_page(seaport_order_payload, 50, next_cursor="next")])

    sync_seaport_orders(client=client, store=store, queue=memory_queue, settings=test_settings)

    assert len(client.calls) == 1
    assert store.rows == {}


def test_drain_stops_when_cursor_runs_out(seaport_order_payload, memory_store, memory_queue, test_settings):
    client = ScriptedClient([_page(seaport_order_payload, 12)])

    sync_seaport_orders(client=client, store=memory_store, queue=memory_queue, settings=test_settings)

    assert len(client.calls) == 1
    assert len(memory_store.rows) == 12


def test_drain_stops_on_empty_page(memory_store, memory_queue, test_settings):
    client = ScriptedClient([OrdersPage(orders=[], next_cursor="next")])

    sync_seaport_orders(client=client, store=memory_store, queue=memory_queue, settings=test_settings)

    assert len(client.calls) == 1
    assert memory_queue.batches == []


def test_drain_propagates_fetch_errors(seaport_order_payload, memory_store, memory_queue, test_settings):
    client = ScriptedClient(
        [_page(seaport_order_payload, 50, next_cursor="next"), httpx.ConnectError("refused")]
    )

    with pytest.raises(httpx.ConnectError):
        sync_seaport_orders(client=client, store=memory_store, queue=memory_queue, settings=test_settings)

    assert len(memory_store.rows) == 50


def test_window_fetches_one_page_and_returns_next_cursor(
    seaport_order_payload, memory_store, memory_queue, test_settings
):
    client = ScriptedClient([_page(seaport_order_payload, 50, next_cursor="cursor-2")])

    next_cursor = sync_seaport_window(
        1656633600,
        1656720000,
        "cursor-1",
        client=client,
        store=memory_store,
        queue=memory_queue,
        settings=test_settings,
    )

    assert next_cursor == "cursor-2"
    assert client.calls == [
        {
            "position": CursorPosition("cursor-1"),
            "limit": 50,
            "listed_after": 1656633600,
            "listed_before": 1656720000,
        }
    ]
    assert len(memory_store.rows) == 50
    assert all(row.delayed is False for row in memory_store.rows.values())
    assert {envelope.kind for envelope in memory_queue.envelopes} == {"seaport"}


def test_window_returns_none_at_end_of_window(memory_store, memory_queue, test_settings):
    client = ScriptedClient([OrdersPage(orders=[], next_cursor=None)])

    assert (
        sync_seaport_window(client=client, store=memory_store, queue=memory_queue, settings=test_settings)
        is None
    )
    assert client.calls[0]["listed_after"] is None


def test_window_propagates_errors(memory_store, memory_queue, test_settings):
    client = ScriptedClient([httpx.ReadTimeout("timed out")])

    with pytest.raises(httpx.ReadTimeout):
        sync_seaport_window(1, 2, client=client, store=memory_store, queue=memory_queue, settings=test_settings)


def test_row_falls_back_to_offered_token(seaport_order_payload):
    row = build_seaport_row(seaport_order_payload, None, source="opensea")

    assert row.hash == seaport_order_payload["order_hash"].lower()
    assert row.target == "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d"
    assert row.maker == "0x6f3b6c1a5e8d2c4b9a7e0f1d3c5b7a9e2d4f6a8c"
    assert row.data == seaport_order_payload["protocol_data"]
    assert row.delayed is False
    assert row.source == "opensea"


def test_row_without_offer_fails_the_page(seaport_order_payload):
    seaport_order_payload["protocol_data"]["parameters"]["offer"] = []

    with pytest.raises(MalformedPageError):
        build_seaport_row(seaport_order_payload, None, source="opensea")
