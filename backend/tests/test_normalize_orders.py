from __future__ import annotations

from datetime import datetime, timezone

from app.domain import SEAPORT_KIND, WYVERN_V23_KIND
from ingestion.normalize import SeaportOrderParser, WyvernOrderParser, parse_created_date


def test_wyvern_parser_uses_asset_contract(wyvern_order_payload):
    parsed = WyvernOrderParser().parse(wyvern_order_payload)

    assert parsed is not None
    assert parsed.kind == WYVERN_V23_KIND
    assert parsed.contract == "0x7bd29408f11d2bfc23c34f18275bbf23bb716bc7"
    assert parsed.params["maker"] == "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
    assert parsed.params["makerRelayerFee"] == 250
    assert parsed.params["howToCall"] == 1
    assert "nonce" not in parsed.params


def test_wyvern_parser_direct_call_targets_token_contract(wyvern_order_payload):
    wyvern_order_payload.pop("asset")
    wyvern_order_payload["how_to_call"] = 0
    wyvern_order_payload["target"] = "0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D"

    parsed = WyvernOrderParser().parse(wyvern_order_payload)

    assert parsed is not None
    assert parsed.contract == "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d"


def test_wyvern_parser_carries_nonce(wyvern_order_payload):
    wyvern_order_payload["nonce"] = 3

    parsed = WyvernOrderParser().parse(wyvern_order_payload)

    assert parsed is not None
    assert parsed.params["nonce"] == 3


def test_wyvern_parser_rejects_unsigned_orders(wyvern_order_payload):
    wyvern_order_payload["r"] = None

    assert WyvernOrderParser().parse(wyvern_order_payload) is None


def test_wyvern_parser_rejects_delegated_call_without_asset(wyvern_order_payload):
    wyvern_order_payload.pop("asset")

    assert WyvernOrderParser().parse(wyvern_order_payload) is None


def test_wyvern_parser_rejects_invalid_payload():
    assert WyvernOrderParser().parse({"prefixed_hash": "0x1"}) is None


def test_seaport_parser_builds_single_token_order(seaport_order_payload):
    parsed = SeaportOrderParser().parse(seaport_order_payload)

    assert parsed is not None
    assert parsed.kind == SEAPORT_KIND
    assert parsed.contract == "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d"
    assert parsed.params["kind"] == "single-token"
    assert parsed.params["startTime"] == 1656662400
    assert parsed.params["counter"] == "0"
    assert len(parsed.params["consideration"]) == 2
    assert parsed.params["consideration"][1]["recipient"] == "0x8de9c5a032463c561423387a9648c5c7bcc5bc90"


def test_seaport_parser_marks_criteria_offers_contract_wide(seaport_order_payload):
    seaport_order_payload["protocol_data"]["parameters"]["offer"][0]["itemType"] = 4

    parsed = SeaportOrderParser().parse(seaport_order_payload)

    assert parsed is not None
    assert parsed.params["kind"] == "contract-wide"


def test_seaport_parser_rejects_bundles_and_currency_offers(seaport_order_payload):
    offer = seaport_order_payload["protocol_data"]["parameters"]["offer"]
    bundle = {**seaport_order_payload}
    bundle["protocol_data"] = {
        **seaport_order_payload["protocol_data"],
        "parameters": {
            **seaport_order_payload["protocol_data"]["parameters"],
            "offer": offer + offer,
        },
    }
    assert SeaportOrderParser().parse(bundle) is None

    offer[0]["itemType"] = 1
    assert SeaportOrderParser().parse(seaport_order_payload) is None


def test_seaport_parser_rejects_missing_signature(seaport_order_payload):
    seaport_order_payload["protocol_data"]["signature"] = None

    assert SeaportOrderParser().parse(seaport_order_payload) is None


def test_parse_created_date_defaults_to_utc():
    assert parse_created_date("2022-03-01T12:00:00.000000") == datetime(
        2022, 3, 1, 12, tzinfo=timezone.utc
    )
    assert parse_created_date("not a date") is None
    assert parse_created_date(None) is None
