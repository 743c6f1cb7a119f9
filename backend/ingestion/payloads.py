"""Wire models for the raw orders returned by the OpenSea APIs.

Only the fields the relayer relies on are declared; everything else the API
sends is preserved through ``extra="allow"`` so that rows keep the full
payload for audit and replay.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Account(_WireModel):
    address: str


class AssetContract(_WireModel):
    address: str


class Asset(_WireModel):
    token_id: str | None = None
    asset_contract: AssetContract | None = None


class WyvernOrderPayload(_WireModel):
    """Order returned by the ``/wyvern/v1/orders`` endpoint."""

    prefixed_hash: str
    created_date: str
    maker: Account
    target: str
    exchange: str | None = None
    taker: Account | None = None
    fee_recipient: Account | None = None
    maker_relayer_fee: int | None = None
    taker_relayer_fee: int | None = None
    maker_protocol_fee: int | None = None
    taker_protocol_fee: int | None = None
    fee_method: int | None = None
    side: int | None = None
    sale_kind: int | None = None
    how_to_call: int | None = None
    calldata: str | None = None
    replacement_pattern: str | None = None
    static_target: str | None = None
    static_extradata: str | None = None
    payment_token: str | None = None
    base_price: str | None = None
    extra: str | None = None
    listing_time: int | None = None
    expiration_time: int | None = None
    salt: str | None = None
    v: int | None = None
    r: str | None = None
    s: str | None = None
    nonce: int | None = None
    asset: Asset | None = None


class OfferItem(_WireModel):
    item_type: int = Field(alias="itemType")
    token: str
    identifier_or_criteria: str = Field(alias="identifierOrCriteria")
    start_amount: str = Field(alias="startAmount")
    end_amount: str = Field(alias="endAmount")


class ConsiderationItem(OfferItem):
    recipient: str


class SeaportParameters(_WireModel):
    offerer: str
    zone: str
    offer: list[OfferItem]
    consideration: list[ConsiderationItem]
    order_type: int = Field(alias="orderType")
    start_time: int = Field(alias="startTime")
    end_time: int = Field(alias="endTime")
    zone_hash: str = Field(alias="zoneHash")
    salt: str
    conduit_key: str = Field(alias="conduitKey")
    counter: int | str


class SeaportProtocolData(_WireModel):
    parameters: SeaportParameters
    signature: str | None = None


class SeaportOrderPayload(_WireModel):
    """Listing returned by the ``/v2/orders/{chain}/seaport/listings`` endpoint."""

    order_hash: str
    created_date: str
    maker: Account
    protocol_data: SeaportProtocolData
    protocol_address: str | None = None


def fallback_wyvern_target(raw: dict[str, Any]) -> str | None:
    target = raw.get("target")
    return target if isinstance(target, str) else None


def fallback_seaport_target(raw: dict[str, Any]) -> str | None:
    try:
        token = raw["protocol_data"]["parameters"]["offer"][0]["token"]
    except (KeyError, IndexError, TypeError):
        return None
    return token if isinstance(token, str) else None
