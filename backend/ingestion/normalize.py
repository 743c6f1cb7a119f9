from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol

from dateutil import parser as date_parser
from loguru import logger
from pydantic import ValidationError

from app.domain import SEAPORT_KIND, WYVERN_V23_KIND, NormalizedOrder

from .payloads import OfferItem, SeaportOrderPayload, WyvernOrderPayload


# Seaport item types
ERC721 = 2
ERC1155 = 3
ERC721_WITH_CRITERIA = 4
ERC1155_WITH_CRITERIA = 5

_SINGLE_TOKEN_ITEMS = {ERC721, ERC1155}
_CRITERIA_ITEMS = {ERC721_WITH_CRITERIA, ERC1155_WITH_CRITERIA}

# Wyvern how_to_call value for a direct call into the token contract
_HOW_TO_CALL_CALL = 0


class OrderParser(Protocol):
    """Turns one raw marketplace order into a protocol order, or ``None``."""

    kind: str

    def parse(self, raw_order: dict[str, Any]) -> NormalizedOrder | None: ...


def parse_created_date(value: Any) -> datetime | None:
    """Parse an upstream ``created_date``; naive values are UTC."""

    if not value:
        return None
    try:
        parsed = date_parser.isoparse(str(value))
    except (ValueError, TypeError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _address(value: str | None) -> str | None:
    return value.lower() if value else None


class WyvernOrderParser:
    kind = WYVERN_V23_KIND

    def parse(self, raw_order: dict[str, Any]) -> NormalizedOrder | None:
        try:
            payload = WyvernOrderPayload.model_validate(raw_order)
        except ValidationError as exc:
            logger.debug("Unparseable Wyvern order: {}", exc.errors(include_url=False))
            return None

        missing = [
            name
            for name in ("exchange", "calldata", "replacement_pattern", "base_price", "salt", "r", "s")
            if getattr(payload, name) is None
        ]
        if missing or payload.v is None:
            logger.debug(
                "Skipping Wyvern order {} missing {}", payload.prefixed_hash, missing or ["v"]
            )
            return None

        contract = self._contract(payload)
        if contract is None:
            logger.debug("Skipping Wyvern order {} without a token contract", payload.prefixed_hash)
            return None

        params: dict[str, Any] = {
            "exchange": _address(payload.exchange),
            "maker": _address(payload.maker.address),
            "taker": _address(payload.taker.address) if payload.taker else None,
            "makerRelayerFee": payload.maker_relayer_fee or 0,
            "takerRelayerFee": payload.taker_relayer_fee or 0,
            "feeRecipient": _address(payload.fee_recipient.address) if payload.fee_recipient else None,
            "side": payload.side,
            "saleKind": payload.sale_kind,
            "target": _address(payload.target),
            "howToCall": payload.how_to_call,
            "calldata": payload.calldata,
            "replacementPattern": payload.replacement_pattern,
            "staticTarget": _address(payload.static_target),
            "staticExtradata": payload.static_extradata,
            "paymentToken": _address(payload.payment_token),
            "basePrice": payload.base_price,
            "extra": payload.extra,
            "listingTime": payload.listing_time,
            "expirationTime": payload.expiration_time,
            "salt": payload.salt,
            "v": payload.v,
            "r": payload.r,
            "s": payload.s,
        }
        if payload.nonce is not None:
            params["nonce"] = payload.nonce

        return NormalizedOrder(kind=self.kind, contract=contract, params=params)

    @staticmethod
    def _contract(payload: WyvernOrderPayload) -> str | None:
        if payload.asset and payload.asset.asset_contract:
            return payload.asset.asset_contract.address.lower()
        if payload.how_to_call == _HOW_TO_CALL_CALL:
            return payload.target.lower()
        return None


class SeaportOrderParser:
    kind = SEAPORT_KIND

    def parse(self, raw_order: dict[str, Any]) -> NormalizedOrder | None:
        try:
            payload = SeaportOrderPayload.model_validate(raw_order)
        except ValidationError as exc:
            logger.debug("Unparseable Seaport order: {}", exc.errors(include_url=False))
            return None

        parameters = payload.protocol_data.parameters
        if not payload.protocol_data.signature:
            logger.debug("Skipping unsigned Seaport order {}", payload.order_hash)
            return None
        if len(parameters.offer) != 1:
            logger.debug("Skipping Seaport order {} offering {} items", payload.order_hash, len(parameters.offer))
            return None

        offered = parameters.offer[0]
        if offered.item_type in _SINGLE_TOKEN_ITEMS:
            order_kind = "single-token"
        elif offered.item_type in _CRITERIA_ITEMS:
            order_kind = "contract-wide"
        else:
            logger.debug("Skipping Seaport order {} offering a non-NFT item", payload.order_hash)
            return None

        params: dict[str, Any] = {
            "kind": order_kind,
            "offerer": _address(parameters.offerer),
            "zone": _address(parameters.zone),
            "offer": [_item(item) for item in parameters.offer],
            "consideration": [
                {**_item(item), "recipient": _address(item.recipient)}
                for item in parameters.consideration
            ],
            "orderType": parameters.order_type,
            "startTime": parameters.start_time,
            "endTime": parameters.end_time,
            "zoneHash": parameters.zone_hash,
            "salt": parameters.salt,
            "conduitKey": parameters.conduit_key,
            "counter": str(parameters.counter),
            "signature": payload.protocol_data.signature,
        }
        return NormalizedOrder(kind=self.kind, contract=offered.token.lower(), params=params)


def _item(item: OfferItem) -> dict[str, Any]:
    return {
        "itemType": item.item_type,
        "token": _address(item.token),
        "identifierOrCriteria": item.identifier_or_criteria,
        "startAmount": item.start_amount,
        "endAmount": item.end_amount,
    }
