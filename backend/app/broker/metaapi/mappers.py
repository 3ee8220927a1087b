"""MetaApi SDK type to domain type converters.

This is the narrowing boundary: SDK account objects and camelCase
response dicts go in, frozen domain records come out. Nothing past this
module touches a provider payload directly.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from app.broker.errors import BrokerOperationError
from app.broker.types import (
    AccountInfo,
    AccountSummary,
    Deal,
    Position,
    TradeResult,
)
from app.broker.utils import to_decimal, to_optional_decimal
from app.utils.time import parse_timestamp


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _optional_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return parse_timestamp(str(value))


def metaapi_account_to_summary(account: Any) -> AccountSummary:
    """Convert a MetatraderAccount SDK object to an AccountSummary.

    Only the directory attributes are read; credentials, tokens and
    reliability settings on the SDK object never cross this line.
    """
    magic = getattr(account, "magic", None)
    return AccountSummary(
        id=str(account.id),
        name=getattr(account, "name", None),
        type=getattr(account, "type", None),
        login=_optional_str(getattr(account, "login", None)),
        server=getattr(account, "server", None),
        region=getattr(account, "region", None),
        state=getattr(account, "state", None),
        connection_status=getattr(account, "connection_status", None),
        magic=int(magic) if magic is not None else None,
    )


def account_information_to_account_info(info: dict[str, Any]) -> AccountInfo:
    """Convert a MetatraderAccountInformation dict to AccountInfo."""
    leverage = info.get("leverage")
    return AccountInfo(
        balance=to_decimal(info["balance"]),
        equity=to_decimal(info["equity"]),
        currency=str(info["currency"]),
        margin=to_optional_decimal(info.get("margin")),
        free_margin=to_optional_decimal(info.get("freeMargin")),
        leverage=int(leverage) if leverage is not None else None,
    )


def position_to_position(position: dict[str, Any]) -> Position:
    """Convert a MetatraderPosition dict to a Position."""
    return Position(
        id=str(position["id"]),
        symbol=position["symbol"],
        type=position["type"],
        volume=to_decimal(position["volume"]),
        open_price=to_optional_decimal(position.get("openPrice")),
        current_price=to_optional_decimal(position.get("currentPrice")),
        profit=to_optional_decimal(position.get("profit")),
        swap=to_optional_decimal(position.get("swap")),
        stop_loss=to_optional_decimal(position.get("stopLoss")),
        take_profit=to_optional_decimal(position.get("takeProfit")),
        time=_optional_time(position.get("time")),
    )


def deal_to_deal(deal: dict[str, Any]) -> Deal:
    """Convert a MetatraderDeal dict to a Deal.

    Balance and credit deals have no symbol, volume or price.
    """
    return Deal(
        id=str(deal["id"]),
        symbol=deal.get("symbol"),
        type=deal["type"],
        entry_type=deal.get("entryType"),
        volume=to_optional_decimal(deal.get("volume")),
        price=to_optional_decimal(deal.get("price")),
        profit=to_optional_decimal(deal.get("profit")),
        commission=to_optional_decimal(deal.get("commission")),
        swap=to_optional_decimal(deal.get("swap")),
        time=_optional_time(deal.get("time")),
        position_id=_optional_str(deal.get("positionId")),
        order_id=_optional_str(deal.get("orderId")),
    )


def deals_payload_to_deals(payload: Any) -> list[Deal]:
    """Unwrap a deals response.

    Recent SDK versions return ``{"deals": [...], "synchronizing": bool}``;
    older ones return the list itself.
    """
    if isinstance(payload, dict):
        items = payload.get("deals") or []
    elif isinstance(payload, list):
        items = payload
    else:
        raise BrokerOperationError(
            f"Unexpected deals payload: {type(payload).__name__}",
        )
    return [deal_to_deal(d) for d in items]


def trade_response_to_result(response: dict[str, Any]) -> TradeResult:
    """Convert a MetatraderTradeResponse dict to a TradeResult."""
    return TradeResult(
        order_id=_optional_str(response.get("orderId")),
        position_id=_optional_str(response.get("positionId")),
        string_code=response.get("stringCode"),
        message=response.get("message"),
    )
