"""Domain record -> JSON object projections.

These define the stable response shapes. Decimals become JSON numbers,
datetimes become ISO 8601 strings with a Z suffix.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from app.broker.types import (
    AccountInfo,
    AccountSummary,
    CloseResult,
    Deal,
    Position,
    TradeResult,
)
from app.utils.time import format_timestamp


def _num(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _time(value: datetime | None) -> str | None:
    return format_timestamp(value) if value is not None else None


def account_summary_json(account: AccountSummary) -> dict[str, Any]:
    return {
        "id": account.id,
        "name": account.name,
        "type": account.type,
        "login": account.login,
        "server": account.server,
        "region": account.region,
        "state": account.state,
        "connectionStatus": account.connection_status,
        "magic": account.magic,
    }


def account_info_json(info: AccountInfo) -> dict[str, Any]:
    return {
        "balance": _num(info.balance),
        "equity": _num(info.equity),
        "currency": info.currency,
    }


def trade_result_json(result: TradeResult) -> dict[str, Any]:
    return {
        "order": result.order_id,
        "position": result.position_id,
        "status": "executed",
    }


def close_result_json(result: TradeResult, position_id: str) -> dict[str, Any]:
    return {
        "orderId": result.order_id,
        "message": f"Position {position_id} closed",
    }


def position_json(position: Position) -> dict[str, Any]:
    return {
        "id": position.id,
        "symbol": position.symbol,
        "type": position.type,
        "volume": _num(position.volume),
        "openPrice": _num(position.open_price),
        "currentPrice": _num(position.current_price),
        "profit": _num(position.profit),
        "swap": _num(position.swap),
        "stopLoss": _num(position.stop_loss),
        "takeProfit": _num(position.take_profit),
        "time": _time(position.time),
    }


def deal_json(deal: Deal) -> dict[str, Any]:
    return {
        "id": deal.id,
        "symbol": deal.symbol,
        "type": deal.type,
        "entryType": deal.entry_type,
        "volume": _num(deal.volume),
        "price": _num(deal.price),
        "profit": _num(deal.profit),
        "commission": _num(deal.commission),
        "swap": _num(deal.swap),
        "time": _time(deal.time),
        "positionId": deal.position_id,
        "orderId": deal.order_id,
    }


def close_all_json(results: list[CloseResult]) -> dict[str, Any]:
    """Aggregate close-all outcome; per-item failures do not fail the call."""
    items: list[dict[str, Any]] = []
    for r in results:
        item: dict[str, Any] = {"positionId": r.position_id, "success": r.success}
        if r.success:
            item["orderId"] = r.order_id
        else:
            item["error"] = r.error
        items.append(item)
    closed = sum(1 for r in results if r.success)
    return {
        "success": True,
        "message": f"Closed {closed} positions",
        "closed": closed,
        "total": len(results),
        "results": items,
    }
