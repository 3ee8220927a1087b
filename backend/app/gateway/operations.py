"""Operation dispatcher: one coroutine per request kind.

Each operation takes a BrokerAdapter already bound to the caller's token,
opens its own session when it needs one, and returns domain records.
Projection to JSON happens in app.gateway.projections.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from app.broker.broker_adapter import BrokerAdapter
from app.broker.types import (
    AccountInfo,
    AccountSummary,
    CloseResult,
    Deal,
    Position,
    Side,
    TradeRequest,
    TradeResult,
)
from app.gateway.session import open_session
from app.utils.time import lookback_window

logger = structlog.get_logger()

DEFAULT_HISTORY_LIMIT = 20
DEFAULT_HISTORY_DAYS = 30


async def list_accounts(broker: BrokerAdapter) -> list[AccountSummary]:
    """List every account the token can see. Needs no session."""
    return await broker.list_accounts()


async def check_connection(broker: BrokerAdapter, account_id: str) -> AccountInfo:
    """Connect and fetch an account snapshot."""
    connection = await open_session(broker, account_id)
    return await connection.get_account_information()


async def execute_trade(
    broker: BrokerAdapter,
    account_id: str,
    trade: TradeRequest,
) -> TradeResult:
    """Place a market order in the requested direction."""
    connection = await open_session(broker, account_id)
    if trade.side is Side.BUY:
        place = connection.create_market_buy_order
    else:
        place = connection.create_market_sell_order
    result = await place(
        trade.symbol,
        trade.volume,
        trade.stop_loss,
        trade.take_profit,
    )
    logger.info(
        "Market order placed",
        account_id=account_id,
        symbol=trade.symbol,
        side=trade.side.value,
        volume=trade.volume,
        order_id=result.order_id,
    )
    return result


async def get_positions(broker: BrokerAdapter, account_id: str) -> list[Position]:
    connection = await open_session(broker, account_id)
    return await connection.get_positions()


async def close_position(
    broker: BrokerAdapter,
    account_id: str,
    position_id: str,
) -> TradeResult:
    connection = await open_session(broker, account_id)
    result = await connection.close_position(position_id)
    logger.info(
        "Position closed",
        account_id=account_id,
        position_id=position_id,
        order_id=result.order_id,
    )
    return result


async def close_all_positions(
    broker: BrokerAdapter,
    account_id: str,
) -> list[CloseResult]:
    """Close every open position, one at a time, in listing order.

    A failed close is recorded and the loop moves on; only session setup
    or the position listing itself can fail the whole call.
    """
    connection = await open_session(broker, account_id)
    positions = await connection.get_positions()

    results: list[CloseResult] = []
    for position in positions:
        try:
            trade = await connection.close_position(position.id)
        except Exception as e:
            logger.warning(
                "Failed to close position",
                account_id=account_id,
                position_id=position.id,
                error=str(e),
            )
            results.append(
                CloseResult(position_id=position.id, success=False, error=str(e)),
            )
            continue
        results.append(
            CloseResult(position_id=position.id, success=True, order_id=trade.order_id),
        )

    closed = sum(1 for r in results if r.success)
    logger.info(
        "Close-all finished",
        account_id=account_id,
        closed=closed,
        total=len(results),
    )
    return results


async def get_history(
    broker: BrokerAdapter,
    account_id: str,
    limit: int | None = None,
    start_time: datetime | None = None,
    *,
    default_limit: int = DEFAULT_HISTORY_LIMIT,
    default_days: int = DEFAULT_HISTORY_DAYS,
    now: datetime | None = None,
) -> list[Deal]:
    """Fetch deals in [start_time, now] and keep the first ``limit``.

    Truncation is local and keeps the provider's ordering.
    """
    default_start, end_time = lookback_window(default_days, now)
    if start_time is None:
        start_time = default_start
    if limit is None:
        limit = default_limit

    connection = await open_session(broker, account_id)
    deals = await connection.get_deals_by_time_range(start_time, end_time)
    return deals[:limit]
