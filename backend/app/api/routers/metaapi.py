"""MetaApi trading routes.

Every route follows the same chain: parse and validate the body, bind a
provider client to the caller's token, run one gateway operation inside
the failure envelope, close the client, project the result.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends

from app.api.dependencies import get_broker_factory, get_config, json_body
from app.api.errors import failure_envelope
from app.broker.broker_adapter import BrokerFactory
from app.config import AppConfig
from app.gateway import operations
from app.gateway.projections import (
    account_info_json,
    account_summary_json,
    close_all_json,
    close_result_json,
    deal_json,
    position_json,
    trade_result_json,
)
from app.gateway.requests import (
    AccountRequest,
    ClosePositionBody,
    GatewayRequest,
    HistoryBody,
    TradeBody,
)
from app.gateway.session import bound_broker

logger = structlog.get_logger()

router = APIRouter(prefix="/api/metaapi", tags=["MetaApi"])

JsonBody = Annotated[Any, Depends(json_body)]
Factory = Annotated[BrokerFactory, Depends(get_broker_factory)]
Config = Annotated[AppConfig, Depends(get_config)]


@router.post("/accounts")
async def accounts(body: JsonBody, broker_factory: Factory) -> dict[str, Any]:
    req = GatewayRequest.parse(body)
    logger.info("Fetching accounts")
    with failure_envelope("Failed to fetch accounts"):
        async with bound_broker(broker_factory, req.token or "") as broker:
            found = await operations.list_accounts(broker)
    logger.info("Found accounts", count=len(found))
    return {"success": True, "accounts": [account_summary_json(a) for a in found]}


@router.post("/test-connection")
async def test_connection(body: JsonBody, broker_factory: Factory) -> dict[str, Any]:
    req = AccountRequest.parse(body)
    logger.info("Testing connection", account_id=req.account_id)
    with failure_envelope("Connection test failed"):
        async with bound_broker(broker_factory, req.token or "") as broker:
            info = await operations.check_connection(broker, req.account_id or "")
    return {"success": True, "message": "Connection successful", **account_info_json(info)}


@router.post("/execute-trade")
async def execute_trade(body: JsonBody, broker_factory: Factory) -> dict[str, Any]:
    req = TradeBody.parse(body)
    trade = req.to_trade_request()
    logger.info(
        "Executing trade",
        account_id=req.account_id,
        symbol=trade.symbol,
        side=trade.side.value,
    )
    with failure_envelope("Trade execution failed"):
        async with bound_broker(broker_factory, req.token or "") as broker:
            result = await operations.execute_trade(broker, req.account_id or "", trade)
    return {"success": True, "result": trade_result_json(result)}


@router.post("/get-positions")
async def get_positions(body: JsonBody, broker_factory: Factory) -> dict[str, Any]:
    req = AccountRequest.parse(body)
    logger.info("Fetching positions", account_id=req.account_id)
    with failure_envelope("Failed to fetch positions"):
        async with bound_broker(broker_factory, req.token or "") as broker:
            positions = await operations.get_positions(broker, req.account_id or "")
    return {"success": True, "positions": [position_json(p) for p in positions]}


@router.post("/close-position")
async def close_position(body: JsonBody, broker_factory: Factory) -> dict[str, Any]:
    req = ClosePositionBody.parse(body)
    position_id = req.position_id or ""
    logger.info("Closing position", account_id=req.account_id, position_id=position_id)
    with failure_envelope("Failed to close position"):
        async with bound_broker(broker_factory, req.token or "") as broker:
            result = await operations.close_position(
                broker,
                req.account_id or "",
                position_id,
            )
    return {"success": True, "result": close_result_json(result, position_id)}


@router.post("/close-all-positions")
async def close_all_positions(
    body: JsonBody,
    broker_factory: Factory,
) -> dict[str, Any]:
    req = AccountRequest.parse(body)
    logger.info("Closing all positions", account_id=req.account_id)
    with failure_envelope("Failed to close positions"):
        async with bound_broker(broker_factory, req.token or "") as broker:
            results = await operations.close_all_positions(broker, req.account_id or "")
    return close_all_json(results)


@router.post("/get-history")
async def get_history(
    body: JsonBody,
    broker_factory: Factory,
    config: Config,
) -> dict[str, Any]:
    req = HistoryBody.parse(body)
    limit = req.parsed_limit()
    start_time = req.parsed_start_time()
    logger.info("Fetching history", account_id=req.account_id, limit=limit)
    with failure_envelope("Failed to fetch history"):
        async with bound_broker(broker_factory, req.token or "") as broker:
            deals = await operations.get_history(
                broker,
                req.account_id or "",
                limit,
                start_time,
                default_limit=config.history.default_limit,
                default_days=config.history.default_days,
            )
    return {"success": True, "deals": [deal_json(d) for d in deals]}
