"""Per-request trading session: resolve, deploy if needed, synchronize.

Sessions are never pooled. Each request binds its own provider client,
opens its own connection and closes both when the request ends.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from app.broker.broker_adapter import (
    AccountHandle,
    BrokerAdapter,
    BrokerFactory,
    TradingConnection,
)
from app.broker.types import DEPLOYED_STATE

logger = structlog.get_logger()


async def open_account(broker: BrokerAdapter, account_id: str) -> AccountHandle:
    """Resolve an account id through the provider's directory."""
    return await broker.get_account(account_id)


async def ensure_deployed(account: AccountHandle) -> None:
    """Deploy the account and wait for it, unless it already is deployed.

    Uses the provider's default wait timeout. Failures propagate.
    """
    if account.state == DEPLOYED_STATE:
        return
    logger.info(
        "Account not deployed, deploying",
        account_id=account.id,
        state=account.state,
    )
    await account.deploy()
    await account.wait_deployed()


async def open_synchronized_connection(account: AccountHandle) -> TradingConnection:
    """Open an RPC channel and block until it is synchronized."""
    connection = account.get_rpc_connection()
    await connection.connect()
    await connection.wait_synchronized()
    logger.debug("Connection synchronized", account_id=account.id)
    return connection


async def open_session(broker: BrokerAdapter, account_id: str) -> TradingConnection:
    """Run the full resolve -> deploy -> synchronize chain."""
    account = await open_account(broker, account_id)
    await ensure_deployed(account)
    return await open_synchronized_connection(account)


@asynccontextmanager
async def bound_broker(
    broker_factory: BrokerFactory,
    token: str,
) -> AsyncIterator[BrokerAdapter]:
    """Bind a provider client to ``token`` and close it on the way out."""
    broker = broker_factory(token)
    try:
        yield broker
    finally:
        await broker.close()
