"""MetaApiBrokerAdapter — account and trade access via metaapi-cloud-sdk.

The SDK is natively async, so calls are awaited directly on the request's
event loop. Every SDK exception is translated into the gateway's error
hierarchy here; the stage of the call decides what a generic API error
or timeout means (provisioning, connection, or operation failure).
"""

from __future__ import annotations

from collections.abc import Awaitable
from datetime import datetime
from typing import Any, TypeVar

import structlog
from metaapi_cloud_sdk import MetaApi
from metaapi_cloud_sdk.clients.error_handler import (
    ApiException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from metaapi_cloud_sdk.clients.metaapi.trade_exception import TradeException
from metaapi_cloud_sdk.clients.timeout_exception import TimeoutException

from app.broker.errors import (
    BrokerAuthError,
    BrokerConnectionError,
    BrokerError,
    BrokerNotFoundError,
    BrokerOperationError,
    BrokerProvisioningError,
)
from app.broker.metaapi.mappers import (
    account_information_to_account_info,
    deals_payload_to_deals,
    metaapi_account_to_summary,
    position_to_position,
    trade_response_to_result,
)
from app.broker.types import (
    AccountInfo,
    AccountSummary,
    Deal,
    Position,
    TradeResult,
)

logger = structlog.get_logger()

T = TypeVar("T")

_SDK_ERRORS = (ApiException, TradeException, TimeoutException, TimeoutError, OSError)


def _translate_error(e: Exception, stage_error: type[BrokerError]) -> BrokerError:
    """Map an SDK exception to our error hierarchy.

    Credential and lookup failures keep their meaning at every stage;
    anything else becomes ``stage_error``.
    """
    message = str(e)
    if isinstance(e, (UnauthorizedException, ForbiddenException)):
        return BrokerAuthError(message)
    if isinstance(e, NotFoundException):
        return BrokerNotFoundError(message)
    if isinstance(e, TradeException):
        return BrokerOperationError(message, code=getattr(e, "stringCode", None))
    if stage_error is BrokerOperationError:
        status = getattr(e, "status_code", None)
        return BrokerOperationError(
            message,
            code=str(status) if status is not None else None,
        )
    return stage_error(message)


async def _call(awaitable: Awaitable[T], stage_error: type[BrokerError]) -> T:
    """Await an SDK coroutine, translating its failures."""
    try:
        return await awaitable
    except _SDK_ERRORS as e:
        raise _translate_error(e, stage_error) from e


def _client_options(config: Any) -> dict[str, Any]:
    opts: dict[str, Any] = {
        "domain": config.domain,
        "requestTimeout": config.request_timeout,
    }
    if config.region:
        opts["region"] = config.region
    return opts


class MetaApiTradingConnection:
    """TradingConnection backed by a MetaApi RPC connection."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    async def connect(self) -> None:
        await _call(self._connection.connect(), BrokerConnectionError)

    async def wait_synchronized(self) -> None:
        await _call(self._connection.wait_synchronized(), BrokerConnectionError)

    async def get_account_information(self) -> AccountInfo:
        result = await _call(
            self._connection.get_account_information(),
            BrokerOperationError,
        )
        return account_information_to_account_info(result)

    async def get_positions(self) -> list[Position]:
        result = await _call(self._connection.get_positions(), BrokerOperationError)
        return [position_to_position(p) for p in result]

    async def create_market_buy_order(
        self,
        symbol: str,
        volume: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> TradeResult:
        result = await _call(
            self._connection.create_market_buy_order(
                symbol,
                volume,
                stop_loss,
                take_profit,
            ),
            BrokerOperationError,
        )
        return trade_response_to_result(result)

    async def create_market_sell_order(
        self,
        symbol: str,
        volume: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> TradeResult:
        result = await _call(
            self._connection.create_market_sell_order(
                symbol,
                volume,
                stop_loss,
                take_profit,
            ),
            BrokerOperationError,
        )
        return trade_response_to_result(result)

    async def close_position(self, position_id: str) -> TradeResult:
        result = await _call(
            self._connection.close_position(position_id),
            BrokerOperationError,
        )
        return trade_response_to_result(result)

    async def get_deals_by_time_range(
        self,
        start_time: datetime,
        end_time: datetime,
    ) -> list[Deal]:
        result = await _call(
            self._connection.get_deals_by_time_range(start_time, end_time),
            BrokerOperationError,
        )
        return deals_payload_to_deals(result)

    async def close(self) -> None:
        await self._connection.close()


class MetaApiAccountHandle:
    """AccountHandle backed by a MetatraderAccount SDK object.

    RPC connections it opens are appended to ``opened`` so the owning
    adapter can close them.
    """

    def __init__(
        self,
        account: Any,
        opened: list[MetaApiTradingConnection] | None = None,
    ) -> None:
        self._account = account
        self._opened = opened

    @property
    def id(self) -> str:
        return str(self._account.id)

    @property
    def state(self) -> str:
        return str(self._account.state)

    async def deploy(self) -> None:
        logger.info("Deploying account", account_id=self.id)
        await _call(self._account.deploy(), BrokerProvisioningError)

    async def wait_deployed(self) -> None:
        await _call(self._account.wait_deployed(), BrokerProvisioningError)
        logger.info("Account deployed", account_id=self.id)

    def get_rpc_connection(self) -> MetaApiTradingConnection:
        try:
            raw = self._account.get_rpc_connection()
        except _SDK_ERRORS as e:
            raise _translate_error(e, BrokerConnectionError) from e
        connection = MetaApiTradingConnection(raw)
        if self._opened is not None:
            self._opened.append(connection)
        return connection


class MetaApiBrokerAdapter:
    """BrokerAdapter implementation backed by the MetaApi cloud SDK.

    One instance per request, bound to the caller's token. Nothing is
    cached between instances. The SDK client runs background jobs until
    ``close()`` is awaited, so callers must always close the adapter.
    """

    def __init__(self, token: str, config: Any) -> None:
        if not token:
            raise BrokerAuthError("Token is required")
        self._config = config
        self._connections: list[MetaApiTradingConnection] = []
        try:
            self._api = MetaApi(token, _client_options(config))
        except _SDK_ERRORS as e:
            raise _translate_error(e, BrokerConnectionError) from e

    async def list_accounts(self) -> list[AccountSummary]:
        """Walk the classic-scroll directory into one flat list.

        The SDK's ``count`` is the size of the returned page, not the
        directory total, so a short page marks the end.
        """
        account_api = self._api.metatrader_account_api
        page_size = self._config.accounts_page_size
        accounts: list[AccountSummary] = []
        offset = 0
        while True:
            page = await _call(
                account_api.get_accounts_with_classic_scroll_pagination(
                    {"offset": offset, "limit": page_size},
                ),
                BrokerOperationError,
            )
            items = page["items"]
            accounts.extend(metaapi_account_to_summary(a) for a in items)
            offset += len(items)
            if len(items) < page_size:
                break
        return accounts

    async def get_account(self, account_id: str) -> MetaApiAccountHandle:
        account = await _call(
            self._api.metatrader_account_api.get_account(account_id),
            BrokerOperationError,
        )
        return MetaApiAccountHandle(account, self._connections)

    async def close(self) -> None:
        """Close every RPC connection opened through this client, then the client."""
        connections, self._connections = self._connections, []
        for connection in connections:
            try:
                await connection.close()
            except Exception as e:
                logger.warning("Failed to close RPC connection", error=str(e))
        self._api.close()
