"""Provider protocols: the seams between the gateway and a trading cloud.

A BrokerAdapter is bound to one credential and lives for one request.
It resolves AccountHandles; a handle opens TradingConnections. The
MetaApi implementation and the in-memory fake both satisfy these.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Protocol, runtime_checkable

from app.broker.types import (
    AccountInfo,
    AccountSummary,
    Deal,
    Position,
    TradeResult,
)


@runtime_checkable
class TradingConnection(Protocol):
    """Session-oriented command channel to one account.

    Read and trade calls are only valid after wait_synchronized().
    """

    async def connect(self) -> None:
        """Open the channel."""
        ...

    async def wait_synchronized(self) -> None:
        """Block until the provider reports the channel is synchronized."""
        ...

    async def get_account_information(self) -> AccountInfo:
        """Get balance, equity and currency."""
        ...

    async def get_positions(self) -> list[Position]:
        """Get all open positions."""
        ...

    async def create_market_buy_order(
        self,
        symbol: str,
        volume: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> TradeResult:
        """Place a market buy order."""
        ...

    async def create_market_sell_order(
        self,
        symbol: str,
        volume: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> TradeResult:
        """Place a market sell order."""
        ...

    async def close_position(self, position_id: str) -> TradeResult:
        """Fully close one position."""
        ...

    async def get_deals_by_time_range(
        self,
        start_time: datetime,
        end_time: datetime,
    ) -> list[Deal]:
        """Get deals executed within [start_time, end_time]."""
        ...


@runtime_checkable
class AccountHandle(Protocol):
    """Reference to an account managed by the provider."""

    @property
    def id(self) -> str: ...

    @property
    def state(self) -> str:
        """Provider lifecycle state, e.g. DEPLOYED or UNDEPLOYED."""
        ...

    async def deploy(self) -> None:
        """Ask the provider to deploy the account."""
        ...

    async def wait_deployed(self) -> None:
        """Block until the provider reports the account as deployed."""
        ...

    def get_rpc_connection(self) -> TradingConnection:
        """Create (but do not open) a command channel."""
        ...


@runtime_checkable
class BrokerAdapter(Protocol):
    """Provider client bound to a single credential."""

    async def list_accounts(self) -> list[AccountSummary]:
        """List every account visible to the credential."""
        ...

    async def get_account(self, account_id: str) -> AccountHandle:
        """Resolve an account id to a handle."""
        ...

    async def close(self) -> None:
        """Release every connection and background job the client started."""
        ...


# Session factory: token -> adapter. Called once per request.
BrokerFactory = Callable[[str], BrokerAdapter]
