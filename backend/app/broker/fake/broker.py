"""FakeBrokerAdapter — in-memory provider for testing.

Lightweight implementation of the provider protocols for unit testing
the gateway and the HTTP layer without reaching the MetaApi cloud.
Every provider call is appended to ``calls`` so tests can assert on
exactly what was (or was not) invoked.
"""

from __future__ import annotations

import itertools
from datetime import datetime
from decimal import Decimal
from typing import Any

from app.broker.errors import BrokerAuthError, BrokerNotFoundError, BrokerOperationError
from app.broker.types import (
    DEPLOYED_STATE,
    AccountInfo,
    AccountSummary,
    Deal,
    Position,
    TradeResult,
)


class FakeTradingConnection:
    """In-memory TradingConnection sharing state with its broker."""

    def __init__(self, broker: FakeBrokerAdapter, account_id: str) -> None:
        self._broker = broker
        self._account_id = account_id

    async def connect(self) -> None:
        self._broker.record("connect", self._account_id)

    async def wait_synchronized(self) -> None:
        self._broker.record("wait_synchronized", self._account_id)

    async def get_account_information(self) -> AccountInfo:
        self._broker.record("get_account_information")
        return self._broker.account_info

    async def get_positions(self) -> list[Position]:
        self._broker.record("get_positions")
        return list(self._broker.positions)

    async def create_market_buy_order(
        self,
        symbol: str,
        volume: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> TradeResult:
        self._broker.record(
            "create_market_buy_order", symbol, volume, stop_loss, take_profit
        )
        return self._broker.next_trade_result()

    async def create_market_sell_order(
        self,
        symbol: str,
        volume: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> TradeResult:
        self._broker.record(
            "create_market_sell_order", symbol, volume, stop_loss, take_profit
        )
        return self._broker.next_trade_result()

    async def close_position(self, position_id: str) -> TradeResult:
        self._broker.record("close_position", position_id)
        if position_id in self._broker.failing_positions:
            raise BrokerOperationError(
                f"Position {position_id} could not be closed",
                code="TRADE_RETCODE_INVALID",
            )
        self._broker.positions = [
            p for p in self._broker.positions if p.id != position_id
        ]
        return self._broker.next_trade_result(position_id=position_id)

    async def get_deals_by_time_range(
        self,
        start_time: datetime,
        end_time: datetime,
    ) -> list[Deal]:
        self._broker.record("get_deals_by_time_range", start_time, end_time)
        return list(self._broker.deals)


class FakeAccountHandle:
    """In-memory AccountHandle; deployment flips the broker's state."""

    def __init__(self, broker: FakeBrokerAdapter, account_id: str) -> None:
        self._broker = broker
        self._account_id = account_id

    @property
    def id(self) -> str:
        return self._account_id

    @property
    def state(self) -> str:
        return self._broker.account_state

    async def deploy(self) -> None:
        self._broker.record("deploy", self._account_id)
        self._broker.account_state = "DEPLOYING"

    async def wait_deployed(self) -> None:
        self._broker.record("wait_deployed", self._account_id)
        self._broker.account_state = DEPLOYED_STATE

    def get_rpc_connection(self) -> FakeTradingConnection:
        self._broker.record("get_rpc_connection", self._account_id)
        return FakeTradingConnection(self._broker, self._account_id)


class FakeBrokerAdapter:
    """In-memory BrokerAdapter for testing.

    Supply canned accounts/positions/deals at construction, then pass
    ``factory`` wherever a BrokerFactory is expected. ``tokens`` lists
    every credential the factory was called with.
    """

    def __init__(
        self,
        *,
        accounts: list[AccountSummary] | None = None,
        account_state: str = DEPLOYED_STATE,
        account_info: AccountInfo | None = None,
        positions: list[Position] | None = None,
        deals: list[Deal] | None = None,
        failing_positions: set[str] | None = None,
        known_account_ids: set[str] | None = None,
        valid_tokens: set[str] | None = None,
    ) -> None:
        self.accounts: list[AccountSummary] = accounts if accounts is not None else []
        self.account_state = account_state
        self.account_info: AccountInfo = account_info or AccountInfo(
            balance=Decimal("10000"),
            equity=Decimal("10000"),
            currency="USD",
        )
        self.positions: list[Position] = list(positions or [])
        self.deals: list[Deal] = list(deals or [])
        self.failing_positions: set[str] = set(failing_positions or ())
        self.known_account_ids = known_account_ids
        self.valid_tokens = valid_tokens
        self.calls: list[tuple[Any, ...]] = []
        self.tokens: list[str] = []
        self.closed = 0
        self._order_ids = itertools.count(1001)

    def factory(self, token: str) -> FakeBrokerAdapter:
        """BrokerFactory entry point."""
        self.tokens.append(token)
        if self.valid_tokens is not None and token not in self.valid_tokens:
            raise BrokerAuthError("Invalid auth token")
        return self

    def record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))

    @property
    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def next_trade_result(self, position_id: str | None = None) -> TradeResult:
        order_id = str(next(self._order_ids))
        return TradeResult(
            order_id=order_id,
            position_id=position_id or order_id,
            string_code="TRADE_RETCODE_DONE",
            message="Request completed",
        )

    async def list_accounts(self) -> list[AccountSummary]:
        self.record("list_accounts")
        return list(self.accounts)

    async def get_account(self, account_id: str) -> FakeAccountHandle:
        self.record("get_account", account_id)
        if self.known_account_ids is not None and account_id not in self.known_account_ids:
            raise BrokerNotFoundError(f"Account {account_id} not found")
        return FakeAccountHandle(self, account_id)

    async def close(self) -> None:
        self.record("close")
        self.closed += 1
