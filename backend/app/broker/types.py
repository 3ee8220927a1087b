"""Broker domain types shared across the gateway.

Frozen dataclasses for value objects read from the provider, plus the
order intent built from a request. Monetary values use Decimal; the
HTTP layer renders them as JSON numbers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

DEPLOYED_STATE = "DEPLOYED"


class Side(str, Enum):
    """Market order direction."""

    BUY = "BUY"
    SELL = "SELL"


# --- Value Objects (frozen) ---


@dataclass(frozen=True)
class AccountSummary:
    """Directory entry for one MetaTrader account."""

    id: str
    name: str | None
    type: str | None
    login: str | None
    server: str | None
    region: str | None
    state: str | None
    connection_status: str | None
    magic: int | None


@dataclass(frozen=True)
class AccountInfo:
    """Account snapshot from a synchronized connection."""

    balance: Decimal
    equity: Decimal
    currency: str
    margin: Decimal | None = None
    free_margin: Decimal | None = None
    leverage: int | None = None


@dataclass(frozen=True)
class TradeRequest:
    """Market order intent. Volume is presence-checked only."""

    symbol: str
    side: Side
    volume: float
    stop_loss: float | None = None
    take_profit: float | None = None


@dataclass(frozen=True)
class TradeResult:
    """Outcome of a trade command (open or close)."""

    order_id: str | None
    position_id: str | None
    string_code: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class Position:
    """Open position, fields copied from the provider."""

    id: str
    symbol: str
    type: str
    volume: Decimal
    open_price: Decimal | None
    current_price: Decimal | None
    profit: Decimal | None
    swap: Decimal | None
    stop_loss: Decimal | None
    take_profit: Decimal | None
    time: datetime | None


@dataclass(frozen=True)
class Deal:
    """Historical executed trade record."""

    id: str
    symbol: str | None
    type: str
    entry_type: str | None
    volume: Decimal | None
    price: Decimal | None
    profit: Decimal | None
    commission: Decimal | None
    swap: Decimal | None
    time: datetime | None
    position_id: str | None
    order_id: str | None


@dataclass(frozen=True)
class CloseResult:
    """Per-position outcome of a close-all run."""

    position_id: str
    success: bool
    order_id: str | None = None
    error: str | None = None
