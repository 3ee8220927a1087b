"""Broker abstraction layer.

Re-exports all public types, protocols, and errors for convenient imports:
    from app.broker import BrokerAdapter, Position, BrokerError
"""

from app.broker.broker_adapter import (
    AccountHandle,
    BrokerAdapter,
    BrokerFactory,
    TradingConnection,
)
from app.broker.errors import (
    BrokerAuthError,
    BrokerConnectionError,
    BrokerError,
    BrokerNotFoundError,
    BrokerOperationError,
    BrokerProvisioningError,
    ErrorKind,
    GatewayValidationError,
)
from app.broker.types import (
    DEPLOYED_STATE,
    AccountInfo,
    AccountSummary,
    CloseResult,
    Deal,
    Position,
    Side,
    TradeRequest,
    TradeResult,
)

__all__ = [
    "DEPLOYED_STATE",
    "AccountHandle",
    "AccountInfo",
    "AccountSummary",
    "BrokerAdapter",
    "BrokerAuthError",
    "BrokerConnectionError",
    "BrokerError",
    "BrokerFactory",
    "BrokerNotFoundError",
    "BrokerOperationError",
    "BrokerProvisioningError",
    "CloseResult",
    "Deal",
    "ErrorKind",
    "GatewayValidationError",
    "Position",
    "Side",
    "TradeRequest",
    "TradeResult",
    "TradingConnection",
]
