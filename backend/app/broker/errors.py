"""Broker error hierarchy.

All gateway failures inherit from BrokerError and carry an ErrorKind,
so the HTTP layer and tests can discriminate causes without matching
on message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories reported alongside the error message."""

    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    PROVISIONING = "provisioning"
    CONNECTION = "connection"
    VALIDATION = "validation"
    PROVIDER_OPERATION = "provider_operation"


class BrokerError(Exception):
    """Base exception for all broker-related errors."""

    kind: ErrorKind = ErrorKind.PROVIDER_OPERATION


class BrokerAuthError(BrokerError):
    """Missing token, or token rejected by the provider (HTTP 401/403)."""

    kind = ErrorKind.AUTHENTICATION


class BrokerNotFoundError(BrokerError):
    """Account id does not resolve in the provider's account directory."""

    kind = ErrorKind.NOT_FOUND


class BrokerProvisioningError(BrokerError):
    """Account deployment did not complete."""

    kind = ErrorKind.PROVISIONING


class BrokerConnectionError(BrokerError):
    """Transport failure or synchronization timeout."""

    kind = ErrorKind.CONNECTION


class BrokerOperationError(BrokerError):
    """Provider rejected or failed a read/write call.

    Stores the provider's string code (e.g. TRADE_RETCODE_NO_MONEY)
    when one is available.
    """

    kind = ErrorKind.PROVIDER_OPERATION

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class GatewayValidationError(BrokerError):
    """Request body is missing a required field or has a malformed one.

    Raised before any provider call is made.
    """

    kind = ErrorKind.VALIDATION
