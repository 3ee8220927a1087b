"""Request body models and required-field validation.

Bodies are parsed leniently (unknown keys ignored, numeric ids accepted
as strings) and then checked for presence of the operation's required
fields. Everything here raises GatewayValidationError, which the HTTP
layer turns into a 400 before any provider call is made.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.broker.errors import GatewayValidationError
from app.broker.types import Side, TradeRequest
from app.broker.utils import parse_optional_float
from app.utils.time import parse_timestamp

_FIELD_LABELS: dict[str, str] = {"token": "Token"}
_MAX_LIMIT_DIGITS = 10


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def required_message(fields: Sequence[str]) -> str:
    """Build "Token is required" / "Token and accountId are required"."""
    labels = [_FIELD_LABELS.get(f, f) for f in fields]
    if len(labels) == 1:
        return f"{labels[0]} is required"
    return f"{', '.join(labels[:-1])} and {labels[-1]} are required"


def parse_side(direction: str) -> Side:
    """Parse BUY/SELL case-insensitively."""
    try:
        return Side(direction.upper())
    except ValueError:
        raise GatewayValidationError(
            f"Invalid direction: {direction}. Must be BUY or SELL",
        ) from None


class GatewayRequest(BaseModel):
    """Base body: every operation needs a token."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    required_fields: ClassVar[tuple[str, ...]] = ("token",)

    token: str | None = None

    @classmethod
    def parse(cls, body: Any) -> Self:
        """Validate a decoded JSON body. Non-objects count as empty."""
        if not isinstance(body, dict):
            body = {}
        try:
            request = cls.model_validate(body)
        except ValidationError as e:
            err = e.errors()[0]
            field = ".".join(str(part) for part in err["loc"])
            raise GatewayValidationError(f"Invalid {field}: {err['msg']}") from e

        wire_names = [
            cls.model_fields[name].alias or name for name in cls.required_fields
        ]
        if any(_is_missing(getattr(request, name)) for name in cls.required_fields):
            raise GatewayValidationError(required_message(wire_names))
        return request


class AccountRequest(GatewayRequest):
    required_fields: ClassVar[tuple[str, ...]] = ("token", "account_id")

    account_id: str | None = Field(default=None, alias="accountId")


class TradeBody(AccountRequest):
    """Market order body. stopLoss/takeProfit are optional and lenient."""

    required_fields: ClassVar[tuple[str, ...]] = (
        "token",
        "account_id",
        "symbol",
        "direction",
        "volume",
    )

    symbol: str | None = None
    direction: str | None = None
    volume: Any = None
    stop_loss: Any = Field(default=None, alias="stopLoss")
    take_profit: Any = Field(default=None, alias="takeProfit")

    def to_trade_request(self) -> TradeRequest:
        assert self.symbol is not None
        assert self.direction is not None
        side = parse_side(self.direction)

        # Presence only: negative or zero volume is the provider's call.
        if isinstance(self.volume, bool):
            raise GatewayValidationError("volume must be a number")
        try:
            volume = float(Decimal(str(self.volume).strip()))
        except (InvalidOperation, ValueError):
            raise GatewayValidationError("volume must be a number") from None
        if not math.isfinite(volume):
            raise GatewayValidationError("volume must be a number")

        return TradeRequest(
            symbol=self.symbol,
            side=side,
            volume=volume,
            stop_loss=parse_optional_float(self.stop_loss),
            take_profit=parse_optional_float(self.take_profit),
        )


class ClosePositionBody(AccountRequest):
    required_fields: ClassVar[tuple[str, ...]] = ("token", "account_id", "position_id")

    position_id: str | None = Field(default=None, alias="positionId")


class HistoryBody(AccountRequest):
    """Deal history body. limit and startTime fall back to defaults."""

    limit: Any = None
    start_time: Any = Field(default=None, alias="startTime")

    def parsed_limit(self) -> int | None:
        if _is_missing(self.limit):
            return None
        if isinstance(self.limit, bool):
            raise GatewayValidationError("limit must be a positive integer")
        try:
            value = Decimal(str(self.limit).strip())
        except (InvalidOperation, ValueError):
            raise GatewayValidationError("limit must be a positive integer") from None
        # adjusted() bounds the digit count before int() can expand an exponent.
        if (
            not value.is_finite()
            or value.adjusted() >= _MAX_LIMIT_DIGITS
            or value < 1
            or value != value.to_integral_value()
        ):
            raise GatewayValidationError("limit must be a positive integer")
        return int(value)

    def parsed_start_time(self) -> datetime | None:
        """ISO 8601 string, or epoch milliseconds as a number."""
        if _is_missing(self.start_time) or isinstance(self.start_time, bool):
            return None
        try:
            if isinstance(self.start_time, (int, float)):
                return datetime.fromtimestamp(self.start_time / 1000, tz=UTC)
            return parse_timestamp(str(self.start_time))
        except (ValueError, OverflowError, OSError):
            raise GatewayValidationError(
                f"Invalid startTime: {self.start_time}",
            ) from None
