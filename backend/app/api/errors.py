"""Failure envelope and exception handlers.

Two tiers: GatewayValidationError -> 400 ``{error}`` before any provider
call; every other failure -> 500 ``{success: false, error, kind}``
carrying the message only, never a traceback.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.broker.errors import BrokerError, BrokerOperationError, GatewayValidationError

logger = structlog.get_logger()


@contextmanager
def failure_envelope(fallback: str) -> Iterator[None]:
    """Funnel every failure of a route's provider chain into a BrokerError.

    Errors without a message get ``fallback`` as their text. Exceptions
    outside our hierarchy become BrokerOperationError.
    """
    try:
        yield
    except GatewayValidationError:
        raise
    except BrokerError as e:
        if str(e):
            raise
        raise type(e)(fallback) from e
    except Exception as e:
        logger.exception("Unexpected provider failure")
        raise BrokerOperationError(str(e) or fallback) from e


async def validation_error_handler(
    request: Request,
    exc: GatewayValidationError,
) -> JSONResponse:
    logger.warning("Request rejected", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def broker_error_handler(request: Request, exc: BrokerError) -> JSONResponse:
    logger.error(
        "Request failed",
        path=request.url.path,
        kind=exc.kind.value,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc) or "Request failed",
            "kind": exc.kind.value,
        },
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(BrokerError, broker_error_handler)  # type: ignore[arg-type]
