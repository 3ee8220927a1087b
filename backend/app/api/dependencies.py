"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from app.broker.broker_adapter import BrokerFactory
from app.config import AppConfig


def get_config(request: Request) -> AppConfig:
    config: AppConfig = request.app.state.config
    return config


def get_broker_factory(request: Request) -> BrokerFactory:
    factory: BrokerFactory = request.app.state.broker_factory
    return factory


async def json_body(request: Request) -> Any:
    """Decoded JSON body; an empty or malformed body reads as ``{}``."""
    try:
        return await request.json()
    except ValueError:
        return {}
