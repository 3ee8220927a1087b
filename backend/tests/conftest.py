"""Shared test fixtures for the MetaApi gateway."""

from __future__ import annotations

import os
from collections.abc import Iterator
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.api.main import create_app
from app.broker.fake.broker import FakeBrokerAdapter
from app.config import AppConfig


@pytest.fixture
def fake_broker() -> FakeBrokerAdapter:
    """Empty, deployed fake provider. Tests mutate it before use."""
    return FakeBrokerAdapter()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(log_level="DEBUG", log_format="console")


@pytest.fixture
def client(
    app_config: AppConfig,
    fake_broker: FakeBrokerAdapter,
) -> Iterator[TestClient]:
    """HTTP client against the gateway wired to the fake provider."""
    app = create_app(app_config, broker_factory=fake_broker.factory)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def metaapi_credentials() -> Any:
    """Load a real MetaApi token and account id from the environment.

    Skips the test if they are not set.
    """
    token = os.environ.get("METAAPI_GW_TEST_TOKEN", "")
    account_id = os.environ.get("METAAPI_GW_TEST_ACCOUNT_ID", "")

    if not token or not account_id:
        pytest.skip(
            "MetaApi credentials not set. "
            "Set METAAPI_GW_TEST_TOKEN and METAAPI_GW_TEST_ACCOUNT_ID.",
        )

    return SimpleNamespace(token=token, account_id=account_id)
