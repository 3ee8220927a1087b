"""Tests for MetaApiBrokerAdapter.

All tests use mocked SDK objects — no real API calls. The account API
is autospecced from the SDK so calls to methods it lacks fail here.
"""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, create_autospec, patch

import pytest
from metaapi_cloud_sdk.clients.error_handler import (
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from metaapi_cloud_sdk.clients.metaapi.trade_exception import TradeException
from metaapi_cloud_sdk.clients.timeout_exception import TimeoutException
from metaapi_cloud_sdk.metaapi.metatrader_account_api import MetatraderAccountApi

from app.broker.errors import (
    BrokerAuthError,
    BrokerConnectionError,
    BrokerNotFoundError,
    BrokerOperationError,
    BrokerProvisioningError,
)
from app.broker.metaapi.broker import (
    MetaApiAccountHandle,
    MetaApiBrokerAdapter,
    MetaApiTradingConnection,
)
from tests.factories import make_sdk_account, make_sdk_deal, make_sdk_position


def _make_config(**overrides: object) -> SimpleNamespace:
    attrs: dict[str, object] = {
        "domain": "agiliumtrade.agiliumtrade.ai",
        "region": None,
        "request_timeout": 60,
        "accounts_page_size": 2,
    }
    attrs.update(overrides)
    return SimpleNamespace(**attrs)


def _account_api(mock_metaapi_cls: MagicMock) -> MagicMock:
    account_api = create_autospec(MetatraderAccountApi, instance=True)
    mock_metaapi_cls.return_value.metatrader_account_api = account_api
    return account_api


def _make_sdk_connection() -> MagicMock:
    conn = MagicMock()
    conn.connect = AsyncMock()
    conn.wait_synchronized = AsyncMock()
    conn.close = AsyncMock()
    conn.get_account_information = AsyncMock(
        return_value={"balance": 1000, "equity": 1001.5, "currency": "EUR"},
    )
    conn.get_positions = AsyncMock(return_value=[make_sdk_position()])
    trade_response = {
        "stringCode": "TRADE_RETCODE_DONE",
        "orderId": "555",
        "positionId": "555",
    }
    conn.create_market_buy_order = AsyncMock(return_value=trade_response)
    conn.create_market_sell_order = AsyncMock(return_value=trade_response)
    conn.close_position = AsyncMock(
        return_value={"stringCode": "TRADE_RETCODE_DONE", "orderId": "777"},
    )
    conn.get_deals_by_time_range = AsyncMock(
        return_value={"deals": [make_sdk_deal()], "synchronizing": False},
    )
    return conn




class TestConstruction:
    @patch("app.broker.metaapi.broker.MetaApi")
    def test_passes_token_and_options(self, mock_metaapi_cls: MagicMock) -> None:
        MetaApiBrokerAdapter("tok", _make_config(region="london"))
        mock_metaapi_cls.assert_called_once_with(
            "tok",
            {
                "domain": "agiliumtrade.agiliumtrade.ai",
                "requestTimeout": 60,
                "region": "london",
            },
        )

    @patch("app.broker.metaapi.broker.MetaApi")
    def test_region_omitted_when_unset(self, mock_metaapi_cls: MagicMock) -> None:
        MetaApiBrokerAdapter("tok", _make_config())
        opts = mock_metaapi_cls.call_args.args[1]
        assert "region" not in opts

    @patch("app.broker.metaapi.broker.MetaApi")
    def test_empty_token_rejected(self, mock_metaapi_cls: MagicMock) -> None:
        with pytest.raises(BrokerAuthError, match="Token"):
            MetaApiBrokerAdapter("", _make_config())
        mock_metaapi_cls.assert_not_called()

    @patch("app.broker.metaapi.broker.MetaApi")
    def test_client_option_rejection_is_translated(
        self,
        mock_metaapi_cls: MagicMock,
    ) -> None:
        mock_metaapi_cls.side_effect = ValidationException(
            "Parameter requestTimeout must be a number",
        )
        with pytest.raises(BrokerConnectionError, match="requestTimeout"):
            MetaApiBrokerAdapter("tok", _make_config(request_timeout="soon"))

    @patch("app.broker.metaapi.broker.MetaApi")
    def test_client_auth_rejection_is_translated(
        self,
        mock_metaapi_cls: MagicMock,
    ) -> None:
        mock_metaapi_cls.side_effect = UnauthorizedException("Invalid auth-token header")
        with pytest.raises(BrokerAuthError):
            MetaApiBrokerAdapter("tok", _make_config())


class TestListAccounts:
    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_flattens_pages(self, mock_metaapi_cls: MagicMock) -> None:
        account_api = _account_api(mock_metaapi_cls)
        # The SDK reports count as the page length, not the directory total.
        account_api.get_accounts_with_classic_scroll_pagination.side_effect = [
            {"items": [make_sdk_account(id="a"), make_sdk_account(id="b")], "count": 2},
            {"items": [make_sdk_account(id="c")], "count": 1},
        ]
        adapter = MetaApiBrokerAdapter("tok", _make_config())

        accounts = await adapter.list_accounts()

        assert [a.id for a in accounts] == ["a", "b", "c"]
        calls = account_api.get_accounts_with_classic_scroll_pagination.call_args_list
        assert calls[0].args[0] == {"offset": 0, "limit": 2}
        assert calls[1].args[0] == {"offset": 2, "limit": 2}

    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_full_last_page_needs_one_more_call(
        self,
        mock_metaapi_cls: MagicMock,
    ) -> None:
        account_api = _account_api(mock_metaapi_cls)
        account_api.get_accounts_with_classic_scroll_pagination.side_effect = [
            {"items": [make_sdk_account(id="a"), make_sdk_account(id="b")], "count": 2},
            {"items": [], "count": 0},
        ]
        adapter = MetaApiBrokerAdapter("tok", _make_config())

        accounts = await adapter.list_accounts()

        assert [a.id for a in accounts] == ["a", "b"]
        assert account_api.get_accounts_with_classic_scroll_pagination.await_count == 2

    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_empty_directory(self, mock_metaapi_cls: MagicMock) -> None:
        account_api = _account_api(mock_metaapi_cls)
        account_api.get_accounts_with_classic_scroll_pagination.return_value = {
            "items": [],
            "count": 0,
        }
        adapter = MetaApiBrokerAdapter("tok", _make_config())
        assert await adapter.list_accounts() == []
        assert account_api.get_accounts_with_classic_scroll_pagination.await_count == 1

    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_unauthorized_maps_to_auth_error(
        self,
        mock_metaapi_cls: MagicMock,
    ) -> None:
        account_api = _account_api(mock_metaapi_cls)
        account_api.get_accounts_with_classic_scroll_pagination.side_effect = (
            UnauthorizedException("Invalid auth-token header")
        )
        adapter = MetaApiBrokerAdapter("bad", _make_config())
        with pytest.raises(BrokerAuthError, match="Invalid auth-token header"):
            await adapter.list_accounts()


class TestGetAccount:
    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_returns_handle(self, mock_metaapi_cls: MagicMock) -> None:
        account_api = _account_api(mock_metaapi_cls)
        account_api.get_account.return_value = make_sdk_account(
            id="acc-9",
            state="UNDEPLOYED",
        )
        adapter = MetaApiBrokerAdapter("tok", _make_config())

        handle = await adapter.get_account("acc-9")

        account_api.get_account.assert_awaited_once_with("acc-9")
        assert handle.id == "acc-9"
        assert handle.state == "UNDEPLOYED"

    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_not_found(self, mock_metaapi_cls: MagicMock) -> None:
        account_api = _account_api(mock_metaapi_cls)
        account_api.get_account.side_effect = NotFoundException(
            "Trading account with id missing not found",
        )
        adapter = MetaApiBrokerAdapter("tok", _make_config())
        with pytest.raises(BrokerNotFoundError, match="not found"):
            await adapter.get_account("missing")

    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_other_api_error_keeps_status(
        self,
        mock_metaapi_cls: MagicMock,
    ) -> None:
        account_api = _account_api(mock_metaapi_cls)
        account_api.get_account.side_effect = ValidationException("Bad id")
        adapter = MetaApiBrokerAdapter("tok", _make_config())
        with pytest.raises(BrokerOperationError) as exc_info:
            await adapter.get_account("??")
        assert exc_info.value.code == "400"


class TestClose:
    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_closes_connections_then_client(
        self,
        mock_metaapi_cls: MagicMock,
    ) -> None:
        account_api = _account_api(mock_metaapi_cls)
        sdk_conn = _make_sdk_connection()
        account_api.get_account.return_value = make_sdk_account(
            get_rpc_connection=MagicMock(return_value=sdk_conn),
        )
        adapter = MetaApiBrokerAdapter("tok", _make_config())
        handle = await adapter.get_account("acc-1")
        handle.get_rpc_connection()

        await adapter.close()

        sdk_conn.close.assert_awaited_once()
        mock_metaapi_cls.return_value.close.assert_called_once_with()

    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_client_closed_without_connections(
        self,
        mock_metaapi_cls: MagicMock,
    ) -> None:
        adapter = MetaApiBrokerAdapter("tok", _make_config())
        await adapter.close()
        mock_metaapi_cls.return_value.close.assert_called_once_with()

    @patch("app.broker.metaapi.broker.MetaApi")
    async def test_connection_close_failure_still_closes_client(
        self,
        mock_metaapi_cls: MagicMock,
    ) -> None:
        account_api = _account_api(mock_metaapi_cls)
        sdk_conn = _make_sdk_connection()
        sdk_conn.close = AsyncMock(side_effect=RuntimeError("socket gone"))
        account_api.get_account.return_value = make_sdk_account(
            get_rpc_connection=MagicMock(return_value=sdk_conn),
        )
        adapter = MetaApiBrokerAdapter("tok", _make_config())
        (await adapter.get_account("acc-1")).get_rpc_connection()

        await adapter.close()

        mock_metaapi_cls.return_value.close.assert_called_once_with()


class TestAccountHandle:
    async def test_deploy_and_wait(self) -> None:
        sdk_account = make_sdk_account(
            deploy=AsyncMock(),
            wait_deployed=AsyncMock(),
        )
        handle = MetaApiAccountHandle(sdk_account)
        await handle.deploy()
        await handle.wait_deployed()
        sdk_account.deploy.assert_awaited_once()
        sdk_account.wait_deployed.assert_awaited_once()

    async def test_wait_deployed_timeout_is_provisioning_error(self) -> None:
        sdk_account = make_sdk_account(
            wait_deployed=AsyncMock(side_effect=TimeoutException("Timed out waiting")),
        )
        handle = MetaApiAccountHandle(sdk_account)
        with pytest.raises(BrokerProvisioningError, match="Timed out"):
            await handle.wait_deployed()

    def test_region_mismatch_is_connection_error(self) -> None:
        sdk_account = make_sdk_account(
            get_rpc_connection=MagicMock(
                side_effect=ValidationException(
                    "Account acc-1 is not on specified region london",
                ),
            ),
        )
        with pytest.raises(BrokerConnectionError, match="region"):
            MetaApiAccountHandle(sdk_account).get_rpc_connection()

    def test_opened_connections_are_tracked(self) -> None:
        opened: list[MetaApiTradingConnection] = []
        sdk_account = make_sdk_account(get_rpc_connection=MagicMock())
        connection = MetaApiAccountHandle(sdk_account, opened).get_rpc_connection()
        assert opened == [connection]


class TestTradingConnection:
    async def test_sync_timeout_is_connection_error(self) -> None:
        conn = _make_sdk_connection()
        conn.wait_synchronized = AsyncMock(
            side_effect=TimeoutException("not synchronized"),
        )
        with pytest.raises(BrokerConnectionError, match="not synchronized"):
            await MetaApiTradingConnection(conn).wait_synchronized()

    async def test_transport_failure_is_connection_error(self) -> None:
        conn = _make_sdk_connection()
        conn.connect = AsyncMock(side_effect=ConnectionResetError("reset by peer"))
        with pytest.raises(BrokerConnectionError, match="reset by peer"):
            await MetaApiTradingConnection(conn).connect()

    async def test_account_information(self) -> None:
        info = await MetaApiTradingConnection(
            _make_sdk_connection(),
        ).get_account_information()
        assert info.currency == "EUR"
        assert float(info.equity) == 1001.5

    async def test_buy_order_forwards_arguments(self) -> None:
        conn = _make_sdk_connection()
        result = await MetaApiTradingConnection(conn).create_market_buy_order(
            "EURUSD",
            0.1,
            1.08,
            None,
        )
        conn.create_market_buy_order.assert_awaited_once_with("EURUSD", 0.1, 1.08, None)
        conn.create_market_sell_order.assert_not_awaited()
        assert result.order_id == "555"

    async def test_sell_order(self) -> None:
        conn = _make_sdk_connection()
        await MetaApiTradingConnection(conn).create_market_sell_order("XAUUSD", 1.0)
        conn.create_market_sell_order.assert_awaited_once_with("XAUUSD", 1.0, None, None)

    async def test_trade_rejection_keeps_code(self) -> None:
        conn = _make_sdk_connection()
        conn.create_market_buy_order = AsyncMock(
            side_effect=TradeException("No money", 10019, "TRADE_RETCODE_NO_MONEY"),
        )
        with pytest.raises(BrokerOperationError) as exc_info:
            await MetaApiTradingConnection(conn).create_market_buy_order("EURUSD", 100)
        assert exc_info.value.code == "TRADE_RETCODE_NO_MONEY"
        assert str(exc_info.value) == "No money"

    async def test_positions(self) -> None:
        positions = await MetaApiTradingConnection(
            _make_sdk_connection(),
        ).get_positions()
        assert [p.id for p in positions] == ["46214692"]

    async def test_close_position(self) -> None:
        conn = _make_sdk_connection()
        result = await MetaApiTradingConnection(conn).close_position("46214692")
        conn.close_position.assert_awaited_once_with("46214692")
        assert result.order_id == "777"

    async def test_deals_forward_range(self) -> None:
        conn = _make_sdk_connection()
        start = datetime(2026, 1, 1, tzinfo=UTC)
        end = datetime(2026, 1, 31, tzinfo=UTC)
        deals = await MetaApiTradingConnection(conn).get_deals_by_time_range(start, end)
        conn.get_deals_by_time_range.assert_awaited_once_with(start, end)
        assert len(deals) == 1

    async def test_unrelated_exceptions_propagate(self) -> None:
        conn = _make_sdk_connection()
        conn.get_positions = AsyncMock(side_effect=KeyError("boom"))
        with pytest.raises(KeyError):
            await MetaApiTradingConnection(conn).get_positions()
