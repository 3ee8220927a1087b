"""Request-to-trading-session gateway.

Re-exports the operation coroutines for convenient imports:
    from app.gateway import execute_trade, close_all_positions
"""

from app.gateway.operations import (
    check_connection,
    close_all_positions,
    close_position,
    execute_trade,
    get_history,
    get_positions,
    list_accounts,
)
from app.gateway.session import (
    bound_broker,
    ensure_deployed,
    open_account,
    open_session,
    open_synchronized_connection,
)

__all__ = [
    "bound_broker",
    "check_connection",
    "close_all_positions",
    "close_position",
    "ensure_deployed",
    "execute_trade",
    "get_history",
    "get_positions",
    "list_accounts",
    "open_account",
    "open_session",
    "open_synchronized_connection",
]
