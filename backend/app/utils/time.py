"""UTC helpers.

All times are UTC. Provider timestamps arrive either as aware datetimes
(the SDK converts them) or as ISO 8601 strings with a Z suffix.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Return the current UTC datetime, timezone-aware."""
    return datetime.now(UTC)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 with millisecond precision and Z suffix.

    Output format: YYYY-MM-DDTHH:MM:SS.fffZ
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    utc_dt = dt.astimezone(UTC)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_dt.microsecond // 1000:03d}Z"


def parse_timestamp(s: str) -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive input is taken to be UTC.
    """
    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def lookback_window(days: int, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return (now - days, now)."""
    end = now if now is not None else utc_now()
    return end - timedelta(days=days), end
