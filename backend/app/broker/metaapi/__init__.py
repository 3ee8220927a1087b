"""MetaApi cloud broker implementation."""

from app.broker.metaapi.broker import MetaApiBrokerAdapter

__all__ = [
    "MetaApiBrokerAdapter",
]
