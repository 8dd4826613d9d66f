"""Services package."""

from budgetbot.services.storage import (
    AuditSinkInterface,
    CacheInterface,
    InMemoryAuditSink,
    InMemoryCache,
)
from budgetbot.services.transport import (
    HttpTransport,
    TransportInterface,
    WalletApiClient,
)

__all__ = [
    # Storage services
    "AuditSinkInterface",
    "CacheInterface",
    "InMemoryAuditSink",
    "InMemoryCache",
    # Transport services
    "HttpTransport",
    "TransportInterface",
    "WalletApiClient",
]
