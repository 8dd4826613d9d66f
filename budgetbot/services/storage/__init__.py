"""
Storage Services Package

Provides the cache and audit-sink interfaces the core depends on, plus
in-memory implementations. Host applications plug in their own.
"""

from budgetbot.services.storage.interface import (
    AuditSinkInterface,
    CacheInterface,
)
from budgetbot.services.storage.memory import (
    InMemoryAuditSink,
    InMemoryCache,
)

__all__ = [
    # Interfaces
    "AuditSinkInterface",
    "CacheInterface",
    # In-memory implementation
    "InMemoryAuditSink",
    "InMemoryCache",
]
