"""
Abstract Storage Interfaces

DESIGN DECISION: The core never chooses a persistence mechanism.
It talks to two small interfaces:
1. CacheInterface - key-addressed client state (wallet lists, tag order)
   that the optimistic coordinator snapshots, overwrites and invalidates
2. AuditSinkInterface - optional append-only destination for audit events

The interfaces are intentionally minimal. Whatever query cache the UI
uses only has to support read, write and invalidate.
"""

from abc import ABC, abstractmethod
from typing import Any

from budgetbot.models.audit import AuditEvent


class CacheInterface(ABC):
    """
    Key-addressed client cache.

    The Optimistic Mutation Coordinator is the only writer while a
    mutation is pending for a key.
    """

    @abstractmethod
    def read(self, key: str) -> Any:
        """
        Return the cached value for key, or None if nothing is cached.
        """
        pass

    @abstractmethod
    def write(self, key: str, value: Any) -> None:
        """
        Replace the cached value for key.
        """
        pass

    @abstractmethod
    def invalidate(self, key: str) -> None:
        """
        Mark key stale so the next read refetches from the server.

        Implementations may keep serving the stale value until the
        refetch completes.
        """
        pass


class AuditSinkInterface(ABC):
    """
    Append-only destination for audit events.

    We never delete or modify audit events.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event.

        Returns:
            True if persisted successfully
        """
        pass
