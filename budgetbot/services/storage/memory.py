"""
In-Memory Storage Implementations

Used by the orchestrator when the host application does not supply its
own cache, and by the test-suite.
"""

from typing import Any, Optional

from budgetbot.models.audit import AuditEvent, AuditEventType
from budgetbot.services.storage.interface import AuditSinkInterface, CacheInterface


class InMemoryCache(CacheInterface):
    """
    Dict-backed cache that remembers which keys were invalidated.

    Invalidation keeps the value (stale-while-revalidate) and records the
    key in `stale_keys`; the host refetches and writes fresh data, which
    clears the mark.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._values: dict[str, Any] = dict(initial or {})
        self.stale_keys: set[str] = set()
        self.invalidations: list[str] = []

    def read(self, key: str) -> Any:
        return self._values.get(key)

    def write(self, key: str, value: Any) -> None:
        self._values[key] = value
        self.stale_keys.discard(key)

    def invalidate(self, key: str) -> None:
        self.stale_keys.add(key)
        self.invalidations.append(key)

    def is_stale(self, key: str) -> bool:
        return key in self.stale_keys


class InMemoryAuditSink(AuditSinkInterface):
    """Keeps audit events in a list, in arrival order."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]
