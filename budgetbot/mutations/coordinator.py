"""
Optimistic Mutation Coordinator

Applies a speculative change to cached state before the server confirms
it, then commits or rolls back.

Protocol for one submit:
1. Capture a snapshot of the cached value        (Idle → Pending)
2. Write the speculative value to the cache       (UI updates now)
3. Await the request
4a. Success: drop snapshot, invalidate the key    (→ Committed)
    so the next read picks up the server's authoritative state
4b. Failure: restore the snapshot verbatim,       (→ RolledBack)
    report the classified error once, drop snapshot

CRITICAL: While a mutation is Pending the coordinator is the only
writer for that key. A second submit for the same key waits until the
first one resolves and then snapshots the resolved state; snapshots
never stack.

The coordinator has no timeout of its own. A transport timeout arrives
as a failure, classified as `timeout`, and triggers the rollback.
"""

import asyncio
import copy
import inspect
from typing import Any, Awaitable, Callable, Optional

import structlog

from budgetbot.audit import AuditLogger
from budgetbot.errors import classify, failure_message
from budgetbot.models.classification import ClassifiedError
from budgetbot.mutations.states import (
    IDLE,
    Committed,
    MutationSnapshot,
    MutationState,
    Pending,
    RolledBack,
)
from budgetbot.services.storage import CacheInterface

logger = structlog.get_logger("budgetbot.mutations")

ErrorObserver = Callable[[str, ClassifiedError, str], Any]


class OptimisticMutationCoordinator:
    """
    Snapshot / apply / commit-or-rollback over a key-addressed cache.

    Args:
        cache: The client cache holding the resources
        audit_logger: Optional audit trail
        on_error: Called once per rolled-back mutation with
            (resource_key, classified_error, message); this is how the
            failure reaches the user
    """

    def __init__(
        self,
        cache: CacheInterface,
        audit_logger: Optional[AuditLogger] = None,
        on_error: Optional[ErrorObserver] = None,
    ):
        self._cache = cache
        self._audit_logger = audit_logger
        self._on_error = on_error
        self._states: dict[str, MutationState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def state(self, resource_key: str) -> MutationState:
        """Current state of a resource (Idle if never mutated)."""
        return self._states.get(resource_key, IDLE)

    def is_pending(self, resource_key: str) -> bool:
        return isinstance(self.state(resource_key), Pending)

    def _lock_for(self, resource_key: str) -> asyncio.Lock:
        lock = self._locks.get(resource_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[resource_key] = lock
        return lock

    async def submit(
        self,
        resource_key: str,
        apply: Callable[[Any], Any],
        request: Callable[[], Awaitable[Any]],
    ) -> MutationState:
        """
        Run one optimistic mutation.

        Args:
            resource_key: Cache key of the affected resource
            apply: Pure function from the current cached value to the
                speculative one. It receives a copy and may mutate it.
            request: Coroutine function performing the server call

        Returns:
            Committed(result) or RolledBack(error, message)
        """
        async with self._lock_for(resource_key):
            current = self._cache.read(resource_key)
            snapshot = MutationSnapshot(resource_key, copy.deepcopy(current))
            self._states[resource_key] = Pending(snapshot)

            try:
                self._cache.write(resource_key, apply(copy.deepcopy(current)))
                if self._audit_logger:
                    await self._audit_logger.log_mutation_applied(resource_key)
                result = await request()
            except asyncio.CancelledError as e:
                # Caller went away; nobody to notify, but never leave the
                # speculative value behind
                await self._rollback(snapshot, e, notify=False)
                raise
            except Exception as e:
                return await self._rollback(snapshot, e, notify=True)

            self._states[resource_key] = Committed(result)
            self._cache.invalidate(resource_key)
            if self._audit_logger:
                await self._audit_logger.log_mutation_committed(resource_key)
            return self._states[resource_key]

    async def _rollback(
        self,
        snapshot: MutationSnapshot,
        failure: BaseException,
        notify: bool,
    ) -> RolledBack:
        key = snapshot.resource_key
        self._cache.write(key, snapshot.value)

        error = classify(failure)
        message = failure_message(failure)
        state = RolledBack(error=error, message=message)
        self._states[key] = state

        logger.warning(
            "mutation_rolled_back",
            resource_key=key,
            error_kind=error.kind.value,
            message=message,
        )
        if self._audit_logger:
            await self._audit_logger.log_mutation_rolled_back(
                resource_key=key,
                error_kind=error.kind.value,
                error_message=message,
            )
        if notify and self._on_error is not None:
            maybe = self._on_error(key, error, message)
            if inspect.isawaitable(maybe):
                await maybe
        return state
