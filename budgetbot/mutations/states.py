"""
Mutation States

An optimistic mutation of one resource is always in exactly one of:

    Idle ──submit──▶ Pending(snapshot) ──ok────▶ Committed
                                       └─fail──▶ RolledBack(error)

Committed and RolledBack behave like Idle for the next submit.

DESIGN DECISION: States are frozen dataclasses, not boolean flags.
Pending cannot be constructed without a snapshot, so "pending with
nothing to roll back to" is unrepresentable.
"""

from dataclasses import dataclass
from typing import Any, Union

from budgetbot.models.classification import ClassifiedError


@dataclass(frozen=True)
class MutationSnapshot:
    """Deep copy of the cached value taken before a speculative change."""
    resource_key: str
    value: Any


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Pending:
    snapshot: MutationSnapshot


@dataclass(frozen=True)
class Committed:
    result: Any = None


@dataclass(frozen=True)
class RolledBack:
    error: ClassifiedError
    message: str


MutationState = Union[Idle, Pending, Committed, RolledBack]

IDLE = Idle()
