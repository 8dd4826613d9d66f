"""Optimistic mutation package: snapshot, apply, commit or roll back."""

from budgetbot.mutations.states import (
    IDLE,
    Committed,
    Idle,
    MutationSnapshot,
    MutationState,
    Pending,
    RolledBack,
)
from budgetbot.mutations.coordinator import OptimisticMutationCoordinator
from budgetbot.mutations.reorder import build_reorder_payload

__all__ = [
    # States
    "IDLE",
    "Committed",
    "Idle",
    "MutationSnapshot",
    "MutationState",
    "Pending",
    "RolledBack",
    # Coordinator
    "OptimisticMutationCoordinator",
    "build_reorder_payload",
]
