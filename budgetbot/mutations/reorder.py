"""Reorder payload construction."""

from collections.abc import Mapping
from typing import Any, Iterable

from budgetbot.errors import MutationError
from budgetbot.models.wallet import ReorderItem


def _identity(item: Any, key: str) -> Any:
    if isinstance(item, (int, str)) and not isinstance(item, bool):
        return item
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


def build_reorder_payload(items: Iterable[Any], key: str = "id") -> list[ReorderItem]:
    """
    Rank items densely from 1 in their current order.

    Only the identity of each item is read. Items may be models, mappings
    or bare ids.

    Raises:
        MutationError: If an item carries no identity
    """
    payload = []
    for position, item in enumerate(items, start=1):
        identity = _identity(item, key)
        if identity is None:
            raise MutationError(
                f"Item at position {position} has no '{key}'",
                details={"position": position},
            )
        payload.append(ReorderItem(id=identity, position=position))
    return payload
