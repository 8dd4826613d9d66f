"""
Response Normalizer

Some endpoints return either a bare list or a paginated envelope
({"data": [...], "total": ...}) depending on query parameters.
Callers should never special-case this, so every list response goes
through normalize() first.

Shapes:
- None                          → []
- list / tuple                  → unchanged (lists by identity)
- mapping with list under data  → the inner list
- anything else                 → [] plus a warning log

CRITICAL: normalize() never raises. Shape drift on the backend must be
visible in the logs without crashing the screen that asked for the list.
"""

from collections.abc import Mapping
from typing import Any, Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

logger = structlog.get_logger("budgetbot.normalization")

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize(response: Any, source: Optional[str] = None) -> list:
    """
    Convert a list-or-envelope payload into a plain list.

    Args:
        response: Parsed JSON of unknown shape
        source: Endpoint or query key, only used in the diagnostic

    Returns:
        The items, or an empty list for unusable shapes
    """
    if response is None:
        return []

    if isinstance(response, list):
        return response

    if isinstance(response, tuple):
        return list(response)

    if isinstance(response, Mapping):
        data = response.get("data")
        if isinstance(data, list):
            return data
        logger.warning(
            "unexpected_response_shape",
            observed_type=type(response).__name__,
            data_type=type(data).__name__ if "data" in response else None,
            keys=sorted(str(k) for k in response.keys())[:10],
            source=source,
        )
        return []

    logger.warning(
        "unexpected_response_shape",
        observed_type=type(response).__name__,
        source=source,
    )
    return []


def normalize_as(
    response: Any,
    model: type[ModelT],
    source: Optional[str] = None,
) -> list[ModelT]:
    """
    Normalize, then validate each item into a pydantic model.

    Items that fail validation are dropped and logged; the rest are
    returned in their original order.
    """
    items: list[ModelT] = []
    for index, raw in enumerate(normalize(response, source=source)):
        try:
            items.append(model.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "response_item_invalid",
                model=model.__name__,
                index=index,
                error_count=e.error_count(),
                source=source,
            )
    return items
