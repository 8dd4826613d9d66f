"""Custom exceptions for the BudgetBot core."""

from enum import Enum
from typing import Optional


class BudgetBotError(Exception):
    """Base exception for all BudgetBot core errors."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransportKind(str, Enum):
    """Distinguishable transport failure kinds."""
    NETWORK = "network"      # could not reach the server
    TIMEOUT = "timeout"      # request aborted by the client-side timeout
    HTTP = "http"            # server answered with an error status


class TransportError(BudgetBotError):
    """
    Raised by a transport when a request fails.

    Preserves the message and, where applicable, the kind and HTTP status
    so the classifier can tell transport faults from aborts.
    """

    def __init__(
        self,
        message: str,
        kind: TransportKind = TransportKind.HTTP,
        status: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        super().__init__(message, details)
        self.kind = kind
        self.status = status


class MutationError(BudgetBotError):
    """Raised when a mutation request cannot be built from its inputs."""

    pass


class ReceiptScanError(BudgetBotError):
    """Raised when a receipt scan fails for good (after any retries)."""

    pass
