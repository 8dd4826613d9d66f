"""Errors package: exception hierarchy and failure classification."""

from budgetbot.errors.exceptions import (
    BudgetBotError,
    MutationError,
    ReceiptScanError,
    TransportError,
    TransportKind,
)
from budgetbot.errors.classifier import classify, failure_message

__all__ = [
    "BudgetBotError",
    "MutationError",
    "ReceiptScanError",
    "TransportError",
    "TransportKind",
    "classify",
    "failure_message",
]
