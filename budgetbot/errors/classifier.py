"""
Failure Classifier

Maps any raised failure to a ClassifiedError. Rules are evaluated in
order and the first match wins:

1. Message is exactly "Unauthorized"              → unauthorized (terminal)
2. Message mentions INSUFFICIENT_CREDITS          → no_credits (terminal)
3. Transport / type-conversion error, or message
   mentions a network or fetch failure            → network
4. Abort / cancellation / timeout, or message
   mentions a timeout                             → timeout
5. Message embeds a 5xx status                    → server
6. Anything else                                  → unknown

Only exceptions are inspected. Anything else that ends up in an error
path (a bare string, None, a number) classifies as unknown.

DESIGN DECISION: The classifier is total. It is called from inside
except-blocks, so it must never raise itself.
"""

import asyncio
import re

import httpx

from budgetbot.errors.exceptions import TransportError, TransportKind
from budgetbot.models.classification import ClassifiedError, ErrorKind


UNAUTHORIZED_MARKER = "Unauthorized"
NO_CREDITS_MARKERS = ("insufficient_credits", "insufficient credits")
NETWORK_MARKERS = ("network", "fetch")
TIMEOUT_MARKERS = ("timeout", "timed out")

_SERVER_STATUS = re.compile(r"\b5\d{2}\b")


def _message_of(failure: BaseException) -> str:
    message = getattr(failure, "message", None)
    if isinstance(message, str):
        return message
    try:
        return str(failure)
    except Exception:
        return ""


def _is_network_kind(failure: BaseException) -> bool:
    if isinstance(failure, TransportError):
        return failure.kind == TransportKind.NETWORK
    if isinstance(failure, httpx.TimeoutException):
        return False
    return isinstance(failure, (TypeError, ConnectionError, httpx.TransportError))


def _is_abort_kind(failure: BaseException) -> bool:
    if isinstance(failure, TransportError):
        return failure.kind == TransportKind.TIMEOUT
    if isinstance(failure, (asyncio.CancelledError, asyncio.TimeoutError, TimeoutError)):
        return True
    if isinstance(failure, httpx.TimeoutException):
        return True
    return type(failure).__name__ == "AbortError"


def _has_server_status(failure: BaseException, message: str) -> bool:
    status = getattr(failure, "status", None)
    if isinstance(status, int) and 500 <= status <= 599:
        return True
    return _SERVER_STATUS.search(message) is not None


def classify(failure: object) -> ClassifiedError:
    """Classify a raised failure. Never raises."""
    if not isinstance(failure, BaseException):
        return ClassifiedError.of(ErrorKind.UNKNOWN)

    message = _message_of(failure)
    lowered = message.lower()

    if message == UNAUTHORIZED_MARKER:
        return ClassifiedError.of(ErrorKind.UNAUTHORIZED)

    if any(marker in lowered for marker in NO_CREDITS_MARKERS):
        return ClassifiedError.of(ErrorKind.NO_CREDITS)

    if _is_network_kind(failure) or any(m in lowered for m in NETWORK_MARKERS):
        return ClassifiedError.of(ErrorKind.NETWORK)

    if _is_abort_kind(failure) or any(m in lowered for m in TIMEOUT_MARKERS):
        return ClassifiedError.of(ErrorKind.TIMEOUT)

    if _has_server_status(failure, message):
        return ClassifiedError.of(ErrorKind.SERVER)

    return ClassifiedError.of(ErrorKind.UNKNOWN)


def failure_message(failure: object) -> str:
    """Best-effort human readable message for any failure value."""
    if isinstance(failure, BaseException):
        return _message_of(failure) or type(failure).__name__
    if isinstance(failure, str):
        return failure
    return "An unknown error occurred"
