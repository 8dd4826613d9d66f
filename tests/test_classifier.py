"""Tests for the failure classifier."""

import asyncio

import httpx
import pytest

from budgetbot.errors import TransportError, TransportKind, classify, failure_message
from budgetbot.models import ErrorKind


class AbortError(Exception):
    """Stands in for an abort raised by a host runtime."""


class TestClassify:
    """Tests for classify()."""

    def test_unauthorized(self):
        error = classify(Exception("Unauthorized"))
        assert error.kind == ErrorKind.UNAUTHORIZED
        assert error.retryable is False

    def test_unauthorized_must_match_exactly(self):
        """Test that only the exact marker counts."""
        assert classify(Exception("Unauthorized access")).kind == ErrorKind.UNKNOWN

    @pytest.mark.parametrize("message", [
        "INSUFFICIENT_CREDITS",
        "Error: INSUFFICIENT_CREDITS for receipt scan",
        "Insufficient credits, please top up",
    ])
    def test_no_credits(self, message):
        error = classify(Exception(message))
        assert error.kind == ErrorKind.NO_CREDITS
        assert error.retryable is False

    @pytest.mark.parametrize("failure", [
        TypeError("Failed to fetch"),
        TypeError("cannot read property"),
        ConnectionError("refused"),
        httpx.ConnectError("connection refused"),
        TransportError("boom", kind=TransportKind.NETWORK),
        Exception("Network request failed"),
        Exception("fetch aborted by proxy"),
    ])
    def test_network(self, failure):
        error = classify(failure)
        assert error.kind == ErrorKind.NETWORK
        assert error.retryable is True

    @pytest.mark.parametrize("failure", [
        AbortError("The operation was aborted"),
        asyncio.TimeoutError(),
        TimeoutError(),
        asyncio.CancelledError(),
        httpx.ReadTimeout("read timed out"),
        TransportError("Request timeout: GET /api/wallets", kind=TransportKind.TIMEOUT),
        Exception("Request timeout"),
    ])
    def test_timeout(self, failure):
        error = classify(failure)
        assert error.kind == ErrorKind.TIMEOUT
        assert error.retryable is True

    @pytest.mark.parametrize("failure", [
        Exception("Request failed: 500"),
        Exception("HTTP 503 Service Unavailable"),
        TransportError("Bad gateway", status=502),
    ])
    def test_server(self, failure):
        error = classify(failure)
        assert error.kind == ErrorKind.SERVER
        assert error.retryable is True

    @pytest.mark.parametrize("failure", [
        Exception("Validation failed"),
        Exception("Request failed: 404"),
        Exception("id 5000 not found"),
        ValueError(""),
    ])
    def test_unknown(self, failure):
        error = classify(failure)
        assert error.kind == ErrorKind.UNKNOWN
        assert error.retryable is True

    @pytest.mark.parametrize("failure", [None, "Unauthorized", 42, {"message": "x"}])
    def test_non_exceptions_are_unknown(self, failure):
        """Test that only exceptions are inspected."""
        assert classify(failure).kind == ErrorKind.UNKNOWN

    def test_first_rule_wins(self):
        """Test that a credits message beats the network kind."""
        failure = TransportError("INSUFFICIENT_CREDITS", kind=TransportKind.NETWORK)
        assert classify(failure).kind == ErrorKind.NO_CREDITS

    def test_message_attribute_is_preferred(self):
        failure = TransportError("Unauthorized", status=401, details={"path": "/api/x"})
        assert classify(failure).kind == ErrorKind.UNAUTHORIZED


class TestFailureMessage:
    """Tests for failure_message()."""

    def test_exception(self):
        assert failure_message(Exception("boom")) == "boom"

    def test_exception_without_message(self):
        assert failure_message(asyncio.TimeoutError()) == "TimeoutError"

    def test_string(self):
        assert failure_message("plain") == "plain"

    def test_other(self):
        assert failure_message(None) == "An unknown error occurred"
