"""
Shared test fixtures.

No real API calls in tests: the transport is a scripted fake and the
cache and audit sink are the in-memory implementations.
"""

from typing import Any, Optional

import pytest

from budgetbot.audit import AuditLogger
from budgetbot.config import CalibrationSettings, RetrySettings
from budgetbot.models.wallet import Wallet
from budgetbot.services.storage import InMemoryAuditSink, InMemoryCache
from budgetbot.services.transport import TransportInterface


class FakeTransport(TransportInterface):
    """
    Replays scripted responses in order.

    A scripted exception is raised instead of returned. Once the script
    runs out every request returns None.
    """

    def __init__(self, responses: Optional[list] = None):
        self.responses = list(responses or [])
        self.calls: list[tuple[str, str, Any]] = []

    async def request(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        self.calls.append((method, path, body))
        if not self.responses:
            return None
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


def make_wallet(
    id: int,
    balance: str = "100",
    currency: str = "USD",
    balance_usd: Optional[str] = None,
    is_primary: bool = False,
) -> Wallet:
    return Wallet.model_validate({
        "id": id,
        "name": f"Wallet {id}",
        "type": "card",
        "balance": balance,
        "currency": currency,
        "balanceUsd": balance_usd,
        "isPrimary": is_primary,
    })


@pytest.fixture
def calibration_settings():
    return CalibrationSettings()


@pytest.fixture
def fast_retry():
    """Three attempts, no waiting."""
    return RetrySettings(max_attempts=3, min_wait=0, max_wait=0)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def audit_logger(audit_sink):
    return AuditLogger(audit_sink)
