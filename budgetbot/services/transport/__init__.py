"""Transport services package."""

from budgetbot.services.transport.interface import TransportInterface
from budgetbot.services.transport.http_client import HttpTransport
from budgetbot.services.transport.wallets import WalletApiClient

__all__ = [
    "HttpTransport",
    "TransportInterface",
    "WalletApiClient",
]
