"""
Wallet API Client

Typed wrappers around the wallet endpoints the reconciliation layer uses.
"""

from decimal import Decimal
from typing import Any, Optional, Union

from budgetbot.models.wallet import CalibrationResult, ReorderItem, Wallet
from budgetbot.normalization import normalize_as
from budgetbot.services.transport.interface import TransportInterface


WALLETS_PATH = "/api/wallets"


class WalletApiClient:
    """Wallet list, calibration and reorder calls."""

    def __init__(self, transport: TransportInterface):
        self._transport = transport

    async def list_wallets(self, limit: int = 50) -> list[Wallet]:
        """
        Fetch wallets.

        The endpoint returns a bare list or a paginated envelope depending
        on query parameters; both normalize to a list.
        """
        path = f"{WALLETS_PATH}?limit={limit}"
        response = await self._transport.get(path)
        return normalize_as(response, Wallet, source=path)

    async def calibrate(
        self,
        wallet_id: int,
        actual_balance: Union[Decimal, float, str],
    ) -> CalibrationResult:
        """
        Calibrate one wallet to the balance the user reported.

        The server creates a correcting transaction when the actual
        balance is lower than recorded.
        """
        response = await self._transport.post(
            f"{WALLETS_PATH}/{wallet_id}/calibrate",
            {"actualBalance": float(actual_balance)},
        )
        return CalibrationResult.model_validate(response or {})

    async def reorder(
        self,
        payload: list[ReorderItem],
        path: Optional[str] = None,
    ) -> Any:
        """Send a new canonical order. The server is authoritative afterwards."""
        return await self._transport.patch(
            path or f"{WALLETS_PATH}/reorder",
            {"items": [item.model_dump() for item in payload]},
        )
