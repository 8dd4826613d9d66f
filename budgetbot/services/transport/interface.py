"""
Abstract Transport Interface

DESIGN DECISION: The core is transport-agnostic.
Every remote call goes through this interface so that:
1. The httpx adapter can be swapped (e.g. for a mobile bridge)
2. Tests can use fakes without a network
3. Failures always arrive as TransportError, which keeps a message
   and a kind the classifier can distinguish
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class TransportInterface(ABC):
    """
    JSON-over-HTTP transport.

    Every method returns parsed JSON (or None for empty bodies) and
    raises TransportError on failure.
    """

    @abstractmethod
    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
    ) -> Any:
        """
        Issue a request.

        Args:
            method: HTTP method
            path: Path relative to the API base URL
            body: JSON-serializable request body

        Returns:
            Parsed JSON body, or None when the server sent none

        Raises:
            TransportError: On network failure, timeout or error status
        """
        pass

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, body: Optional[Any] = None) -> Any:
        return await self.request("POST", path, body)

    async def patch(self, path: str, body: Optional[Any] = None) -> Any:
        return await self.request("PATCH", path, body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
