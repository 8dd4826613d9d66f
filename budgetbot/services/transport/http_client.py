"""
HTTP Transport using httpx

Thin adapter from the TransportInterface to the BudgetBot REST API.

The only job of this module is to surface failures in a shape the
classifier understands:
- client-side timeout         → TransportError(kind=TIMEOUT)
- connection / protocol fault → TransportError(kind=NETWORK)
- 401                         → message "Unauthorized"
- 402 or INSUFFICIENT_CREDITS → message "INSUFFICIENT_CREDITS"
- 5xx                         → message "Request failed: <status>"
- other 4xx                   → the server's message/error field

No retries happen here. Retry policy belongs to the caller, which knows
whether the operation is idempotent.
"""

from typing import Any, Optional

import httpx
import structlog

from budgetbot.config import ApiSettings, get_settings
from budgetbot.errors.exceptions import TransportError, TransportKind
from budgetbot.services.transport.interface import TransportInterface

logger = structlog.get_logger("budgetbot.transport")

NO_CREDITS_CODE = "INSUFFICIENT_CREDITS"


class HttpTransport(TransportInterface):
    """
    httpx-backed transport.

    The AsyncClient is created lazily so constructing a transport never
    touches the network; pass `client` to inject one (tests use
    httpx.MockTransport).
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[ApiSettings] = None,
    ):
        self._settings = settings or get_settings().api
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                timeout=self._settings.timeout_seconds,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
    ) -> Any:
        client = self._get_client()

        try:
            response = await client.request(method, path, json=body)
        except httpx.TimeoutException as e:
            logger.warning("request_timeout", method=method, path=path)
            raise TransportError(
                f"Request timeout: {method} {path}",
                kind=TransportKind.TIMEOUT,
            ) from e
        except httpx.TransportError as e:
            logger.warning("request_network_error", method=method, path=path, error=str(e))
            raise TransportError(
                f"Network request failed: {e}",
                kind=TransportKind.NETWORK,
            ) from e

        if response.status_code >= 400:
            raise self._error_for(response)

        # Some endpoints return an empty body (204 etc.)
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("response_not_json", method=method, path=path)
            return None

    def _error_for(self, response: httpx.Response) -> TransportError:
        """Map an error response to a TransportError."""
        status = response.status_code

        payload: Any = None
        try:
            payload = response.json()
        except ValueError:
            # Could not parse error body
            payload = None

        server_message = None
        code = None
        if isinstance(payload, dict):
            server_message = payload.get("message") or payload.get("error")
            code = payload.get("code")

        if status == 401:
            message = "Unauthorized"
        elif status == 402 or code == NO_CREDITS_CODE or (
            isinstance(server_message, str) and NO_CREDITS_CODE in server_message
        ):
            message = NO_CREDITS_CODE
        elif status >= 500:
            message = f"Request failed: {status}"
        else:
            message = str(server_message) if server_message else f"Request failed: {status}"

        logger.info("request_failed", status=status, message=message)
        return TransportError(
            message,
            kind=TransportKind.HTTP,
            status=status,
            details={"body": payload} if payload is not None else None,
        )
