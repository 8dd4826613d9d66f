"""
Receipt Scan Client

Uploads a receipt image to the AI scanning endpoint and returns the
extracted items.

Flow:
1. Validate the request (non-empty image, image mime type)
2. POST it, retrying failures the classifier marks retryable
3. Normalize the response into a ScannedReceipt
4. On final failure, return the classified error instead of raising

CRITICAL: Unauthorized and out-of-credits failures are never retried.
Retrying them burns time and, for credits, would only fail again until
the user tops up.

DESIGN DECISION: Retries use tenacity with exponential backoff, the
same policy shape as every other remote call in the project; attempts
and wait bounds come from RetrySettings.
"""

from collections.abc import Mapping
from typing import Any, Optional

import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from budgetbot.audit import AuditLogger
from budgetbot.config import RetrySettings, get_settings
from budgetbot.errors import ReceiptScanError, classify, failure_message
from budgetbot.models.receipt import (
    ReceiptItem,
    ReceiptScanOutcome,
    ReceiptScanRequest,
    ScannedReceipt,
)
from budgetbot.normalization import normalize_as
from budgetbot.services.transport import TransportInterface

logger = structlog.get_logger("budgetbot.receipts")

SCAN_PATH = "/api/ai/scan-receipt"


def _is_retryable(failure: BaseException) -> bool:
    # Cancellation is not a failure of the scan; let it propagate
    if not isinstance(failure, Exception):
        return False
    return classify(failure).retryable


def parse_receipt(response: Any) -> ScannedReceipt:
    """
    Build a ScannedReceipt from the endpoint response.

    Accepts the receipt at the top level or wrapped in a `receipt` key.
    Items that fail validation are dropped; an unreadable header keeps
    the items.
    """
    if not isinstance(response, Mapping):
        logger.warning(
            "unexpected_response_shape",
            source=SCAN_PATH,
            observed_type=type(response).__name__,
        )
        return ScannedReceipt()

    body = response.get("receipt", response)
    if not isinstance(body, Mapping):
        body = {}

    items = normalize_as(body.get("items"), ReceiptItem, source=SCAN_PATH)
    header = {k: body.get(k) for k in ("merchant", "total", "currency", "date")}
    try:
        return ScannedReceipt(**header, items=items)
    except ValidationError as e:
        logger.warning("receipt_header_invalid", errors=e.error_count())
        return ScannedReceipt(items=items)


class ReceiptScanClient:
    """
    AI receipt scanning with classified retries.

    Usage:
        client = ReceiptScanClient(transport)
        outcome = await client.scan(image_b64, "image/jpeg")
        if outcome.ok:
            show(outcome.items)
        else:
            offer(outcome.error.remediation)
    """

    def __init__(
        self,
        transport: TransportInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[RetrySettings] = None,
    ):
        self._transport = transport
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().retry

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.min_wait,
                max=self._settings.max_wait,
            ),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

    async def scan(self, image_b64: str, mime_type: str = "image/jpeg") -> ReceiptScanOutcome:
        """
        Scan one receipt image.

        Args:
            image_b64: Base64-encoded image bytes
            mime_type: Image mime type

        Returns:
            ReceiptScanOutcome with either the receipt or the classified
            error of the last attempt

        Raises:
            pydantic.ValidationError: If the image is empty or not an image type
        """
        request = ReceiptScanRequest(image_b64=image_b64, mime_type=mime_type)
        attempts = 0

        try:
            async for attempt in self._retrying():
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if attempts > 1:
                        logger.info("receipt_scan_retry", attempt=attempts)
                    response = await self._transport.post(SCAN_PATH, request.to_body())
        except Exception as e:
            error = classify(e)
            message = failure_message(e)
            logger.error(
                "receipt_scan_failed",
                error_kind=error.kind.value,
                message=message,
                attempts=attempts,
            )
            if self._audit_logger:
                await self._audit_logger.log_receipt_scan_failed(
                    error_kind=error.kind.value,
                    error_message=message,
                    attempts=attempts,
                )
            return ReceiptScanOutcome(error=error, message=message, attempts=attempts)

        receipt = parse_receipt(response)
        if self._audit_logger:
            await self._audit_logger.log_receipt_scan_completed(
                item_count=len(receipt.items),
                attempts=attempts,
            )
        return ReceiptScanOutcome(receipt=receipt, attempts=attempts)

    async def scan_or_raise(self, image_b64: str, mime_type: str = "image/jpeg") -> ScannedReceipt:
        """Like scan(), but raise ReceiptScanError on failure."""
        outcome = await self.scan(image_b64, mime_type)
        if outcome.error is not None:
            raise ReceiptScanError(
                outcome.message or "Receipt scan failed",
                details={
                    "kind": outcome.error.kind.value,
                    "attempts": outcome.attempts,
                },
            )
        return outcome.receipt
