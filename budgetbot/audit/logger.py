"""
Audit Logger

DESIGN DECISION: Every significant reconciliation action is logged.
This provides:
1. Traceability of every balance change the client requested
2. Debugging capability when the backend misbehaves
3. A record of rollbacks the user may have missed

The audit logger:
- Is async so persistence never blocks a batch
- Gracefully handles sink failures (never crashes the caller)
- Supports correlation IDs to trace all events of one batch
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budgetbot.config import get_settings
from budgetbot.models.audit import AuditEvent, AuditEventBuilder
from budgetbot.services.storage import AuditSinkInterface


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog for local JSON logging.

    Called once at import with the configured level; call again to change it.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))
    logging.getLogger("budgetbot").setLevel(getattr(logging, level, logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(get_settings().app.log_level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional audit sink (for persistence)
    """

    def __init__(
        self,
        sink: Optional[AuditSinkInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Destination for persistence.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("budgetbot.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the sink if available.

        Returns True if the sink write succeeded (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                return await self._sink.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_calibration_started(
        self,
        attempted: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.calibration_started(
            attempted=attempted,
            correlation_id=correlation_id,
        ))

    async def log_calibration_applied(
        self,
        wallet_id: int,
        correction_created: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.calibration_applied(
            wallet_id=wallet_id,
            correction_created=correction_created,
            correlation_id=correlation_id,
        ))

    async def log_calibration_failed(
        self,
        wallet_id: int,
        error_kind: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.calibration_failed(
            wallet_id=wallet_id,
            error_kind=error_kind,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_calibration_completed(
        self,
        attempted: int,
        succeeded: int,
        corrections_created: int,
        failed: int,
        cancelled: bool,
        correlation_id: UUID,
        aborted: bool = False,
    ) -> None:
        """Log the end of a batch, successful or not."""
        await self.log(AuditEventBuilder.calibration_completed(
            attempted=attempted,
            succeeded=succeeded,
            corrections_created=corrections_created,
            failed=failed,
            cancelled=cancelled,
            correlation_id=correlation_id,
            aborted=aborted,
        ))

    async def log_mutation_applied(self, resource_key: str) -> None:
        await self.log(AuditEventBuilder.mutation_applied(resource_key))

    async def log_mutation_committed(self, resource_key: str) -> None:
        await self.log(AuditEventBuilder.mutation_committed(resource_key))

    async def log_mutation_rolled_back(
        self,
        resource_key: str,
        error_kind: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.mutation_rolled_back(
            resource_key=resource_key,
            error_kind=error_kind,
            error_message=error_message,
        ))

    async def log_receipt_scan_completed(
        self,
        item_count: int,
        attempts: int,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scan_completed(
            item_count=item_count,
            attempts=attempts,
        ))

    async def log_receipt_scan_failed(
        self,
        error_kind: str,
        error_message: str,
        attempts: int,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scan_failed(
            error_kind=error_kind,
            error_message=error_message,
            attempts=attempts,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., "Calibrate all").
    Pass it through all subsequent operations.
    """
    return uuid4()
