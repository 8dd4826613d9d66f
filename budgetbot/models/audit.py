"""
Audit Models for BudgetBot Core

Every significant reconciliation action is logged for audit purposes.
This provides:
1. Traceability of every balance change the client asked for
2. Debugging information when the backend misbehaves
3. Visibility into backend response-shape drift

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each component of the reconciliation layer has its own event types.
    """
    # Batch calibration
    CALIBRATION_STARTED = "calibration_started"
    CALIBRATION_APPLIED = "calibration_applied"
    CALIBRATION_FAILED = "calibration_failed"
    CALIBRATION_COMPLETED = "calibration_completed"
    CALIBRATION_CANCELLED = "calibration_cancelled"

    # Optimistic mutations
    MUTATION_APPLIED = "mutation_applied"
    MUTATION_COMMITTED = "mutation_committed"
    MUTATION_ROLLED_BACK = "mutation_rolled_back"

    # Remote AI operations
    RECEIPT_SCAN_COMPLETED = "receipt_scan_completed"
    RECEIPT_SCAN_FAILED = "receipt_scan_failed"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'wallet', 'batch', 'resource')"
    )
    entity_id: Optional[Union[int, str, UUID]] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one batch)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id is not None else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.calibration_applied(wallet_id, True, correlation_id)
        event = AuditEventBuilder.mutation_rolled_back("wallets", "timeout", "network down")
    """

    @staticmethod
    def calibration_started(
        attempted: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALIBRATION_STARTED,
            entity_type="batch",
            entity_id=correlation_id,
            correlation_id=correlation_id,
            description=f"Calibration started for {attempted} wallet(s)",
            details={"attempted": attempted},
            is_user_action=True,
        )

    @staticmethod
    def calibration_applied(
        wallet_id: int,
        correction_created: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALIBRATION_APPLIED,
            entity_type="wallet",
            entity_id=wallet_id,
            correlation_id=correlation_id,
            description=f"Wallet {wallet_id} calibrated",
            details={"correction_transaction_created": correction_created},
        )

    @staticmethod
    def calibration_failed(
        wallet_id: int,
        error_kind: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALIBRATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="wallet",
            entity_id=wallet_id,
            correlation_id=correlation_id,
            description=f"Wallet {wallet_id} calibration failed ({error_kind})",
            error_code=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def calibration_completed(
        attempted: int,
        succeeded: int,
        corrections_created: int,
        failed: int,
        cancelled: bool,
        correlation_id: UUID,
        aborted: bool = False,
    ) -> AuditEvent:
        if cancelled:
            event_type = AuditEventType.CALIBRATION_CANCELLED
        else:
            event_type = AuditEventType.CALIBRATION_COMPLETED
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            entity_type="batch",
            entity_id=correlation_id,
            correlation_id=correlation_id,
            description=(
                f"Calibration {'stopped early' if aborted else 'finished'}: "
                f"{succeeded}/{attempted} wallet(s) calibrated"
            ),
            details={
                "attempted": attempted,
                "succeeded": succeeded,
                "corrections_created": corrections_created,
                "failed": failed,
                "cancelled": cancelled,
                "aborted": aborted,
            },
        )

    @staticmethod
    def mutation_applied(
        resource_key: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_APPLIED,
            severity=AuditSeverity.DEBUG,
            entity_type="resource",
            entity_id=resource_key,
            correlation_id=correlation_id,
            description=f"Speculative change applied to {resource_key}",
            is_user_action=True,
        )

    @staticmethod
    def mutation_committed(
        resource_key: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_COMMITTED,
            entity_type="resource",
            entity_id=resource_key,
            correlation_id=correlation_id,
            description=f"Change to {resource_key} confirmed by server",
        )

    @staticmethod
    def mutation_rolled_back(
        resource_key: str,
        error_kind: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_ROLLED_BACK,
            severity=AuditSeverity.WARNING,
            entity_type="resource",
            entity_id=resource_key,
            correlation_id=correlation_id,
            description=f"Change to {resource_key} rolled back ({error_kind})",
            error_code=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def receipt_scan_completed(
        item_count: int,
        attempts: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_COMPLETED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt scanned: {item_count} item(s)",
            details={"item_count": item_count, "attempts": attempts},
            is_user_action=True,
        )

    @staticmethod
    def receipt_scan_failed(
        error_kind: str,
        error_message: str,
        attempts: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt scan failed ({error_kind})",
            details={"attempts": attempts},
            error_code=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
