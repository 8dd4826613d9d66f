"""
Data Models Package

This package contains all Pydantic models used by the reconciliation layer.
All data crossing a component boundary must conform to these schemas.
"""

from budgetbot.models.wallet import (
    BudgetUsage,
    CalibrationPreview,
    CalibrationResult,
    CalibrationSummary,
    LimitStatus,
    ReconciliationFailure,
    ReconciliationOutcome,
    ReorderItem,
    Severity,
    Wallet,
    WalletType,
)
from budgetbot.models.classification import (
    ClassifiedError,
    ErrorKind,
    Remediation,
)
from budgetbot.models.receipt import (
    ReceiptItem,
    ReceiptScanOutcome,
    ReceiptScanRequest,
    ScannedReceipt,
)
from budgetbot.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Wallet and reconciliation models
    "BudgetUsage",
    "CalibrationPreview",
    "CalibrationResult",
    "CalibrationSummary",
    "LimitStatus",
    "ReconciliationFailure",
    "ReconciliationOutcome",
    "ReorderItem",
    "Severity",
    "Wallet",
    "WalletType",
    # Failure classification
    "ClassifiedError",
    "ErrorKind",
    "Remediation",
    # Receipt models
    "ReceiptItem",
    "ReceiptScanOutcome",
    "ReceiptScanRequest",
    "ScannedReceipt",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
