"""Financial derivation package."""

from budgetbot.finance.derivation import (
    budget_usage,
    classify_severity,
    convert_to_reference,
    limit_status,
    pick_default_wallet,
    preview_all,
    preview_calibration,
    summarize_calibration,
    to_decimal,
)

__all__ = [
    "budget_usage",
    "classify_severity",
    "convert_to_reference",
    "limit_status",
    "pick_default_wallet",
    "preview_all",
    "preview_calibration",
    "summarize_calibration",
    "to_decimal",
]
