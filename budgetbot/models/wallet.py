"""
Core Data Models for Wallet Reconciliation

These models define the schemas flowing through the reconciliation layer.
They are designed to:
1. Accept the backend's camelCase payloads without caller-side mapping
2. Keep monetary values as Decimal (never float)
3. Make derived values (previews, outcomes) immutable snapshots

DESIGN DECISION: Wallet balances arrive as decimal strings and stay
strings on the Wallet model. Parsing happens in the derivation engine,
which owns the degenerate-input rules.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from budgetbot.models.classification import ClassifiedError


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class WalletType(str, Enum):
    """Supported wallet types."""
    CARD = "card"
    CASH = "cash"
    CRYPTO = "crypto"


class Severity(str, Enum):
    """
    Severity tier of a calibration delta.

    Drives UI emphasis and batch-summary reporting.
    """
    SAME = "same"
    WARNING = "warning"
    CRITICAL = "critical"


class LimitStatus(str, Enum):
    """Budget limit status by usage percentage."""
    OK = "ok"                # below 70%
    CAUTION = "caution"      # 70% - 90%
    WARNING = "warning"      # 90% - 100%
    EXCEEDED = "exceeded"    # 100% and above


# =============================================================================
# WALLET
# =============================================================================

class Wallet(BaseModel):
    """
    A wallet as returned by the wallets endpoint.

    Never created by the core; only read, calibrated, or reordered.
    Exactly one wallet per owner SHOULD be primary, but zero is tolerated.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    id: int
    owner_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("owner_id", "ownerId", "userId"),
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    type: WalletType = WalletType.CARD
    balance: str = Field(
        default="0",
        description="Recorded balance as a decimal string"
    )
    currency: str = Field(
        default="USD",
        min_length=2,
        max_length=10,
    )
    balance_in_reference_currency: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "balance_in_reference_currency",
            "balanceInReferenceCurrency",
            "balanceUsd",
        ),
        description="Balance converted to the reference currency, if known"
    )
    is_primary: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_primary", "isPrimary"),
    )

    @field_validator('balance', 'balance_in_reference_currency', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        """The API sends either strings or bare numbers."""
        if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


# =============================================================================
# CALIBRATION
# =============================================================================

class CalibrationPreview(BaseModel):
    """
    Pure projection of (Wallet, user-entered actual balance).

    Recomputed on every input change; has no lifecycle of its own.

    INVARIANTS:
    - percent_change >= 0 (direction is carried by difference)
    - will_correct iff difference < -tolerance
    - changed iff a value was entered AND |difference| > tolerance
    - severity is SAME whenever changed is False
    """
    model_config = ConfigDict(frozen=True)

    wallet_id: int
    reported_balance: Decimal
    actual_balance: Decimal
    difference: Decimal
    percent_change: Decimal = Field(ge=0)
    severity: Severity
    will_correct: bool
    changed: bool


class CalibrationResult(BaseModel):
    """Response of the wallet calibrate endpoint."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    calibration_applied: bool = Field(
        default=True,
        validation_alias=AliasChoices("calibration_applied", "calibrationApplied"),
    )
    correction_transaction_created: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "correction_transaction_created",
            "correctionTransactionCreated",
            "transactionCreated",
        ),
    )


class CalibrationSummary(BaseModel):
    """Totals shown above the confirm button of a calibration screen."""

    changed_wallets: int = Field(ge=0)
    corrections_count: int = Field(
        ge=0,
        description="How many correcting transactions confirming would create"
    )
    total_difference_reference: Decimal = Field(
        description="Sum of changed deltas in the reference currency"
    )


class ReconciliationFailure(BaseModel):
    """One wallet that could not be calibrated."""

    wallet_id: int
    message: str
    error: Optional[ClassifiedError] = None


class ReconciliationOutcome(BaseModel):
    """
    Aggregate result of one batch calibration run.

    Created once per run and discarded after being surfaced.
    """

    attempted: int = Field(ge=0)
    succeeded: int = Field(ge=0)
    corrections_created: int = Field(ge=0)
    failures: list[ReconciliationFailure] = Field(default_factory=list)
    cancelled: bool = Field(
        default=False,
        description="The run stopped early because the caller went away"
    )
    aborted: bool = Field(
        default=False,
        description="The run stopped early on a failure no later item could survive"
    )

    @property
    def has_changes(self) -> bool:
        """Did at least one wallet get calibrated?"""
        return self.succeeded > 0

    @property
    def all_failed(self) -> bool:
        """Distinguishes 'everything failed' from 'nothing to do'."""
        return self.attempted > 0 and self.succeeded == 0


# =============================================================================
# REORDERING
# =============================================================================

class ReorderItem(BaseModel):
    """One entry of a reorder payload: identity plus dense 1-based rank."""
    model_config = ConfigDict(frozen=True)

    id: Union[int, str]
    position: int = Field(ge=1)


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetUsage(BaseModel):
    """How much of a budget limit has been used."""
    model_config = ConfigDict(frozen=True)

    spent: Decimal
    limit: Decimal
    percentage: Decimal = Field(ge=0)
    remaining: Decimal = Field(ge=0)
    status: LimitStatus

    @property
    def capped_percentage(self) -> Decimal:
        """Percentage clamped to 100 for progress bars."""
        return min(self.percentage, Decimal("100"))
