"""
Financial Derivation Engine

Pure functions computing the numbers the UI previews before the user
confirms anything:
1. Currency conversion into the reference currency
2. Default wallet selection
3. Calibration previews (balance delta, percent change, severity)
4. Calibration summary totals
5. Budget usage percentage and limit status

DESIGN DECISION: Every function here is total. Degenerate input (empty
strings, zero balances, missing rates) yields a defined sentinel, never
an exception. These run on every keystroke; an exception here would take
down the form the user is typing into.

All arithmetic uses Decimal. Floats are converted through str() so that
92.5 means 92.5 and not its binary approximation.

CRITICAL: Amounts are bounded on the way in. Anything of 1e16 or more is
rejected as unparseable and anything below 1e-12 counts as zero, so no
quotient or product of two amounts can overflow the decimal context.
"""

import re
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Sequence

from budgetbot.config import CalibrationSettings, get_settings
from budgetbot.models.wallet import (
    BudgetUsage,
    CalibrationPreview,
    CalibrationSummary,
    LimitStatus,
    Severity,
    Wallet,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# Budget limit status boundaries (percent used)
_CAUTION_FROM = Decimal("70")
_WARNING_FROM = Decimal("90")
_EXCEEDED_FROM = Decimal("100")

# Accepted magnitude, as Decimal.adjusted() exponents
_MAX_EXPONENT = 15
_MIN_EXPONENT = -12

# Wide enough to hold any product of two bounded amounts to the cent
_CENTS_CONTEXT = Context(prec=64, rounding=ROUND_HALF_UP)

_THOUSANDS_GROUPED = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d*)?$")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a user- or API-supplied amount.

    Commas are accepted only as thousands separators ("1,234.50"); an
    entry like "1,5" is ambiguous and rejected.

    Returns None for None, blank strings, booleans, NaN/infinity,
    amounts of 1e16 or more, and anything unparseable. Non-zero amounts
    smaller than 1e-12 come back as zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if "," in text:
            if not _THOUSANDS_GROUPED.match(text):
                return None
            text = text.replace(",", "")
        try:
            parsed = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not parsed.is_finite():
        return None
    if parsed.is_zero():
        return parsed
    exponent = parsed.adjusted()
    if exponent > _MAX_EXPONENT:
        return None
    if exponent < _MIN_EXPONENT:
        return ZERO
    return parsed


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP, context=_CENTS_CONTEXT)


def _calibration_settings(settings: Optional[CalibrationSettings]) -> CalibrationSettings:
    return settings if settings is not None else get_settings().calibration


# =============================================================================
# CURRENCY CONVERSION
# =============================================================================

def convert_to_reference(
    amount: Any,
    currency: str,
    rates: Mapping[str, Any],
    reference_currency: Optional[str] = None,
) -> Optional[str]:
    """
    Convert an amount into the reference currency.

    Rate semantics: units of `currency` per one unit of the reference
    currency, so conversion divides.

        >>> convert_to_reference("157500", "IDR", {"IDR": 15750})
        '10.00'

    Returns:
        The converted amount with exactly two decimals, or None when the
        currency already is the reference currency, the amount is empty,
        or no positive rate exists.
    """
    reference = (reference_currency or _calibration_settings(None).reference_currency).upper()
    code = (currency or "").upper()
    if not code or code == reference:
        return None

    value = to_decimal(amount)
    if value is None:
        return None

    rate = to_decimal(rates.get(code)) if rates else None
    if rate is None or rate <= ZERO:
        return None

    return format(_quantize(value / rate), "f")


# =============================================================================
# DEFAULT WALLET
# =============================================================================

def pick_default_wallet(wallets: Sequence[Wallet]) -> Optional[int]:
    """
    Pick the wallet a new transaction should default to.

    The primary wallet wins. Without one, the wallet with the largest
    reference-currency balance wins; ties go to the earliest wallet.
    Missing reference balances count as zero.
    """
    if not wallets:
        return None

    for wallet in wallets:
        if wallet.is_primary:
            return wallet.id

    best = wallets[0]
    best_balance = to_decimal(best.balance_in_reference_currency) or ZERO
    for wallet in wallets[1:]:
        balance = to_decimal(wallet.balance_in_reference_currency) or ZERO
        if balance > best_balance:
            best, best_balance = wallet, balance
    return best.id


# =============================================================================
# CALIBRATION
# =============================================================================

def classify_severity(
    percent_change: Decimal,
    changed: bool,
    settings: Optional[CalibrationSettings] = None,
) -> Severity:
    """
    Severity tier of a delta.

    Boundaries are strict: exactly 5% is SAME, exactly 10% is WARNING.
    """
    if not changed:
        return Severity.SAME
    cfg = _calibration_settings(settings)
    if percent_change > cfg.critical_threshold:
        return Severity.CRITICAL
    if percent_change > cfg.warning_threshold:
        return Severity.WARNING
    return Severity.SAME


def preview_calibration(
    wallet: Wallet,
    entered_balance: Any = None,
    settings: Optional[CalibrationSettings] = None,
) -> CalibrationPreview:
    """
    Project a wallet and the balance the user typed into a preview.

    Args:
        wallet: Wallet as currently recorded
        entered_balance: What the user says the real balance is.
            None or blank means the user has not touched this wallet.
            Unparseable text is treated as the recorded balance.
        settings: Thresholds; defaults to configured values

    Returns:
        CalibrationPreview; a reported balance of zero yields a
        percent change of zero.
    """
    cfg = _calibration_settings(settings)
    reported = to_decimal(wallet.balance) or ZERO

    explicit = entered_balance is not None and str(entered_balance).strip() != ""
    actual = to_decimal(entered_balance) if explicit else None
    if actual is None:
        actual = reported

    difference = actual - reported
    if reported == ZERO:
        percent_change = ZERO
    else:
        percent_change = abs(difference / reported) * HUNDRED

    changed = explicit and abs(difference) > cfg.tolerance

    return CalibrationPreview(
        wallet_id=wallet.id,
        reported_balance=reported,
        actual_balance=actual,
        difference=difference,
        percent_change=percent_change,
        severity=classify_severity(percent_change, changed, cfg),
        will_correct=difference < -cfg.tolerance,
        changed=changed,
    )


def preview_all(
    wallets: Iterable[Wallet],
    entered: Mapping[int, Any],
    settings: Optional[CalibrationSettings] = None,
) -> list[CalibrationPreview]:
    """Preview every wallet; wallets without an entry are untouched."""
    cfg = _calibration_settings(settings)
    return [preview_calibration(w, entered.get(w.id), cfg) for w in wallets]


def summarize_calibration(
    previews: Iterable[CalibrationPreview],
    wallets: Iterable[Wallet],
    settings: Optional[CalibrationSettings] = None,
) -> CalibrationSummary:
    """
    Totals for the confirmation step.

    The reference-currency delta of a non-reference wallet is scaled by
    the wallet's own reference/balance ratio. Without a usable ratio the
    raw delta is used.
    """
    cfg = _calibration_settings(settings)
    by_id = {w.id: w for w in wallets}

    changed = [p for p in previews if p.changed]
    total = ZERO
    for preview in changed:
        wallet = by_id.get(preview.wallet_id)
        delta = preview.difference
        if wallet is not None and wallet.currency != cfg.reference_currency:
            in_reference = to_decimal(wallet.balance_in_reference_currency)
            if in_reference is not None and preview.reported_balance != ZERO:
                delta = preview.difference / preview.reported_balance * in_reference
        total += delta

    return CalibrationSummary(
        changed_wallets=len(changed),
        corrections_count=sum(1 for p in changed if p.will_correct),
        total_difference_reference=_quantize(total),
    )


# =============================================================================
# BUDGETS
# =============================================================================

def limit_status(percentage: Decimal) -> LimitStatus:
    """Limit status: <70 ok, <90 caution, <100 warning, else exceeded."""
    if percentage < _CAUTION_FROM:
        return LimitStatus.OK
    if percentage < _WARNING_FROM:
        return LimitStatus.CAUTION
    if percentage < _EXCEEDED_FROM:
        return LimitStatus.WARNING
    return LimitStatus.EXCEEDED


def budget_usage(spent: Any, limit: Any) -> BudgetUsage:
    """
    How much of a budget limit is used.

    A zero, negative or missing limit yields 0% (there is nothing to
    measure against). Negative spending (refunds exceeding purchases)
    clamps to 0%.
    """
    spent_value = to_decimal(spent) or ZERO
    limit_value = to_decimal(limit) or ZERO

    if limit_value <= ZERO:
        percentage = ZERO
    else:
        percentage = max(ZERO, _quantize(spent_value / limit_value * HUNDRED))

    return BudgetUsage(
        spent=spent_value,
        limit=limit_value,
        percentage=percentage,
        remaining=max(ZERO, limit_value - spent_value),
        status=limit_status(percentage),
    )
