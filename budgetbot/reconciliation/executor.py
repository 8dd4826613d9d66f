"""
Batch Reconciliation Executor

Drives wallet calibration over every wallet the user changed.

Flow:
1. Keep only previews with changed=True
2. Submit them one at a time, in order
3. Record success / correction / failure per wallet
4. Return one aggregate ReconciliationOutcome

CRITICAL: Submissions are sequential, never concurrent. The server
updates the balance and may create a correcting transaction for the
same owner; parallel requests could race on that owner's totals.

Failure isolation: a failed wallet is recorded and the loop moves on.
The batch stops early only when every later request would fail the same
way: a terminal failure (session expired, account out of credits) or a
network failure (the device cannot reach the server at all). Timeouts
and server errors do not stop it. Partial results are returned.

Cancellation: set `cancel_event` to stop before the next wallet. If the
surrounding task is cancelled while a request is in flight, that request
is allowed to finish, its result is recorded and the batch is audited as
cancelled; only then does the cancellation propagate. A balance write is
never abandoned half-way.
"""

import asyncio
import inspect
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from budgetbot.audit import AuditLogger, create_correlation_id
from budgetbot.errors import classify, failure_message
from budgetbot.models.classification import ClassifiedError, ErrorKind
from budgetbot.models.wallet import (
    CalibrationPreview,
    CalibrationResult,
    ReconciliationFailure,
    ReconciliationOutcome,
)

logger = structlog.get_logger("budgetbot.reconciliation")

SubmitFn = Callable[[int, Decimal], Awaitable[Any]]
OutcomeObserver = Callable[[ReconciliationOutcome], Any]


async def _submit_one(submit: SubmitFn, preview: CalibrationPreview) -> Any:
    return await submit(preview.wallet_id, preview.actual_balance)


def _stops_batch(error: ClassifiedError) -> bool:
    return not error.retryable or error.kind == ErrorKind.NETWORK


def _correction_created(result: Any) -> bool:
    """Read the correcting-transaction flag from whatever submit returned."""
    if isinstance(result, CalibrationResult):
        return result.correction_transaction_created
    if isinstance(result, Mapping):
        try:
            return CalibrationResult.model_validate(result).correction_transaction_created
        except ValidationError:
            logger.warning("calibration_result_unreadable", keys=sorted(map(str, result)))
            return False
    return bool(getattr(result, "correction_transaction_created", False))


class BatchReconciler:
    """
    Sequential, failure-isolating calibration runner.

    Observers (e.g. a "wallets calibrated" toast) are injected, never
    looked up from module state.
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        on_complete: Optional[OutcomeObserver] = None,
    ):
        self._audit_logger = audit_logger
        self._on_complete = on_complete

    async def reconcile(
        self,
        previews: Iterable[CalibrationPreview],
        submit: SubmitFn,
        cancel_event: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationOutcome:
        """
        Calibrate every changed wallet.

        Args:
            previews: Calibration previews; unchanged ones are skipped
            submit: Coroutine function (wallet_id, actual_balance) -> result
            cancel_event: When set, no further wallet is started
            correlation_id: Ties the audit events of this batch together

        Returns:
            ReconciliationOutcome with attempted = number of changed previews
        """
        correlation_id = correlation_id or create_correlation_id()
        changed = [p for p in previews if p.changed]

        succeeded = 0
        corrections = 0
        failures: list[ReconciliationFailure] = []
        cancelled = False
        aborted = False
        interrupted: Optional[asyncio.CancelledError] = None

        if self._audit_logger and changed:
            await self._audit_logger.log_calibration_started(
                attempted=len(changed),
                correlation_id=correlation_id,
            )

        for preview in changed:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break

            inflight = asyncio.ensure_future(_submit_one(submit, preview))
            try:
                await asyncio.wait([inflight])
            except asyncio.CancelledError as e:
                # Let the write land before giving up
                await asyncio.wait([inflight])
                interrupted = e
                cancelled = True

            if inflight.cancelled():
                cancelled = True
                break

            failure = inflight.exception()
            if failure is not None and not isinstance(failure, Exception):
                raise failure

            if failure is None:
                succeeded += 1
                created = _correction_created(inflight.result())
                if created:
                    corrections += 1
                if self._audit_logger:
                    await self._audit_logger.log_calibration_applied(
                        wallet_id=preview.wallet_id,
                        correction_created=created,
                        correlation_id=correlation_id,
                    )
            else:
                error = classify(failure)
                message = failure_message(failure)
                failures.append(ReconciliationFailure(
                    wallet_id=preview.wallet_id,
                    message=message,
                    error=error,
                ))
                if self._audit_logger:
                    await self._audit_logger.log_calibration_failed(
                        wallet_id=preview.wallet_id,
                        error_kind=error.kind.value,
                        error_message=message,
                        correlation_id=correlation_id,
                    )
                if _stops_batch(error):
                    aborted = True
                    break

            if interrupted is not None:
                break

        outcome = ReconciliationOutcome(
            attempted=len(changed),
            succeeded=succeeded,
            corrections_created=corrections,
            failures=failures,
            cancelled=cancelled,
            aborted=aborted,
        )

        if self._audit_logger and changed:
            await self._audit_logger.log_calibration_completed(
                attempted=outcome.attempted,
                succeeded=outcome.succeeded,
                corrections_created=outcome.corrections_created,
                failed=len(outcome.failures),
                cancelled=cancelled,
                aborted=aborted,
                correlation_id=correlation_id,
            )

        await self._notify(outcome)
        if interrupted is not None:
            raise interrupted
        return outcome

    async def _notify(self, outcome: ReconciliationOutcome) -> None:
        if self._on_complete is None:
            return
        try:
            maybe = self._on_complete(outcome)
            if inspect.isawaitable(maybe):
                await maybe
        except Exception as e:
            # Observers are notifications; the outcome stands regardless
            logger.error("outcome_observer_failed", error=str(e))
