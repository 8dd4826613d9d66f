"""Tests for the batch reconciliation executor."""

import asyncio
from decimal import Decimal
from unittest.mock import Mock

import pytest

from budgetbot.errors import TransportError, TransportKind
from budgetbot.finance import preview_all
from budgetbot.models import AuditEventType, CalibrationResult, ErrorKind
from budgetbot.reconciliation import BatchReconciler

from conftest import make_wallet


def _previews(calibration_settings, count=3):
    wallets = [make_wallet(i, balance="100") for i in range(1, count + 1)]
    entered = {i: "90" for i in range(1, count + 1)}
    return preview_all(wallets, entered, calibration_settings)


class RecordingSubmit:
    """Async submit that records calls and fails for chosen wallets."""

    def __init__(self, failures=None, corrections=True):
        self.failures = failures or {}
        self.corrections = corrections
        self.calls = []
        self.active = 0
        self.max_active = 0

    async def __call__(self, wallet_id, actual_balance):
        self.calls.append((wallet_id, actual_balance))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            if wallet_id in self.failures:
                raise self.failures[wallet_id]
            return CalibrationResult(correction_transaction_created=self.corrections)
        finally:
            self.active -= 1


class TestBatchReconciler:
    """Tests for BatchReconciler.reconcile()."""

    def test_all_succeed(self, calibration_settings):
        submit = RecordingSubmit()
        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings), submit))

        assert outcome.attempted == 3
        assert outcome.succeeded == 3
        assert outcome.corrections_created == 3
        assert outcome.failures == []
        assert submit.calls == [(1, Decimal("90")), (2, Decimal("90")), (3, Decimal("90"))]

    def test_middle_failure_is_isolated(self, calibration_settings):
        """Test that item 3 is still processed after item 2 fails."""
        submit = RecordingSubmit(failures={2: TransportError("Request failed: 500", status=500)})
        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings), submit))

        assert outcome.attempted == 3
        assert outcome.succeeded == 2
        assert len(outcome.failures) == 1
        failure = outcome.failures[0]
        assert failure.wallet_id == 2
        assert failure.message == "Request failed: 500"
        assert failure.error.kind == ErrorKind.SERVER
        assert [c[0] for c in submit.calls] == [1, 2, 3]
        assert outcome.aborted is False

    def test_submissions_are_sequential(self, calibration_settings):
        submit = RecordingSubmit()
        asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings, 5), submit))
        assert submit.max_active == 1

    def test_unchanged_previews_are_skipped(self, calibration_settings):
        wallets = [make_wallet(1), make_wallet(2), make_wallet(3)]
        previews = preview_all(wallets, {2: "50"}, calibration_settings)
        submit = RecordingSubmit()

        outcome = asyncio.run(BatchReconciler().reconcile(previews, submit))

        assert outcome.attempted == 1
        assert [c[0] for c in submit.calls] == [2]

    def test_nothing_changed(self, calibration_settings):
        wallets = [make_wallet(1)]
        submit = RecordingSubmit()
        outcome = asyncio.run(BatchReconciler().reconcile(preview_all(wallets, {}, calibration_settings), submit))

        assert outcome.attempted == 0
        assert outcome.has_changes is False
        assert outcome.all_failed is False
        assert submit.calls == []

    def test_unauthorized_aborts_batch(self, calibration_settings):
        """Test that a terminal failure stops the remaining wallets."""
        submit = RecordingSubmit(failures={2: TransportError("Unauthorized", status=401)})
        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings), submit))

        assert outcome.aborted is True
        assert outcome.attempted == 3
        assert outcome.succeeded == 1
        assert [c[0] for c in submit.calls] == [1, 2]
        assert outcome.failures[0].error.kind == ErrorKind.UNAUTHORIZED

    def test_network_failure_stops_batch(self, calibration_settings):
        """Test that an unreachable server stops the remaining wallets."""
        network = TransportError("Network request failed", kind=TransportKind.NETWORK)
        submit = RecordingSubmit(failures={2: network, 3: network})
        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings), submit))

        assert outcome.aborted is True
        assert outcome.succeeded == 1
        assert [c[0] for c in submit.calls] == [1, 2]
        assert outcome.failures[0].error.kind == ErrorKind.NETWORK

    def test_timeout_does_not_stop_batch(self, calibration_settings):
        timeout = TransportError("Request timeout: POST /api/wallets/2/calibrate", kind=TransportKind.TIMEOUT)
        submit = RecordingSubmit(failures={2: timeout})
        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings), submit))

        assert outcome.aborted is False
        assert [c[0] for c in submit.calls] == [1, 2, 3]

    def test_all_failed(self, calibration_settings):
        down = TransportError("Request failed: 503", status=503)
        submit = RecordingSubmit(failures={1: down, 2: down, 3: down})
        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings), submit))

        assert outcome.all_failed is True
        assert len(outcome.failures) == 3

    def test_synchronous_raise_is_recorded(self, calibration_settings):
        """Test a submit that raises before returning a coroutine."""
        def submit(wallet_id, actual_balance):
            raise TypeError("Failed to fetch")

        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings, 1), submit))

        assert outcome.succeeded == 0
        assert outcome.failures[0].error.kind == ErrorKind.NETWORK

    def test_correction_flag_from_mapping(self, calibration_settings):
        results = iter([{"transactionCreated": True}, {"correctionTransactionCreated": False}])

        async def submit(wallet_id, actual_balance):
            return next(results)

        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings, 2), submit))

        assert outcome.succeeded == 2
        assert outcome.corrections_created == 1

    def test_no_result_body_counts_as_success(self, calibration_settings):
        async def submit(wallet_id, actual_balance):
            return None

        outcome = asyncio.run(BatchReconciler().reconcile(_previews(calibration_settings, 2), submit))

        assert outcome.succeeded == 2
        assert outcome.corrections_created == 0

    def test_cancel_event_stops_before_next_item(self, calibration_settings):
        cancel = asyncio.Event()
        calls = []

        async def submit(wallet_id, actual_balance):
            calls.append(wallet_id)
            cancel.set()
            return CalibrationResult()

        async def run():
            return await BatchReconciler().reconcile(
                _previews(calibration_settings), submit, cancel_event=cancel
            )

        outcome = asyncio.run(run())

        assert calls == [1]
        assert outcome.cancelled is True
        assert outcome.succeeded == 1
        assert outcome.attempted == 3

    def test_task_cancel_lets_inflight_finish(self, calibration_settings):
        """Test that an in-flight write completes before cancellation propagates."""
        completed = []

        async def run():
            started = asyncio.Event()

            async def submit(wallet_id, actual_balance):
                started.set()
                await asyncio.sleep(0.01)
                completed.append(wallet_id)
                return CalibrationResult()

            task = asyncio.ensure_future(
                BatchReconciler().reconcile(_previews(calibration_settings), submit)
            )
            await started.wait()
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                return "cancelled"
            return "finished"

        result = asyncio.run(run())

        assert result == "cancelled"
        assert completed == [1]

    def test_task_cancel_records_inflight_write(self, calibration_settings, audit_logger, audit_sink):
        """Test that the write that landed is audited and reported before cancelling."""
        observer = Mock()
        reconciler = BatchReconciler(audit_logger=audit_logger, on_complete=observer)

        async def run():
            started = asyncio.Event()

            async def submit(wallet_id, actual_balance):
                started.set()
                await asyncio.sleep(0.01)
                return CalibrationResult(correction_transaction_created=True)

            task = asyncio.ensure_future(reconciler.reconcile(_previews(calibration_settings), submit))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        applied = audit_sink.of_type(AuditEventType.CALIBRATION_APPLIED)
        assert [e.entity_id for e in applied] == [1]
        assert len(audit_sink.of_type(AuditEventType.CALIBRATION_CANCELLED)) == 1
        assert audit_sink.of_type(AuditEventType.CALIBRATION_COMPLETED) == []

        observer.assert_called_once()
        outcome = observer.call_args.args[0]
        assert outcome.cancelled is True
        assert outcome.succeeded == 1
        assert outcome.corrections_created == 1

    def test_task_cancel_records_inflight_failure(self, calibration_settings, audit_logger, audit_sink):
        observer = Mock()
        reconciler = BatchReconciler(audit_logger=audit_logger, on_complete=observer)

        async def run():
            started = asyncio.Event()

            async def submit(wallet_id, actual_balance):
                started.set()
                await asyncio.sleep(0.01)
                raise TransportError("Request failed: 500", status=500)

            task = asyncio.ensure_future(reconciler.reconcile(_previews(calibration_settings), submit))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        failed = audit_sink.of_type(AuditEventType.CALIBRATION_FAILED)
        assert [e.entity_id for e in failed] == [1]
        outcome = observer.call_args.args[0]
        assert outcome.failures[0].error.kind == ErrorKind.SERVER
        assert outcome.succeeded == 0

    def test_observer_called_once(self, calibration_settings):
        observer = Mock()
        reconciler = BatchReconciler(on_complete=observer)

        outcome = asyncio.run(reconciler.reconcile(_previews(calibration_settings), RecordingSubmit()))

        observer.assert_called_once_with(outcome)

    def test_async_observer(self, calibration_settings):
        seen = []

        async def observer(outcome):
            seen.append(outcome.succeeded)

        asyncio.run(BatchReconciler(on_complete=observer).reconcile(
            _previews(calibration_settings), RecordingSubmit()
        ))
        assert seen == [3]

    def test_observer_failure_does_not_change_outcome(self, calibration_settings):
        observer = Mock(side_effect=RuntimeError("toast crashed"))
        outcome = asyncio.run(BatchReconciler(on_complete=observer).reconcile(
            _previews(calibration_settings), RecordingSubmit()
        ))
        assert outcome.succeeded == 3

    def test_audit_trail(self, calibration_settings, audit_logger, audit_sink):
        submit = RecordingSubmit(failures={2: Exception("Validation failed")})
        reconciler = BatchReconciler(audit_logger=audit_logger)

        asyncio.run(reconciler.reconcile(_previews(calibration_settings), submit))

        assert len(audit_sink.of_type(AuditEventType.CALIBRATION_STARTED)) == 1
        assert len(audit_sink.of_type(AuditEventType.CALIBRATION_APPLIED)) == 2
        assert len(audit_sink.of_type(AuditEventType.CALIBRATION_FAILED)) == 1
        assert len(audit_sink.of_type(AuditEventType.CALIBRATION_COMPLETED)) == 1
        correlation_ids = {e.correlation_id for e in audit_sink.events}
        assert len(correlation_ids) == 1

    def test_aborted_batch_is_audited_as_aborted(self, calibration_settings, audit_logger, audit_sink):
        submit = RecordingSubmit(failures={1: TransportError("Unauthorized", status=401)})
        reconciler = BatchReconciler(audit_logger=audit_logger)

        asyncio.run(reconciler.reconcile(_previews(calibration_settings), submit))

        completed = audit_sink.of_type(AuditEventType.CALIBRATION_COMPLETED)
        assert len(completed) == 1
        assert completed[0].details["aborted"] is True
        assert completed[0].description.startswith("Calibration stopped early")
