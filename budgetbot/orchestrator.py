"""
Main Orchestrator for BudgetBot Core

This module ties the components together and defines the end-to-end
flows for:
1. Wallet calibration (load → preview → confirm → reconcile → refresh)
2. List reordering (payload → optimistic apply → commit or roll back)

DESIGN DECISION: The orchestrator owns the caller policies the core
components leave open:
- After a calibration batch, cached wallets and transactions are
  invalidated only when at least one wallet actually changed
- A batch where nothing succeeded reports "no changes applied"; the
  per-wallet failures carry the details
- Every step is audited
"""

import asyncio
from typing import Any, Callable, Mapping, Optional, Sequence
from uuid import UUID

from budgetbot.audit import AuditLogger, create_correlation_id
from budgetbot.config import CalibrationSettings, get_settings
from budgetbot.finance import preview_all, summarize_calibration
from budgetbot.models.wallet import (
    CalibrationPreview,
    CalibrationSummary,
    ReconciliationOutcome,
    Wallet,
)
from budgetbot.mutations import (
    MutationState,
    OptimisticMutationCoordinator,
    build_reorder_payload,
)
from budgetbot.mutations.coordinator import ErrorObserver
from budgetbot.receipts import ReceiptScanClient
from budgetbot.reconciliation import BatchReconciler
from budgetbot.reconciliation.executor import OutcomeObserver
from budgetbot.services.storage import (
    AuditSinkInterface,
    CacheInterface,
    InMemoryCache,
)
from budgetbot.services.transport import (
    HttpTransport,
    TransportInterface,
    WalletApiClient,
)


WALLETS_KEY = "wallets"
TRANSACTIONS_KEY = "transactions"

NO_CHANGES_MESSAGE = "No changes applied"


class CalibrationFlow:
    """
    Orchestrates wallet calibration.

    Flow:
    1. Load → Fetch wallets into the cache
    2. Preview → Pure derivation per entered balance, plus a summary
    3. Confirm → User explicitly starts the batch
    4. Reconcile → Sequential calibrate calls, failures isolated
    5. Refresh → Invalidate wallets and transactions if anything changed
    """

    def __init__(
        self,
        wallet_client: WalletApiClient,
        cache: CacheInterface,
        reconciler: Optional[BatchReconciler] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[CalibrationSettings] = None,
    ):
        self._wallet_client = wallet_client
        self._cache = cache
        self._audit_logger = audit_logger
        self._reconciler = reconciler or BatchReconciler(audit_logger=audit_logger)
        self._settings = settings

    async def load_wallets(self, limit: int = 50) -> list[Wallet]:
        """Fetch wallets and store them under the wallets key."""
        try:
            wallets = await self._wallet_client.list_wallets(limit=limit)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="wallets",
                    error_message=str(e),
                )
            raise
        self._cache.write(WALLETS_KEY, wallets)
        return wallets

    def preview(
        self,
        wallets: Sequence[Wallet],
        entered: Mapping[int, Any],
    ) -> tuple[list[CalibrationPreview], CalibrationSummary]:
        """
        Compute previews and the confirm-screen summary.

        Args:
            wallets: Wallets on screen
            entered: Wallet id → text the user typed (missing = untouched)
        """
        previews = preview_all(wallets, entered, self._settings)
        summary = summarize_calibration(previews, wallets, self._settings)
        return previews, summary

    async def apply(
        self,
        previews: Sequence[CalibrationPreview],
        cancel_event: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ReconciliationOutcome, str]:
        """
        Run the batch for every changed preview.

        CRITICAL: Call only after explicit user confirmation.

        Returns:
            (outcome, message)
        """
        correlation_id = correlation_id or create_correlation_id()

        outcome = await self._reconciler.reconcile(
            previews,
            self._wallet_client.calibrate,
            cancel_event=cancel_event,
            correlation_id=correlation_id,
        )

        if not outcome.has_changes:
            return outcome, NO_CHANGES_MESSAGE

        self._cache.invalidate(WALLETS_KEY)
        self._cache.invalidate(TRANSACTIONS_KEY)
        return outcome, _describe(outcome)


def _describe(outcome: ReconciliationOutcome) -> str:
    message = f"Calibrated {outcome.succeeded} of {outcome.attempted} wallet(s)"
    if outcome.corrections_created:
        message += f", {outcome.corrections_created} correcting transaction(s) created"
    if outcome.failures:
        message += f", {len(outcome.failures)} failed"
    return message


class ReorderFlow:
    """
    Orchestrates drag-to-reorder of a cached list.

    The new order is shown immediately and rolled back if the server
    rejects it.
    """

    def __init__(
        self,
        wallet_client: WalletApiClient,
        coordinator: OptimisticMutationCoordinator,
    ):
        self._wallet_client = wallet_client
        self._coordinator = coordinator

    async def reorder(
        self,
        items: Sequence[Any],
        resource_key: str = WALLETS_KEY,
        path: Optional[str] = None,
    ) -> MutationState:
        """
        Persist a new order.

        Args:
            items: The list in its new order
            resource_key: Cache key holding the list
            path: Reorder endpoint (defaults to the wallets one)

        Returns:
            Committed or RolledBack
        """
        payload = build_reorder_payload(items)
        reordered = list(items)

        return await self._coordinator.submit(
            resource_key,
            lambda _current: reordered,
            lambda: self._wallet_client.reorder(payload, path),
        )


def create_app_components(
    transport: Optional[TransportInterface] = None,
    cache: Optional[CacheInterface] = None,
    audit_sink: Optional[AuditSinkInterface] = None,
    on_error: Optional[ErrorObserver] = None,
    on_complete: Optional[OutcomeObserver] = None,
) -> tuple[CalibrationFlow, ReorderFlow, ReceiptScanClient]:
    """
    Factory function to create all application components.

    Args:
        transport: Backend transport; an HttpTransport from settings if omitted
        cache: Client cache; a fresh InMemoryCache if omitted
        audit_sink: Optional remote audit trail
        on_error: Receives rolled-back mutation errors (e.g. a toast)
        on_complete: Receives each calibration outcome

    Returns:
        (calibration_flow, reorder_flow, receipt_client)
    """
    settings = get_settings()
    transport = transport or HttpTransport(settings=settings.api)
    cache = cache if cache is not None else InMemoryCache()
    audit_logger = AuditLogger(audit_sink)

    wallet_client = WalletApiClient(transport)

    calibration_flow = CalibrationFlow(
        wallet_client=wallet_client,
        cache=cache,
        reconciler=BatchReconciler(audit_logger=audit_logger, on_complete=on_complete),
        audit_logger=audit_logger,
        settings=settings.calibration,
    )

    reorder_flow = ReorderFlow(
        wallet_client=wallet_client,
        coordinator=OptimisticMutationCoordinator(
            cache,
            audit_logger=audit_logger,
            on_error=on_error,
        ),
    )

    receipt_client = ReceiptScanClient(
        transport,
        audit_logger=audit_logger,
        settings=settings.retry,
    )

    return calibration_flow, reorder_flow, receipt_client
