"""Batch reconciliation package."""

from budgetbot.reconciliation.executor import BatchReconciler

__all__ = ["BatchReconciler"]
