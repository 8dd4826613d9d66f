"""
BudgetBot Core - Client Reconciliation Package

The client-side financial reconciliation and resilience layer of the
BudgetBot personal finance tracker. It sits between an inconsistent,
partially unreliable backend and whatever UI renders the results.

DESIGN PRINCIPLES:
1. Derive → Preview → User confirms → Submit
2. Pure calculations never raise; degenerate input yields a sentinel
3. One wallet's failure never aborts the batch
4. Speculative local changes are always committed or fully rolled back
5. Transport and cache are swappable
"""

__version__ = "1.0.0"
__author__ = "BudgetBot Team"
