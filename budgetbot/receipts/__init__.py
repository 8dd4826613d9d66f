"""Receipt scanning package."""

from budgetbot.receipts.scanner import SCAN_PATH, ReceiptScanClient, parse_receipt

__all__ = [
    "SCAN_PATH",
    "ReceiptScanClient",
    "parse_receipt",
]
