"""
Scan ledger storage backends.
"""

from .ledger import LedgerSession, ScanLedger
from .memory_ledger import InMemoryScanLedger

__all__ = [
    "ScanLedger",
    "LedgerSession",
    "InMemoryScanLedger",
]
