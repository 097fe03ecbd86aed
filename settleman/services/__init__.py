"""Settleman services.

Each module owns one concern:
- ledger: append-only credit entries
- balance: derived balance and the snapshot cache
- redemption: FIFO consumption
- allocation: totals and per-item split (pure)
- surplus: overpayment to credit, plus bonus
- expiry: batch credit expiry
- fulfillment: per-item delivery records
- checkout: the purchase saga tying the above together
"""

from settleman.services import (
    allocation,
    balance,
    checkout,
    expiry,
    fulfillment,
    ledger,
    redemption,
    surplus,
)

__all__ = [
    "allocation",
    "balance",
    "checkout",
    "expiry",
    "fulfillment",
    "ledger",
    "redemption",
    "surplus",
]
