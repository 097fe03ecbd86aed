"""
Settleman signals - public event API.

Emitted signals:
- credit_earned: Emitted after a credit entry is appended (grant, surplus, bonus, positive adjust)
- credit_redeemed: Emitted after a FIFO redemption wrote its use entries
- credit_expired: Emitted by the expiry sweeper per expired entry
- order_created: Emitted by the checkout after the Order row exists
- fulfillment_changed: Emitted on every fulfillment status transition
"""

from django.dispatch import Signal

# Ledger signals
credit_earned = Signal()  # sender=LedgerEntry, entry=LedgerEntry
credit_redeemed = Signal()  # sender=LedgerEntry, account_ref=str, entries=list, amount=int
credit_expired = Signal()  # sender=LedgerEntry, entry=LedgerEntry, original=LedgerEntry

# Order signals
order_created = Signal()  # sender=Order, order=Order
fulfillment_changed = Signal()  # sender=FulfillmentRecord, fulfillment=..., previous_status=str
