"""Settleman models.

Four append/insert-mostly collections (ledger, order, payment, fulfillment)
and one upsert-only cache (balance snapshot).
"""

from settleman.models.ledger import EntryKind, LedgerEntry
from settleman.models.balance import BalanceSnapshot
from settleman.models.order import (
    ORDER_STATUS_FLOW,
    Order,
    OrderStatus,
    PaymentRecord,
    TenderType,
)
from settleman.models.fulfillment import (
    BillingModel,
    FulfillmentRecord,
    FulfillmentStatus,
)

__all__ = [
    # Ledger
    "EntryKind",
    "LedgerEntry",
    "BalanceSnapshot",
    # Orders
    "ORDER_STATUS_FLOW",
    "Order",
    "OrderStatus",
    "PaymentRecord",
    "TenderType",
    # Fulfillment
    "BillingModel",
    "FulfillmentRecord",
    "FulfillmentStatus",
]
