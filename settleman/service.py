"""
Settleman public API.

CORE (essential):
    SettlementService.purchase(...)        - Record and settle a purchase
    SettlementService.balance_of(ref)      - Current credit balance
    SettlementService.redeem(ref, amount)  - FIFO credit redemption

CONVENIENCE (helpers):
    SettlementService.ledger_history(ref)  - Ledger entries, newest first
    SettlementService.stats(ref)           - Member credit statistics
    SettlementService.unpaid_summary()     - Accounts owing and total unpaid
"""

from dataclasses import dataclass
from datetime import datetime

from settleman.models import (
    BalanceSnapshot,
    FulfillmentRecord,
    LedgerEntry,
    Order,
    PaymentRecord,
)
from settleman.services.allocation import LineItem, Tenders
from settleman.services.balance import BalanceService
from settleman.services.checkout import CheckoutService, PurchaseResult
from settleman.services.expiry import ExpiryService, SweepResult
from settleman.services.fulfillment import FulfillmentService, UnpaidSummary
from settleman.services.ledger import LedgerService
from settleman.services.redemption import RedemptionService


@dataclass
class CreditStats:
    """Credit statistics for one account."""

    account_ref: str
    balance: int
    earned: int
    used: int
    expired: int
    expiring_in_7_days: int
    expiring_in_30_days: int
    transaction_count: int


class SettlementService:
    """
    Settleman public API.

    Uses @classmethod for extensibility (consistent with the services it
    delegates to).

    CORE (essential):
        purchase(...)              - Purchase saga
        pay_outstanding(...)       - Settle an order's unpaid amount
        balance_of(ref)            - Balance (cached, TTL-refreshed)
        redeem(ref, amount)        - FIFO redemption

    CONVENIENCE (helpers):
        balance_snapshot(ref), ledger_history(ref), stats(ref)
        grant(...), adjust(...), sweep(...)
        order_by_id(id), orders_for(ref), payments_for(order_id)
        fulfillments_by_account(ref), fulfillments_by_status(status)
        unpaid_total(ref), unpaid_summary()
        complete_session, start_hold, end_hold, extend, cancel
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def purchase(
        cls,
        account_ref: str,
        line_items: list[LineItem],
        tenders: Tenders,
        credit_expiry_date: datetime | None = None,
        bonus_expiry_date: datetime | None = None,
        bonus_enabled: bool | None = None,
    ) -> PurchaseResult:
        return CheckoutService.purchase(
            account_ref,
            line_items,
            tenders,
            credit_expiry_date=credit_expiry_date,
            bonus_expiry_date=bonus_expiry_date,
            bonus_enabled=bonus_enabled,
        )

    @classmethod
    def pay_outstanding(
        cls,
        order_id,
        tenders: Tenders,
        credit_expiry_date: datetime | None = None,
    ) -> PurchaseResult:
        return CheckoutService.pay_outstanding(
            order_id, tenders, credit_expiry_date=credit_expiry_date
        )

    @classmethod
    def balance_of(cls, account_ref: str) -> int:
        """
        Current credit balance.

        Served from the snapshot, rebuilt first when older than
        BALANCE_CACHE_TTL. Unknown accounts have a balance of 0.
        """
        return BalanceService.read_balance(account_ref).total_balance

    @classmethod
    def redeem(cls, account_ref: str, amount: int, related_order: Order | None = None) -> list[LedgerEntry]:
        return RedemptionService.redeem(account_ref, amount, related_order=related_order)

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    @classmethod
    def balance_snapshot(cls, account_ref: str) -> BalanceSnapshot:
        return BalanceService.read_balance(account_ref)

    @classmethod
    def ledger_history(cls, account_ref: str, limit: int | None = None) -> list[LedgerEntry]:
        return LedgerService.history(account_ref, limit=limit)

    @classmethod
    def stats(cls, account_ref: str) -> CreditStats:
        """Earned/used/expired subtotals, always rebuilt from the ledger."""
        snapshot = BalanceService.recompute_balance(account_ref)
        return CreditStats(
            account_ref=account_ref,
            balance=snapshot.total_balance,
            earned=snapshot.earned,
            used=snapshot.used,
            expired=snapshot.expired,
            expiring_in_7_days=snapshot.expiring_in_7_days,
            expiring_in_30_days=snapshot.expiring_in_30_days,
            transaction_count=snapshot.transaction_count,
        )

    @classmethod
    def grant(
        cls,
        account_ref: str,
        amount: int,
        source: str = "",
        description: str = "",
        expiry_date: datetime | None = None,
        expiry_days: int | None = None,
    ) -> LedgerEntry:
        return LedgerService.grant(
            account_ref,
            amount,
            source=source,
            description=description,
            expiry_date=expiry_date,
            expiry_days=expiry_days,
        )

    @classmethod
    def adjust(cls, account_ref: str, amount: int, reason: str = "") -> list[LedgerEntry]:
        return RedemptionService.adjust(account_ref, amount, reason=reason)

    @classmethod
    def sweep(cls, account_ref: str | None = None) -> SweepResult:
        return ExpiryService.sweep(account_ref)

    @classmethod
    def order_by_id(cls, order_id) -> Order:
        return CheckoutService.get_order(order_id)

    @classmethod
    def orders_for(cls, account_ref: str) -> list[Order]:
        return CheckoutService.orders_for(account_ref)

    @classmethod
    def payments_for(cls, order_id) -> list[PaymentRecord]:
        return CheckoutService.payments_for(order_id)

    @classmethod
    def fulfillments_by_account(cls, account_ref: str) -> list[FulfillmentRecord]:
        return FulfillmentService.by_account(account_ref)

    @classmethod
    def fulfillments_by_status(cls, status: str) -> list[FulfillmentRecord]:
        return FulfillmentService.by_status(status)

    @classmethod
    def unpaid_total(cls, account_ref: str) -> int:
        """What the account still owes across its unpaid fulfillments."""
        return FulfillmentService.unpaid_total(account_ref)

    @classmethod
    def unpaid_summary(cls) -> UnpaidSummary:
        return FulfillmentService.unpaid_summary()


    # ======================================================================
    # Fulfillment transitions
    # ======================================================================

    @classmethod
    def complete_session(cls, fulfillment_id) -> FulfillmentRecord:
        return FulfillmentService.complete_session(fulfillment_id)

    @classmethod
    def start_hold(cls, fulfillment_id, reason: str = "") -> FulfillmentRecord:
        return FulfillmentService.start_hold(fulfillment_id, reason=reason)

    @classmethod
    def end_hold(cls, fulfillment_id) -> FulfillmentRecord:
        return FulfillmentService.end_hold(fulfillment_id)

    @classmethod
    def extend(cls, fulfillment_id, days: int, reason: str = "") -> FulfillmentRecord:
        return FulfillmentService.extend(fulfillment_id, days, reason=reason)

    @classmethod
    def cancel(cls, fulfillment_id, reason: str = "") -> FulfillmentRecord:
        return FulfillmentService.cancel(fulfillment_id, reason=reason)
