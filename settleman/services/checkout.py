"""Checkout service - the purchase saga.

A purchase touches four collections (order, payment, ledger, fulfillment)
without one enclosing transaction. Each step is its own unit of work; a
failure after the order exists is re-raised with the order id and the list
of completed steps so the caller can reconcile ("order recorded, settlement
incomplete"). Nothing is rolled back.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from django.core.exceptions import ValidationError

from settleman.conf import get_clock, load_backend
from settleman.exceptions import (
    DependencyUnavailable,
    InvalidStateTransition,
    RecordNotFound,
    SettlemanError,
)
from settleman.models import (
    ORDER_STATUS_FLOW,
    FulfillmentRecord,
    LedgerEntry,
    Order,
    OrderStatus,
    PaymentRecord,
)
from settleman.protocols.catalog import LineItemDefinition
from settleman.protocols.directory import AccountInfo
from settleman.services.allocation import (
    Allocation,
    LineItem,
    Tenders,
    allocate,
    is_eligible,
    validate_tenders,
)
from settleman.services.fulfillment import FulfillmentService
from settleman.services.ledger import LedgerService
from settleman.services.redemption import RedemptionService
from settleman.services.surplus import SurplusCredit, convert_surplus
from settleman.signals import order_created

logger = logging.getLogger(__name__)


# Saga step names, in execution order
STEP_ORDER = "order"
STEP_PAYMENTS = "payments"
STEP_CREDIT = "credit_redemption"
STEP_SURPLUS = "surplus_credit"
STEP_FULFILLMENTS = "fulfillments"
STEP_LINKAGE = "ledger_linkage"


@dataclass
class PurchaseResult:
    """Everything a purchase (or a later settlement) wrote."""

    order: Order
    allocation: Allocation | None = None
    payments: list[PaymentRecord] = field(default_factory=list)
    credit_entries: list[LedgerEntry] = field(default_factory=list)
    surplus: SurplusCredit | None = None
    fulfillments: list[FulfillmentRecord] = field(default_factory=list)
    completed_steps: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class CheckoutService:
    """
    Order/fulfillment coordinator.

    CORE:
        purchase(...)         - Full purchase saga
        pay_outstanding(...)  - Settle the unpaid part of an existing order

    QUERIES:
        get_order(id), orders_for(account_ref), payments_for(order_id)
    """

    # ======================================================================
    # Purchase
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
        """
        Record a purchase and settle it.

        Args:
            account_ref: Buying account
            line_items: Items in the order the caller wants them paid
            tenders: Cash/card/transfer amounts and credit to redeem
            credit_expiry_date: Expiry for surplus credit
            bonus_expiry_date: Expiry for bonus credit
            bonus_enabled: Override BONUS_ENABLED

        Returns:
            PurchaseResult

        Raises:
            DependencyUnavailable: Catalog/directory failure, before any write
            SettlemanError: INVALID_AMOUNT on bad input, before any write
            InsufficientCredit: Not enough credit for tenders.credit, before
                any write
        """
        # Step 1: collaborators and totals, nothing written yet
        definitions = cls._resolve_definitions(line_items)
        account = cls._resolve_account(account_ref)
        allocation = allocate(line_items, tenders)
        if tenders.credit > 0:
            RedemptionService.plan(account_ref, tenders.credit)

        # Step 2: order
        order = cls._create_order(account_ref, account, allocation, tenders)
        result = PurchaseResult(order=order, allocation=allocation)
        result.completed_steps.append(STEP_ORDER)

        try:
            cls._run_settlement(
                result,
                account_ref,
                tenders,
                definitions,
                credit_expiry_date=credit_expiry_date,
                bonus_expiry_date=bonus_expiry_date,
                bonus_enabled=bonus_enabled,
            )
        except Exception as exc:
            raise cls._incomplete(exc, order, result.completed_steps)

        logger.info(
            "Purchase settled: order=%s total=%s paid=%s unpaid=%s surplus=%s",
            order.pk,
            allocation.total_amount,
            allocation.paid_amount,
            allocation.unpaid_amount,
            allocation.surplus_amount,
        )
        return result

    @classmethod
    def _run_settlement(
        cls,
        result: PurchaseResult,
        account_ref: str,
        tenders: Tenders,
        definitions: dict[str, LineItemDefinition],
        credit_expiry_date: datetime | None,
        bonus_expiry_date: datetime | None,
        bonus_enabled: bool | None,
    ) -> None:
        order = result.order
        allocation = result.allocation

        # Step 3: one payment record per nonzero tender
        result.payments = cls._record_payments(order, tenders)
        result.completed_steps.append(STEP_PAYMENTS)

        # Step 4: credit redemption
        if tenders.credit > 0:
            result.credit_entries = RedemptionService.redeem(
                account_ref,
                tenders.credit,
                related_order=order,
                source="order payment",
            )
            result.completed_steps.append(STEP_CREDIT)

        # Step 5: surplus -> credit
        if allocation.surplus_amount > 0:
            result.surplus = convert_surplus(
                account_ref,
                allocation.surplus_amount,
                related_order=order,
                expiry_date=credit_expiry_date,
                bonus_expiry_date=bonus_expiry_date,
                bonus_enabled=bonus_enabled,
            )
            order.credit_earned = result.surplus.total
            order.save(update_fields=["credit_earned", "updated_at"])
            result.completed_steps.append(STEP_SURPLUS)

        # Step 6: one fulfillment per eligible line item
        for index, split in enumerate(allocation.splits):
            if not is_eligible(split.item.ref_id):
                continue
            record = FulfillmentService.create_for_item(
                order, split, definitions[split.item.ref_id]
            )
            order.line_items[index]["fulfillment_id"] = str(record.pk)
            result.fulfillments.append(record)
        if result.fulfillments:
            order.save(update_fields=["line_items", "updated_at"])
        result.completed_steps.append(STEP_FULFILLMENTS)

        # Step 7: best-effort audit linkage
        if result.surplus is not None and result.fulfillments:
            cls._link_surplus(result)

    @classmethod
    def _link_surplus(cls, result: PurchaseResult) -> None:
        refs = [str(f.pk) for f in result.fulfillments]
        try:
            LedgerService.link_fulfillments(result.surplus.entries, refs)
        except Exception:
            logger.warning(
                "Could not link surplus credit to fulfillments for order %s",
                result.order.pk,
                exc_info=True,
            )
            result.warnings.append(STEP_LINKAGE)
            return
        result.completed_steps.append(STEP_LINKAGE)

    # ======================================================================
    # Later settlement
    # ======================================================================

    @classmethod
    def pay_outstanding(
        cls,
        order_id,
        tenders: Tenders,
        credit_expiry_date: datetime | None = None,
    ) -> PurchaseResult:
        """
        Pay (part of) an order's unpaid amount.

        The payment is spread over unpaid line items in their original
        order. Anything above the unpaid amount becomes surplus credit.

        Raises:
            RecordNotFound: Unknown order
            InvalidStateTransition: Order is already completed
            InsufficientCredit: Before any write
        """
        order = cls.get_order(order_id)
        if order.status == OrderStatus.COMPLETED:
            raise InvalidStateTransition(
                message="Order is already completed",
                order_id=str(order.pk),
            )
        validate_tenders(tenders)
        if tenders.total <= 0:
            raise SettlemanError("INVALID_AMOUNT", message="Nothing tendered")

        applied = min(tenders.total, order.unpaid_amount)
        surplus_amount = tenders.total - applied
        result = PurchaseResult(order=order)

        try:
            if tenders.credit > 0:
                result.credit_entries = RedemptionService.redeem(
                    order.account_ref,
                    tenders.credit,
                    related_order=order,
                    source="order payment",
                )
                result.completed_steps.append(STEP_CREDIT)

            result.payments = cls._record_payments(order, tenders)
            result.completed_steps.append(STEP_PAYMENTS)

            result.fulfillments = cls._spread_payment(order, applied)
            order.paid_amount += applied
            order.unpaid_amount -= applied
            order.credit_used += tenders.credit
            cls._advance_status(order)
            order.save(update_fields=[
                "line_items",
                "paid_amount",
                "unpaid_amount",
                "credit_used",
                "status",
                "updated_at",
            ])
            result.completed_steps.append(STEP_FULFILLMENTS)

            if surplus_amount > 0:
                result.surplus = convert_surplus(
                    order.account_ref,
                    surplus_amount,
                    related_order=order,
                    expiry_date=credit_expiry_date,
                )
                order.credit_earned += result.surplus.total
                order.save(update_fields=["credit_earned", "updated_at"])
                result.completed_steps.append(STEP_SURPLUS)
        except Exception as exc:
            raise cls._incomplete(exc, order, result.completed_steps)

        logger.info("Outstanding paid: order=%s applied=%s status=%s", order.pk, applied, order.status)
        return result

    @classmethod
    def _spread_payment(cls, order: Order, amount: int) -> list[FulfillmentRecord]:
        """Greedy spread of a later payment over the order's unpaid items."""
        touched = []
        remaining = amount
        for item in order.line_items:
            if remaining <= 0:
                break
            share = min(remaining, item.get("unpaid_amount", 0))
            if share <= 0:
                continue
            item["paid_amount"] = item.get("paid_amount", 0) + share
            item["unpaid_amount"] -= share
            remaining -= share

            fulfillment_id = item.get("fulfillment_id")
            if fulfillment_id:
                record = FulfillmentService.get(fulfillment_id)
                touched.append(FulfillmentService.settle(record, share))
        return touched

    # ======================================================================
    # Queries
    # ======================================================================

    @classmethod
    def get_order(cls, order_id) -> Order:
        try:
            return Order.objects.get(pk=order_id)
        except (Order.DoesNotExist, ValidationError, ValueError):
            raise RecordNotFound(entity="Order", id=str(order_id))

    @classmethod
    def orders_for(cls, account_ref: str) -> list[Order]:
        return list(Order.objects.filter(account_ref=account_ref))

    @classmethod
    def payments_for(cls, order_id) -> list[PaymentRecord]:
        return list(PaymentRecord.objects.filter(order_id=cls.get_order(order_id).pk))

    # ======================================================================
    # Internal
    # ======================================================================

    @classmethod
    def _resolve_definitions(cls, line_items: list[LineItem]) -> dict[str, LineItemDefinition]:
        """Catalog definitions for every eligible item, or DependencyUnavailable."""
        catalog = load_backend("CATALOG_BACKEND")
        definitions = {}
        for item in line_items:
            if not is_eligible(item.ref_id) or item.ref_id in definitions:
                continue
            try:
                definition = catalog.get_line_item_definition(item.ref_id)
            except Exception as exc:
                raise DependencyUnavailable(
                    message=f"Catalog lookup failed for {item.ref_id}",
                    collaborator="catalog",
                    ref_id=item.ref_id,
                ) from exc
            if definition is None:
                raise DependencyUnavailable(
                    message=f"Unknown line item: {item.ref_id}",
                    collaborator="catalog",
                    ref_id=item.ref_id,
                )
            definitions[item.ref_id] = definition
        return definitions

    @classmethod
    def _resolve_account(cls, account_ref: str) -> AccountInfo | None:
        directory = load_backend("ACCOUNT_DIRECTORY_BACKEND")
        try:
            return directory.get_account(account_ref)
        except Exception as exc:
            raise DependencyUnavailable(
                message=f"Account lookup failed for {account_ref}",
                collaborator="accounts",
                account_ref=account_ref,
            ) from exc

    @classmethod
    def _create_order(
        cls,
        account_ref: str,
        account: AccountInfo | None,
        allocation: Allocation,
        tenders: Tenders,
    ) -> Order:
        order = Order.objects.create(
            account_ref=account_ref,
            account_name=account.name if account else "",
            line_items=[
                {
                    "ref_id": split.item.ref_id,
                    "name": split.item.name,
                    "unit_price": split.item.price,
                    "paid_amount": split.paid_amount,
                    "unpaid_amount": split.unpaid_amount,
                }
                for split in allocation.splits
            ],
            total_amount=allocation.total_amount,
            paid_amount=allocation.paid_amount,
            unpaid_amount=allocation.unpaid_amount,
            credit_used=tenders.credit,
            status=Order.status_for(allocation.paid_amount, allocation.unpaid_amount),
            created_at=get_clock().now(),
        )
        order_created.send(sender=Order, order=order)
        return order

    @classmethod
    def _record_payments(cls, order: Order, tenders: Tenders) -> list[PaymentRecord]:
        now = get_clock().now()
        return [
            PaymentRecord.objects.create(
                order=order,
                tender_type=tender_type,
                amount=amount,
                created_at=now,
            )
            for tender_type, amount in tenders.nonzero_money()
        ]

    @classmethod
    def _advance_status(cls, order: Order) -> None:
        """Move status forward only."""
        target = Order.status_for(order.paid_amount, order.unpaid_amount)
        if ORDER_STATUS_FLOW.index(target) > ORDER_STATUS_FLOW.index(order.status):
            order.status = target

    @classmethod
    def _incomplete(cls, exc: Exception, order: Order, completed_steps: list[str]) -> Exception:
        """Attach saga progress to a mid-workflow failure."""
        context = {"order_id": str(order.pk), "completed_steps": list(completed_steps)}
        if isinstance(exc, SettlemanError):
            logger.warning(
                "Settlement incomplete for order %s after %s: %s",
                order.pk,
                completed_steps,
                exc.code,
            )
            exc.data.update(context)
            return exc

        logger.exception("Settlement incomplete for order %s after %s", order.pk, completed_steps)
        error = SettlemanError("SETTLEMENT_INCOMPLETE", error=str(exc), **context)
        error.__cause__ = exc
        return error
