"""Fulfillment service - per-item delivery records and their transitions."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.core.exceptions import ValidationError
from django.db.models import Count, Sum

from settleman.conf import get_clock
from settleman.exceptions import InvalidStateTransition, RecordNotFound, SettlemanError
from settleman.models import BillingModel, FulfillmentRecord, FulfillmentStatus, Order
from settleman.protocols.catalog import LineItemDefinition
from settleman.services.allocation import ItemSplit
from settleman.signals import fulfillment_changed

logger = logging.getLogger(__name__)


_CLOSED = (FulfillmentStatus.COMPLETED, FulfillmentStatus.CANCELLED)


@dataclass(frozen=True)
class UnpaidSummary:
    """Outstanding balance across all accounts."""

    account_count: int
    total_unpaid: int


def initial_status(
    billing_model: str,
    unpaid_amount: int,
    end_date: datetime | None,
    now: datetime,
) -> str:
    """Status of a freshly created (or freshly settled) record."""
    if unpaid_amount > 0:
        return FulfillmentStatus.UNPAID
    if billing_model == BillingModel.DATE_RANGE and end_date is not None and end_date <= now:
        return FulfillmentStatus.COMPLETED
    return FulfillmentStatus.ACTIVE


class FulfillmentService:
    """
    Service for fulfillment records.

    Uses @classmethod for extensibility (consistent with other services).
    Transitions validate the current status first and raise
    InvalidStateTransition without writing when it does not allow them.
    """

    # ======================================================================
    # Queries
    # ======================================================================

    @classmethod
    def get(cls, fulfillment_id) -> FulfillmentRecord:
        try:
            return FulfillmentRecord.objects.select_related("order").get(pk=fulfillment_id)
        except (FulfillmentRecord.DoesNotExist, ValidationError, ValueError):
            raise RecordNotFound(entity="FulfillmentRecord", id=str(fulfillment_id))

    @classmethod
    def by_account(cls, account_ref: str) -> list[FulfillmentRecord]:
        return list(FulfillmentRecord.objects.filter(account_ref=account_ref))

    @classmethod
    def by_status(cls, status: str) -> list[FulfillmentRecord]:
        return list(FulfillmentRecord.objects.filter(status=status))

    @classmethod
    def by_order(cls, order: Order) -> list[FulfillmentRecord]:
        return list(FulfillmentRecord.objects.filter(order=order).order_by("created_at", "id"))

    @classmethod
    def unpaid_total(cls, account_ref: str) -> int:
        """Σ unpaid_amount over the account's unpaid fulfillments."""
        total = FulfillmentRecord.objects.filter(
            account_ref=account_ref, status=FulfillmentStatus.UNPAID
        ).aggregate(total=Sum("unpaid_amount"))["total"]
        return total or 0

    @classmethod
    def unpaid_summary(cls) -> UnpaidSummary:
        """Accounts with unpaid fulfillments and the total owed across them."""
        row = FulfillmentRecord.objects.filter(status=FulfillmentStatus.UNPAID).aggregate(
            accounts=Count("account_ref", distinct=True),
            total=Sum("unpaid_amount"),
        )
        return UnpaidSummary(account_count=row["accounts"], total_unpaid=row["total"] or 0)

    # ======================================================================
    # Creation
    # ======================================================================

    @classmethod
    def create_for_item(
        cls,
        order: Order,
        split: ItemSplit,
        definition: LineItemDefinition,
    ) -> FulfillmentRecord:
        """
        Create the fulfillment record for one purchased line item.

        Session-count items start now. Date-range items use the item's
        start/end when given, else now and now + duration_days.
        """
        now = get_clock().now()
        item = split.item
        billing_model = definition.billing_model

        if billing_model == BillingModel.SESSION_COUNT:
            start_date = now
        else:
            start_date = item.start_date or now

        end_date = item.end_date
        if end_date is None and definition.duration_days:
            end_date = start_date + timedelta(days=definition.duration_days)

        record = FulfillmentRecord.objects.create(
            order=order,
            account_ref=order.account_ref,
            ref_id=item.ref_id,
            name=item.name,
            billing_model=billing_model,
            paid_amount=split.paid_amount,
            unpaid_amount=split.unpaid_amount,
            status=initial_status(billing_model, split.unpaid_amount, end_date, now),
            start_date=start_date,
            end_date=end_date,
            session_count=(
                definition.session_count if billing_model == BillingModel.SESSION_COUNT else None
            ),
            created_at=now,
        )
        logger.info(
            "Fulfillment created: %s %s paid=%s unpaid=%s",
            record.ref_id,
            record.status,
            record.paid_amount,
            record.unpaid_amount,
        )
        return record

    # ======================================================================
    # Transitions
    # ======================================================================

    @classmethod
    def complete_session(cls, fulfillment_id) -> FulfillmentRecord:
        """
        Record one attended session.

        Flips the record to completed once completed_sessions reaches
        session_count.

        Raises:
            RecordNotFound: Unknown id
            InvalidStateTransition: Not session-count, or held/closed
        """
        record = cls.get(fulfillment_id)
        if record.billing_model != BillingModel.SESSION_COUNT:
            raise InvalidStateTransition(
                message="Only session-count fulfillments track sessions",
                id=str(record.pk),
            )
        if record.status in _CLOSED or record.is_held:
            raise InvalidStateTransition(
                message=f"Cannot complete a session while {record.status}",
                id=str(record.pk),
                status=record.status,
            )

        previous = record.status
        record.completed_sessions += 1
        if record.session_count is not None and record.completed_sessions >= record.session_count:
            record.status = FulfillmentStatus.COMPLETED

        record.save(update_fields=["completed_sessions", "status", "updated_at"])
        cls._notify(record, previous)
        return record

    @classmethod
    def start_hold(cls, fulfillment_id, reason: str = "") -> FulfillmentRecord:
        """
        Pause a date-range fulfillment.

        Raises:
            InvalidStateTransition: Unless the record is an active date-range record
        """
        record = cls.get(fulfillment_id)
        cls._require_date_range(record)
        if record.status != FulfillmentStatus.ACTIVE:
            raise InvalidStateTransition(
                message="Only active fulfillments can be held",
                id=str(record.pk),
                status=record.status,
            )

        previous = record.status
        record.status = FulfillmentStatus.HOLD
        record.hold_started_at = get_clock().now()
        record.hold_reason = reason
        record.save(update_fields=["status", "hold_started_at", "hold_reason", "updated_at"])
        cls._notify(record, previous)
        return record

    @classmethod
    def end_hold(cls, fulfillment_id) -> FulfillmentRecord:
        """
        Resume a held fulfillment, pushing end_date by the time spent on hold.

        Raises:
            InvalidStateTransition: If the record is not held
        """
        record = cls.get(fulfillment_id)
        if not record.is_held:
            raise InvalidStateTransition(
                message="Fulfillment is not on hold",
                id=str(record.pk),
                status=record.status,
            )

        now = get_clock().now()
        elapsed = now - record.hold_started_at if record.hold_started_at else timedelta(0)

        previous = record.status
        if record.end_date is not None:
            record.end_date += elapsed
        record.total_hold_days += elapsed.days
        record.hold_started_at = None
        record.status = FulfillmentStatus.ACTIVE
        record.save(
            update_fields=["status", "end_date", "total_hold_days", "hold_started_at", "updated_at"]
        )
        cls._notify(record, previous)
        return record

    @classmethod
    def extend(cls, fulfillment_id, days: int, reason: str = "") -> FulfillmentRecord:
        """
        Push end_date forward by ``days``.

        A completed date-range record whose new end_date is in the future
        becomes active again.

        Raises:
            SettlemanError: INVALID_AMOUNT if days <= 0
            InvalidStateTransition: While held or cancelled, or without an end date
        """
        if days <= 0:
            raise SettlemanError("INVALID_AMOUNT", message="Extension must be at least one day")

        record = cls.get(fulfillment_id)
        cls._require_date_range(record)
        if record.is_held or record.status == FulfillmentStatus.CANCELLED:
            raise InvalidStateTransition(
                message=f"Cannot extend while {record.status}",
                id=str(record.pk),
                status=record.status,
            )
        if record.end_date is None:
            raise InvalidStateTransition(
                message="Fulfillment has no end date to extend",
                id=str(record.pk),
            )

        previous = record.status
        record.end_date += timedelta(days=days)
        if record.status == FulfillmentStatus.COMPLETED and record.end_date > get_clock().now():
            record.status = FulfillmentStatus.ACTIVE
        if reason:
            record.notes = f"{record.notes}\nExtended {days}d: {reason}".strip()

        record.save(update_fields=["end_date", "status", "notes", "updated_at"])
        cls._notify(record, previous)
        return record

    @classmethod
    def cancel(cls, fulfillment_id, reason: str = "") -> FulfillmentRecord:
        record = cls.get(fulfillment_id)
        if record.status in _CLOSED:
            raise InvalidStateTransition(
                message=f"Cannot cancel a {record.status} fulfillment",
                id=str(record.pk),
                status=record.status,
            )

        previous = record.status
        record.status = FulfillmentStatus.CANCELLED
        record.hold_started_at = None
        if reason:
            record.notes = f"{record.notes}\nCancelled: {reason}".strip()
        record.save(update_fields=["status", "hold_started_at", "notes", "updated_at"])
        cls._notify(record, previous)
        return record

    @classmethod
    def settle(cls, record: FulfillmentRecord, amount: int) -> FulfillmentRecord:
        """Apply a later payment to an unpaid record."""
        amount = min(amount, record.unpaid_amount)
        if amount <= 0:
            return record

        previous = record.status
        record.paid_amount += amount
        record.unpaid_amount -= amount
        if record.status == FulfillmentStatus.UNPAID:
            record.status = initial_status(
                record.billing_model, record.unpaid_amount, record.end_date, get_clock().now()
            )
        record.save(update_fields=["paid_amount", "unpaid_amount", "status", "updated_at"])
        cls._notify(record, previous)
        return record

    @classmethod
    def complete_expired(cls) -> int:
        """
        Mark active date-range records past their end_date as completed.

        Returns:
            Number of records completed
        """
        now = get_clock().now()
        expired = FulfillmentRecord.objects.filter(
            billing_model=BillingModel.DATE_RANGE,
            status=FulfillmentStatus.ACTIVE,
            end_date__isnull=False,
            end_date__lte=now,
        )

        count = 0
        for record in expired:
            record.status = FulfillmentStatus.COMPLETED
            record.save(update_fields=["status", "updated_at"])
            cls._notify(record, FulfillmentStatus.ACTIVE)
            count += 1

        if count:
            logger.info("Completed %d expired date-range fulfillments", count)
        return count

    # ======================================================================
    # Internal
    # ======================================================================

    @classmethod
    def _require_date_range(cls, record: FulfillmentRecord) -> None:
        if record.billing_model != BillingModel.DATE_RANGE:
            raise InvalidStateTransition(
                message="Only date-range fulfillments can be held or extended",
                id=str(record.pk),
            )

    @classmethod
    def _notify(cls, record: FulfillmentRecord, previous_status: str) -> None:
        if record.status != previous_status:
            fulfillment_changed.send(
                sender=FulfillmentRecord,
                fulfillment=record,
                previous_status=previous_status,
            )
