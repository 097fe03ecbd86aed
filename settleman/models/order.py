"""Order and PaymentRecord models."""

import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class OrderStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    PARTIALLY_PAID = "partially_paid", _("Partially paid")
    COMPLETED = "completed", _("Completed")


# Forward-only order of statuses
ORDER_STATUS_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.PARTIALLY_PAID,
    OrderStatus.COMPLETED,
]


class TenderType(models.TextChoices):
    CASH = "cash", _("Cash")
    CARD = "card", _("Card")
    TRANSFER = "transfer", _("Bank transfer")


class Order(models.Model):
    """
    Purchase order.

    line_items is a snapshot of what was bought and how the tendered
    amount was split across it:
        [{"ref_id": "pt_10", "name": "PT x10", "unit_price": 600000,
          "paid_amount": 600000, "unpaid_amount": 0,
          "fulfillment_id": "..."}, ...]

    fulfillment_id is absent for items that get no fulfillment record.

    paid_amount is the applied amount (never above total_amount); surplus
    is converted to credit and shows up as credit_earned.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    account_ref = models.CharField(_("account"), max_length=100, db_index=True)
    account_name = models.CharField(_("account name"), max_length=200, blank=True)

    line_items = models.JSONField(_("line items"), default=list)

    total_amount = models.BigIntegerField(_("total"), default=0)
    paid_amount = models.BigIntegerField(_("paid"), default=0)
    unpaid_amount = models.BigIntegerField(_("unpaid"), default=0)
    credit_used = models.BigIntegerField(_("credit used"), default=0)
    credit_earned = models.BigIntegerField(_("credit earned"), default=0)

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )

    created_at = models.DateTimeField(_("created at"), default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "settleman_order"
        verbose_name = _("order")
        verbose_name_plural = _("orders")
        ordering = ["-created_at"]

    def __str__(self):
        return f"Order {str(self.id)[:8]} - {self.account_ref} ({self.status})"

    @staticmethod
    def status_for(paid_amount: int, unpaid_amount: int) -> str:
        """Status implied by the settled amounts."""
        if unpaid_amount <= 0:
            return OrderStatus.COMPLETED
        if paid_amount > 0:
            return OrderStatus.PARTIALLY_PAID
        return OrderStatus.PENDING


class PaymentRecord(models.Model):
    """One tender applied to an order. Created once per nonzero tender."""

    class Status(models.TextChoices):
        COMPLETED = "completed", _("Completed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="payments",
        verbose_name=_("order"),
    )
    tender_type = models.CharField(_("tender"), max_length=20, choices=TenderType.choices)
    amount = models.BigIntegerField(_("amount"))
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=Status.choices,
        default=Status.COMPLETED,
    )
    created_at = models.DateTimeField(_("created at"), default=timezone.now)

    class Meta:
        db_table = "settleman_payment"
        verbose_name = _("payment")
        verbose_name_plural = _("payments")
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.tender_type}: {self.amount}"
