"""FulfillmentRecord model - delivery tracking for one purchased line item."""

import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class BillingModel(models.TextChoices):
    SESSION_COUNT = "session_count", _("Session count")
    DATE_RANGE = "date_range", _("Date range")


class FulfillmentStatus(models.TextChoices):
    UNPAID = "unpaid", _("Unpaid")
    ACTIVE = "active", _("Active")
    COMPLETED = "completed", _("Completed")
    HOLD = "hold", _("On hold")
    CANCELLED = "cancelled", _("Cancelled")


class FulfillmentRecord(models.Model):
    """
    Tracks delivery of one purchased line item.

    Session-count items progress through completed_sessions; date-range
    items run from start_date to end_date and may be held or extended.
    paid_amount/unpaid_amount carry the item's share of the order's
    settlement.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        "settleman.Order",
        on_delete=models.PROTECT,
        related_name="fulfillments",
        verbose_name=_("order"),
    )
    account_ref = models.CharField(_("account"), max_length=100, db_index=True)

    ref_id = models.CharField(_("item ref"), max_length=100)
    name = models.CharField(_("name"), max_length=200, blank=True)
    billing_model = models.CharField(
        _("billing model"),
        max_length=20,
        choices=BillingModel.choices,
        default=BillingModel.DATE_RANGE,
    )

    paid_amount = models.BigIntegerField(_("paid"), default=0)
    unpaid_amount = models.BigIntegerField(_("unpaid"), default=0)

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=FulfillmentStatus.choices,
        default=FulfillmentStatus.ACTIVE,
        db_index=True,
    )

    start_date = models.DateTimeField(_("start"))
    end_date = models.DateTimeField(_("end"), null=True, blank=True)

    # Session-count items
    session_count = models.PositiveIntegerField(_("sessions"), null=True, blank=True)
    completed_sessions = models.PositiveIntegerField(_("completed sessions"), default=0)

    # Hold tracking (date-range items)
    hold_started_at = models.DateTimeField(_("hold started"), null=True, blank=True)
    hold_reason = models.CharField(_("hold reason"), max_length=200, blank=True)
    total_hold_days = models.PositiveIntegerField(_("total hold days"), default=0)

    notes = models.TextField(_("notes"), blank=True)

    created_at = models.DateTimeField(_("created at"), default=timezone.now)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "settleman_fulfillment"
        verbose_name = _("fulfillment")
        verbose_name_plural = _("fulfillments")
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.name or self.ref_id} ({self.status})"

    @property
    def remaining_sessions(self) -> int | None:
        if self.session_count is None:
            return None
        return max(0, self.session_count - self.completed_sessions)

    @property
    def is_held(self) -> bool:
        return self.status == FulfillmentStatus.HOLD
