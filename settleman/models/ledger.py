"""
LedgerEntry model - append-only credit log.

Credit entries (earn, positive adjust) grant credit. Consumption entries
(use, expire, negative adjust) point back to the credit entry they consume
through original_entry. Availability is always folded from the log, never
stored.
"""

import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class EntryKind(models.TextChoices):
    EARN = "earn", _("Earn")
    USE = "use", _("Use")
    EXPIRE = "expire", _("Expire")
    ADJUST = "adjust", _("Adjust")


class LedgerEntry(models.Model):
    """
    Immutable credit ledger entry.

    Rules:
    - Never deleted, never value-mutated after insert
    - is_expired only flips False -> True (via queryset update)
    - Consumptions copy earned_date/expiry_date from their original entry
    - Σ |consumptions of an entry| <= entry.amount
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    account_ref = models.CharField(
        _("account"),
        max_length=100,
        db_index=True,
        help_text=_("External account reference (member id)"),
    )

    amount = models.BigIntegerField(
        _("amount"),
        help_text=_("Positive for grants, negative for consumption"),
    )
    kind = models.CharField(
        _("kind"),
        max_length=10,
        choices=EntryKind.choices,
        db_index=True,
    )

    earned_date = models.DateTimeField(_("earned at"))
    expiry_date = models.DateTimeField(_("expires at"), null=True, blank=True)
    is_expired = models.BooleanField(_("expired"), default=False)

    # Back-references
    original_entry = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="consumptions",
        null=True,
        blank=True,
        verbose_name=_("original entry"),
    )
    related_order = models.ForeignKey(
        "settleman.Order",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        null=True,
        blank=True,
        verbose_name=_("order"),
    )

    source = models.CharField(_("source"), max_length=100, blank=True)
    description = models.CharField(_("description"), max_length=255, blank=True)

    # Audit linkage back-filled after checkout
    fulfillment_refs = models.JSONField(_("fulfillments"), default=list, blank=True)

    created_at = models.DateTimeField(_("created at"), default=timezone.now, db_index=True)

    class Meta:
        db_table = "settleman_ledger_entry"
        verbose_name = _("ledger entry")
        verbose_name_plural = _("ledger entries")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["account_ref", "kind"], name="ledger_account_kind_idx"),
            models.Index(fields=["account_ref", "earned_date"], name="ledger_account_earned_idx"),
        ]

    def __str__(self):
        sign = "+" if self.amount > 0 else ""
        return f"{self.account_ref}: {sign}{self.amount} ({self.kind})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            from settleman.exceptions import SettlemanError

            raise SettlemanError("LEDGER_IMMUTABLE", entry_id=str(self.pk))
        super().save(*args, **kwargs)

    @property
    def is_credit(self) -> bool:
        """Grants credit that can later be consumed."""
        return self.amount > 0 and self.kind in (EntryKind.EARN, EntryKind.ADJUST)

    @property
    def is_consumption(self) -> bool:
        return self.amount < 0 and self.original_entry_id is not None
