"""BalanceSnapshot model - derived per-account credit aggregate."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class BalanceSnapshot(models.Model):
    """
    Cached balance for one account.

    Rebuilt from the ledger on every write affecting the account and
    lazily on read once older than BALANCE_CACHE_TTL or once
    next_expiry_at has passed. Never the source of truth: deleting every
    row loses nothing.
    """

    account_ref = models.CharField(_("account"), max_length=100, unique=True)

    total_balance = models.BigIntegerField(_("balance"), default=0)
    earned = models.BigIntegerField(_("earned"), default=0)
    used = models.BigIntegerField(_("used"), default=0)
    expired = models.BigIntegerField(_("expired"), default=0)
    expiring_in_7_days = models.BigIntegerField(_("expiring in 7 days"), default=0)
    expiring_in_30_days = models.BigIntegerField(_("expiring in 30 days"), default=0)
    transaction_count = models.IntegerField(_("transactions"), default=0)
    next_expiry_at = models.DateTimeField(_("next expiry"), null=True, blank=True)

    last_updated = models.DateTimeField(_("last updated"), default=timezone.now)

    class Meta:
        db_table = "settleman_balance_snapshot"
        verbose_name = _("balance snapshot")
        verbose_name_plural = _("balance snapshots")

    def __str__(self):
        return f"{self.account_ref}: {self.total_balance}"
