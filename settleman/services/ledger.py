"""Ledger service - append-only credit log."""

import logging
from datetime import datetime, timedelta

from django.core.exceptions import ValidationError

from settleman.conf import get_clock
from settleman.exceptions import RecordNotFound, SettlemanError
from settleman.models import EntryKind, LedgerEntry, Order
from settleman.services.balance import BalanceService
from settleman.signals import credit_earned

logger = logging.getLogger(__name__)


_CONSUMPTION_KINDS = (EntryKind.USE, EntryKind.EXPIRE)


class LedgerService:
    """
    Service for ledger reads and writes.

    Entries are never updated or deleted. The only post-insert writes are
    mark_expired() and link_fulfillments(), both through queryset update().
    No locking: callers serialize writes per account.
    """

    @classmethod
    def append(
        cls,
        account_ref: str,
        amount: int,
        kind: str,
        *,
        earned_date: datetime | None = None,
        expiry_date: datetime | None = None,
        original_entry: LedgerEntry | None = None,
        related_order: Order | None = None,
        source: str = "",
        description: str = "",
        refresh: bool = True,
    ) -> LedgerEntry:
        """
        Insert one immutable ledger entry.

        Args:
            account_ref: Account reference
            amount: Signed amount (positive grants, negative consumes)
            kind: EntryKind value
            earned_date: Defaults to now
            expiry_date: Optional expiry instant
            original_entry: Credit entry consumed by this entry
            related_order: Order this entry belongs to
            source: Short origin label ("order surplus", "bonus", ...)
            description: Free text
            refresh: Recompute the balance snapshot after the insert

        Returns:
            Created LedgerEntry

        Raises:
            SettlemanError: INVALID_AMOUNT on sign/kind mismatch
        """
        if kind not in EntryKind.values:
            raise SettlemanError("INVALID_AMOUNT", message=f"Unknown entry kind: {kind}")
        if amount == 0:
            raise SettlemanError("INVALID_AMOUNT", message="Ledger amount cannot be zero")
        if kind == EntryKind.EARN and amount < 0:
            raise SettlemanError("INVALID_AMOUNT", message="Earn entries must be positive")
        if kind in _CONSUMPTION_KINDS and amount > 0:
            raise SettlemanError("INVALID_AMOUNT", message="Use/expire entries must be negative")
        if amount < 0 and original_entry is None:
            raise SettlemanError(
                "INVALID_AMOUNT",
                message="Negative entries must reference the credit entry they consume",
            )

        now = get_clock().now()
        entry = LedgerEntry.objects.create(
            account_ref=account_ref,
            amount=amount,
            kind=kind,
            earned_date=earned_date or now,
            expiry_date=expiry_date,
            original_entry=original_entry,
            related_order=related_order,
            source=source,
            description=description,
            created_at=now,
        )
        logger.info("Ledger append: %s %s %+d (%s)", account_ref, kind, amount, source)

        if refresh:
            BalanceService.recompute_balance(account_ref)
        if entry.is_credit:
            credit_earned.send(sender=LedgerEntry, entry=entry)
        return entry

    @classmethod
    def grant(
        cls,
        account_ref: str,
        amount: int,
        source: str = "",
        description: str = "",
        expiry_date: datetime | None = None,
        expiry_days: int | None = None,
        related_order: Order | None = None,
    ) -> LedgerEntry:
        """
        Grant credit as a new earn entry.

        expiry_days is relative to now and only used when expiry_date is None.
        """
        if amount <= 0:
            raise SettlemanError("INVALID_AMOUNT", message="Credit must be positive")
        if expiry_date is None and expiry_days is not None:
            expiry_date = get_clock().now() + timedelta(days=expiry_days)
        return cls.append(
            account_ref,
            amount,
            EntryKind.EARN,
            expiry_date=expiry_date,
            related_order=related_order,
            source=source,
            description=description,
        )

    @classmethod
    def entries_for(cls, account_ref: str) -> list[LedgerEntry]:
        """All entries for an account, in no particular order."""
        return list(LedgerEntry.objects.filter(account_ref=account_ref).order_by())

    @classmethod
    def history(cls, account_ref: str, limit: int | None = None) -> list[LedgerEntry]:
        """Entries for an account, most recent first."""
        qs = LedgerEntry.objects.filter(account_ref=account_ref).order_by("-created_at", "-id")
        if limit is not None:
            qs = qs[:limit]
        return list(qs)

    @classmethod
    def get_entry(cls, entry_id) -> LedgerEntry:
        try:
            return LedgerEntry.objects.get(pk=entry_id)
        except (LedgerEntry.DoesNotExist, ValidationError, ValueError):
            raise RecordNotFound(entity="LedgerEntry", id=str(entry_id))

    @classmethod
    def mark_expired(cls, entry_id) -> bool:
        """
        Flip is_expired to True.

        Returns:
            True if this call flipped it, False if it was already expired
        """
        updated = LedgerEntry.objects.filter(pk=entry_id, is_expired=False).update(is_expired=True)
        return updated == 1

    @classmethod
    def link_fulfillments(cls, entries: list[LedgerEntry], fulfillment_refs: list[str]) -> int:
        """Back-fill fulfillment ids onto entries for audit linkage."""
        ids = [e.pk for e in entries]
        return LedgerEntry.objects.filter(pk__in=ids).update(fulfillment_refs=list(fulfillment_refs))
