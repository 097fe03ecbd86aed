"""Expiry sweeper - turns past-due credit into expire entries.

Idempotent: a credit entry is marked is_expired after its expire entry is
written, and a re-run only looks at unmarked entries. If a run dies between
the two writes, the next run finds nothing left to expire on that entry and
only marks it.
"""

import logging
from dataclasses import dataclass, field

from settleman.conf import get_clock
from settleman.models import EntryKind, LedgerEntry
from settleman.services.balance import BalanceService, consumed_amounts, fifo_key
from settleman.services.ledger import LedgerService
from settleman.signals import credit_expired

logger = logging.getLogger(__name__)

EXPIRY_SOURCE = "credit expiry"


@dataclass
class SweepResult:
    entries_written: int = 0
    entries_marked: int = 0
    accounts: list[str] = field(default_factory=list)

    def merge(self, other: "SweepResult") -> None:
        self.entries_written += other.entries_written
        self.entries_marked += other.entries_marked
        self.accounts.extend(other.accounts)


class ExpiryService:
    """
    Batch expiry of credit entries.

    Runs one account at a time. Distinct accounts may be swept
    concurrently; one account must not be.
    """

    @classmethod
    def due_entries(cls, account_ref: str | None = None):
        """Unmarked credit entries whose expiry_date has passed."""
        now = get_clock().now()
        qs = LedgerEntry.objects.filter(
            kind__in=[EntryKind.EARN, EntryKind.ADJUST],
            amount__gt=0,
            is_expired=False,
            expiry_date__isnull=False,
            expiry_date__lte=now,
        )
        if account_ref is not None:
            qs = qs.filter(account_ref=account_ref)
        return qs

    @classmethod
    def sweep(cls, account_ref: str | None = None) -> SweepResult:
        """
        Expire every past-due credit entry.

        Args:
            account_ref: Restrict the sweep to one account

        Returns:
            SweepResult with counts of expire entries written and entries marked
        """
        accounts = (
            cls.due_entries(account_ref)
            .order_by("account_ref")
            .values_list("account_ref", flat=True)
            .distinct()
        )

        result = SweepResult()
        for ref in list(accounts):
            result.merge(cls.sweep_account(ref))

        if result.entries_marked:
            logger.info(
                "Expiry sweep: %d entries expired, %d marked, %d accounts",
                result.entries_written,
                result.entries_marked,
                len(result.accounts),
            )
        return result

    @classmethod
    def sweep_account(cls, account_ref: str) -> SweepResult:
        """Expire past-due credit for one account and refresh its balance."""
        due = sorted(cls.due_entries(account_ref), key=fifo_key)
        if not due:
            return SweepResult()

        consumed = consumed_amounts(LedgerService.entries_for(account_ref))
        result = SweepResult(accounts=[account_ref])

        for entry in due:
            remaining = entry.amount - consumed.get(entry.id, 0)
            if remaining > 0:
                expire_entry = LedgerService.append(
                    account_ref,
                    -remaining,
                    EntryKind.EXPIRE,
                    earned_date=entry.earned_date,
                    expiry_date=entry.expiry_date,
                    original_entry=entry,
                    source=EXPIRY_SOURCE,
                    description=f"Expired on {entry.expiry_date:%Y-%m-%d}",
                    refresh=False,
                )
                consumed[entry.id] = consumed.get(entry.id, 0) + remaining
                result.entries_written += 1
                credit_expired.send(sender=LedgerEntry, entry=expire_entry, original=entry)

            if LedgerService.mark_expired(entry.pk):
                result.entries_marked += 1

        BalanceService.recompute_balance(account_ref)
        return result
