"""Redemption service - FIFO consumption of credit entries."""

import logging
from dataclasses import dataclass

from django.db import transaction

from settleman.exceptions import InsufficientCredit, SettlemanError
from settleman.models import EntryKind, LedgerEntry, Order
from settleman.services.balance import BalanceService
from settleman.services.ledger import LedgerService
from settleman.signals import credit_redeemed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    """Part of a redemption drawn from one credit entry."""

    entry: LedgerEntry
    amount: int


class RedemptionService:
    """
    FIFO redemption engine.

    Oldest earned credit is consumed first. Each consumed batch becomes a
    new negative entry pointing at the credit entry it draws from; the
    credit entry itself is never touched.

    No lock is taken: two concurrent redemptions for one account can both
    pass the availability check. Serialize per account upstream.
    """

    @classmethod
    def plan(cls, account_ref: str, amount: int) -> list[Assignment]:
        """
        Compute the FIFO assignment for a redemption without writing.

        Raises:
            SettlemanError: INVALID_AMOUNT if amount <= 0
            InsufficientCredit: If available credit < amount
        """
        if amount <= 0:
            raise SettlemanError("INVALID_AMOUNT", message="Redemption amount must be positive")

        available = BalanceService.available_entries(account_ref)
        total_available = sum(c.available_amount for c in available)
        if total_available < amount:
            raise InsufficientCredit(
                account_ref=account_ref,
                available=total_available,
                requested=amount,
            )

        remaining = amount
        assignments = []
        for credit in available:
            if remaining == 0:
                break
            batch = min(remaining, credit.available_amount)
            assignments.append(Assignment(entry=credit.entry, amount=batch))
            remaining -= batch
        return assignments

    @classmethod
    def redeem(
        cls,
        account_ref: str,
        amount: int,
        related_order: Order | None = None,
        source: str = "",
        kind: str = EntryKind.USE,
    ) -> list[LedgerEntry]:
        """
        Redeem credit oldest-first.

        Args:
            account_ref: Account reference
            amount: Credit to consume (positive)
            related_order: Order the credit pays for
            source: Origin label for the use entries
            kind: EntryKind.USE, or EntryKind.ADJUST for manual deductions

        Returns:
            The created consumption entries, in FIFO order

        Raises:
            SettlemanError: INVALID_AMOUNT if amount <= 0
            InsufficientCredit: Before any write, if available credit < amount
        """
        assignments = cls.plan(account_ref, amount)

        with transaction.atomic():
            entries = [
                LedgerService.append(
                    account_ref,
                    -assignment.amount,
                    kind,
                    earned_date=assignment.entry.earned_date,
                    expiry_date=assignment.entry.expiry_date,
                    original_entry=assignment.entry,
                    related_order=related_order,
                    source=source,
                    description=f"FIFO from {str(assignment.entry.pk)[-8:]}",
                    refresh=False,
                )
                for assignment in assignments
            ]

        BalanceService.recompute_balance(account_ref)
        logger.info(
            "Redeemed %s from %s across %d entries", amount, account_ref, len(entries)
        )
        credit_redeemed.send(
            sender=LedgerEntry,
            account_ref=account_ref,
            entries=entries,
            amount=amount,
        )
        return entries

    @classmethod
    def adjust(cls, account_ref: str, amount: int, reason: str = "") -> list[LedgerEntry]:
        """
        Manual balance adjustment.

        A positive amount becomes one adjust credit entry; a negative amount
        is consumed FIFO as adjust entries (same rules as redeem).
        """
        if amount == 0:
            raise SettlemanError("INVALID_AMOUNT", message="Adjustment cannot be zero")
        if amount > 0:
            return [
                LedgerService.append(
                    account_ref,
                    amount,
                    EntryKind.ADJUST,
                    source="adjustment",
                    description=reason,
                )
            ]
        return cls.redeem(account_ref, -amount, source="adjustment", kind=EntryKind.ADJUST)
