"""Balance service - availability fold and the per-account snapshot cache.

Availability of a credit entry is never stored: it is folded from the
account's entries every time it is needed.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta

from settleman.conf import get_clock, settleman_settings
from settleman.models import BalanceSnapshot, EntryKind, LedgerEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailableCredit:
    """A credit entry with what is left of it."""

    entry: LedgerEntry
    available_amount: int


def consumed_amounts(entries) -> dict:
    """Map credit entry id -> Σ |consumptions| referencing it."""
    consumed = defaultdict(int)
    for entry in entries:
        if entry.original_entry_id is not None and entry.amount < 0:
            consumed[entry.original_entry_id] += abs(entry.amount)
    return consumed


def remaining_amount(entry: LedgerEntry, entries) -> int:
    """Credit left on ``entry`` given the account's full entry list."""
    return entry.amount - consumed_amounts(entries).get(entry.id, 0)


def is_available(entry: LedgerEntry, remaining: int, now: datetime) -> bool:
    return (
        remaining > 0
        and not entry.is_expired
        and (entry.expiry_date is None or entry.expiry_date > now)
    )


def fifo_key(entry: LedgerEntry):
    """Oldest earned first; created_at then id break ties."""
    return (entry.earned_date, entry.created_at, str(entry.id))


def counts_toward_balance(entry: LedgerEntry, now: datetime) -> bool:
    return not entry.is_expired and (entry.expiry_date is None or entry.expiry_date > now)


class BalanceService:
    """
    Service for balance computation.

    Uses @classmethod for extensibility (consistent with other services).
    """

    @classmethod
    def entries(cls, account_ref: str) -> list[LedgerEntry]:
        return list(LedgerEntry.objects.filter(account_ref=account_ref))

    @classmethod
    def available_entries(
        cls,
        account_ref: str,
        entries: list[LedgerEntry] | None = None,
        now: datetime | None = None,
    ) -> list[AvailableCredit]:
        """
        List available credit entries in FIFO order.

        Args:
            account_ref: Account reference
            entries: Pre-fetched entries for the account (fetched if None)
            now: Evaluation instant (clock if None)

        Returns:
            AvailableCredit list sorted by earned_date, created_at, id
        """
        if entries is None:
            entries = cls.entries(account_ref)
        if now is None:
            now = get_clock().now()

        consumed = consumed_amounts(entries)
        available = []
        for entry in entries:
            if not entry.is_credit:
                continue
            remaining = entry.amount - consumed.get(entry.id, 0)
            if is_available(entry, remaining, now):
                available.append(AvailableCredit(entry=entry, available_amount=remaining))

        available.sort(key=lambda credit: fifo_key(credit.entry))
        return available

    @classmethod
    def available_total(cls, account_ref: str) -> int:
        return sum(c.available_amount for c in cls.available_entries(account_ref))

    @classmethod
    def recompute_balance(cls, account_ref: str) -> BalanceSnapshot:
        """
        Rebuild the account's snapshot from the ledger and upsert it.

        Returns:
            The updated BalanceSnapshot
        """
        now = get_clock().now()
        entries = cls.entries(account_ref)

        total = sum(e.amount for e in entries if counts_toward_balance(e, now))
        earned = sum(e.amount for e in entries if e.is_credit)
        used = sum(
            abs(e.amount)
            for e in entries
            if e.amount < 0 and e.kind in (EntryKind.USE, EntryKind.ADJUST)
        )
        expired = sum(abs(e.amount) for e in entries if e.kind == EntryKind.EXPIRE)

        short_days, long_days = settleman_settings.EXPIRY_HORIZONS
        available = cls.available_entries(account_ref, entries=entries, now=now)

        snapshot, _ = BalanceSnapshot.objects.update_or_create(
            account_ref=account_ref,
            defaults={
                "total_balance": total,
                "earned": earned,
                "used": used,
                "expired": expired,
                "expiring_in_7_days": _expiring_within(available, now, short_days),
                "expiring_in_30_days": _expiring_within(available, now, long_days),
                "transaction_count": len(entries),
                "next_expiry_at": _next_expiry(available),
                "last_updated": now,
            },
        )

        logger.debug("Balance recomputed: %s = %s", account_ref, total)
        return snapshot

    @classmethod
    def read_balance(cls, account_ref: str) -> BalanceSnapshot:
        """
        Return the cached snapshot, recomputing it first when stale or missing.

        Staleness is bounded by BALANCE_CACHE_TTL seconds, and a snapshot
        never outlives the earliest expiry among the credit it counts.
        """
        now = get_clock().now()
        ttl = timedelta(seconds=settleman_settings.BALANCE_CACHE_TTL)

        snapshot = BalanceSnapshot.objects.filter(account_ref=account_ref).first()
        if snapshot is not None and now - snapshot.last_updated < ttl:
            if snapshot.next_expiry_at is None or now < snapshot.next_expiry_at:
                return snapshot

        return cls.recompute_balance(account_ref)


def _expiring_within(available: list[AvailableCredit], now: datetime, days: int) -> int:
    horizon = now + timedelta(days=days)
    return sum(
        c.available_amount
        for c in available
        if c.entry.expiry_date is not None and c.entry.expiry_date <= horizon
    )


def _next_expiry(available: list[AvailableCredit]) -> datetime | None:
    dates = [c.entry.expiry_date for c in available if c.entry.expiry_date is not None]
    return min(dates, default=None)
