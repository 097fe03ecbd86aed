"""Tests for the credit ledger and balance derivation."""

import uuid
from datetime import timedelta

import pytest

from settleman.exceptions import RecordNotFound, SettlemanError
from settleman.models import BalanceSnapshot, EntryKind, LedgerEntry
from settleman.services.balance import BalanceService, counts_toward_balance
from settleman.services.expiry import ExpiryService
from settleman.services.ledger import LedgerService
from settleman.services.redemption import RedemptionService
from settleman.service import SettlementService
from settleman.signals import credit_earned


pytestmark = pytest.mark.django_db


def ledger_sum(account_ref, now):
    return sum(
        e.amount
        for e in LedgerEntry.objects.filter(account_ref=account_ref)
        if counts_toward_balance(e, now)
    )


# ═══════════════════════════════════════════════════════════════════
# Append
# ═══════════════════════════════════════════════════════════════════


class TestAppend:
    """LedgerService.append validation and side effects."""

    def test_earn_entry_defaults(self, account, frozen_clock):
        """earned_date and created_at come from the clock."""
        entry = LedgerService.append(account, 500, EntryKind.EARN, source="promo")

        assert entry.earned_date == frozen_clock.instant
        assert entry.created_at == frozen_clock.instant
        assert entry.is_expired is False
        assert entry.is_credit

    def test_zero_amount_rejected(self, account):
        """Zero amounts are rejected before any write."""
        with pytest.raises(SettlemanError, match="INVALID_AMOUNT"):
            LedgerService.append(account, 0, EntryKind.EARN)
        assert LedgerEntry.objects.count() == 0

    def test_negative_earn_rejected(self, account):
        """Earn entries must be positive."""
        with pytest.raises(SettlemanError, match="INVALID_AMOUNT"):
            LedgerService.append(account, -10, EntryKind.EARN)

    def test_use_without_original_rejected(self, account):
        """Negative entries must point at the credit they consume."""
        with pytest.raises(SettlemanError, match="INVALID_AMOUNT"):
            LedgerService.append(account, -10, EntryKind.USE)

    def test_positive_use_rejected(self, account, grant):
        """Use entries cannot be positive."""
        credit = grant(account, 100)
        with pytest.raises(SettlemanError, match="INVALID_AMOUNT"):
            LedgerService.append(account, 10, EntryKind.USE, original_entry=credit)

    def test_unknown_kind_rejected(self, account):
        with pytest.raises(SettlemanError, match="INVALID_AMOUNT"):
            LedgerService.append(account, 10, "bogus")

    def test_append_refreshes_snapshot(self, account, grant):
        """The snapshot is rebuilt after every append."""
        grant(account, 300)

        snapshot = BalanceSnapshot.objects.get(account_ref=account)
        assert snapshot.total_balance == 300
        assert snapshot.earned == 300
        assert snapshot.transaction_count == 1

    def test_credit_earned_signal(self, account, grant):
        """credit_earned fires for credit entries."""
        received = []

        def handler(sender, entry, **kwargs):
            received.append(entry)

        credit_earned.connect(handler)
        try:
            entry = grant(account, 100)
        finally:
            credit_earned.disconnect(handler)

        assert received == [entry]


# ═══════════════════════════════════════════════════════════════════
# Immutability
# ═══════════════════════════════════════════════════════════════════


class TestImmutability:
    """Entries are never mutated after insert."""

    def test_save_existing_entry_raises(self, account, grant):
        """Calling save() on a stored entry is refused."""
        entry = grant(account, 100)
        entry.amount = 1_000

        with pytest.raises(SettlemanError, match="LEDGER_IMMUTABLE"):
            entry.save()

        assert LedgerEntry.objects.get(pk=entry.pk).amount == 100

    def test_mark_expired_only_once(self, account, grant):
        """mark_expired reports whether it flipped the flag."""
        entry = grant(account, 100)

        assert LedgerService.mark_expired(entry.pk) is True
        assert LedgerService.mark_expired(entry.pk) is False
        assert LedgerEntry.objects.get(pk=entry.pk).is_expired is True


# ═══════════════════════════════════════════════════════════════════
# Grant / queries
# ═══════════════════════════════════════════════════════════════════


class TestGrant:
    """Manual credit grants."""

    def test_grant_with_expiry_days(self, account, grant, frozen_clock):
        """expiry_days is relative to the clock."""
        entry = grant(account, 100, expiry_days=30)

        assert entry.expiry_date == frozen_clock.instant + timedelta(days=30)

    def test_grant_rejects_non_positive(self, account):
        with pytest.raises(SettlemanError, match="INVALID_AMOUNT"):
            LedgerService.grant(account, 0)

    def test_history_newest_first(self, account, grant):
        first = grant(account, 100)
        second = grant(account, 200)

        assert LedgerService.history(account) == [second, first]
        assert LedgerService.history(account, limit=1) == [second]

    def test_get_entry_not_found(self, db):
        with pytest.raises(RecordNotFound):
            LedgerService.get_entry(uuid.uuid4())

    def test_get_entry_malformed_id(self, db):
        with pytest.raises(RecordNotFound):
            LedgerService.get_entry("not-a-uuid")


# ═══════════════════════════════════════════════════════════════════
# Balance
# ═══════════════════════════════════════════════════════════════════


class TestBalance:
    """Balance equals the sum of counted entries, through every kind of write."""

    def test_unknown_account_balance_is_zero(self, db):
        """Reading an account with no entries returns 0."""
        assert SettlementService.balance_of("NOBODY") == 0

    def test_sum_invariant_through_lifecycle(self, account, grant, frozen_clock):
        """Grant, redeem, expire and sweep all keep balance == ledger sum."""
        grant(account, 100, expiry_days=10)
        grant(account, 100)
        RedemptionService.redeem(account, 50)

        now = frozen_clock.instant
        assert SettlementService.balance_of(account) == 150
        assert ledger_sum(account, now) == 150
        assert BalanceService.available_total(account) == 150

        # Past the first entry's expiry, before any sweep
        now = frozen_clock.advance(days=11)
        assert SettlementService.balance_of(account) == 100
        assert ledger_sum(account, now) == 100
        assert BalanceService.available_total(account) == 100

        ExpiryService.sweep()
        assert SettlementService.balance_of(account) == 100
        assert ledger_sum(account, now) == 100

    def test_used_and_expired_subtotals(self, account, grant, frozen_clock):
        grant(account, 100, expiry_days=1)
        grant(account, 100)
        RedemptionService.redeem(account, 30)
        frozen_clock.advance(days=2)
        ExpiryService.sweep()

        stats = SettlementService.stats(account)
        assert stats.earned == 200
        assert stats.used == 30
        assert stats.expired == 70
        assert stats.balance == 100
        assert stats.transaction_count == 4

    def test_expiring_horizons(self, account, grant):
        """Credit expiring within 7 and 30 days is reported separately."""
        grant(account, 100, expiry_days=5)
        grant(account, 200, expiry_days=20)
        grant(account, 400)

        snapshot = BalanceService.recompute_balance(account)
        assert snapshot.expiring_in_7_days == 100
        assert snapshot.expiring_in_30_days == 300

    def test_stale_snapshot_recomputed_on_read(self, account, grant, frozen_clock):
        """A snapshot older than BALANCE_CACHE_TTL is rebuilt on read."""
        grant(account, 100)
        BalanceSnapshot.objects.filter(account_ref=account).update(total_balance=999)

        # Fresh: served as cached
        assert SettlementService.balance_of(account) == 999

        frozen_clock.advance(hours=2)
        assert SettlementService.balance_of(account) == 100

    def test_expiry_inside_ttl_invalidates_snapshot(self, account, grant, frozen_clock):
        """Credit expiring between two reads within the TTL is not counted."""
        expires_at = frozen_clock.instant + timedelta(minutes=20)
        grant(account, 100, expiry_date=expires_at)
        grant(account, 50)

        assert SettlementService.balance_of(account) == 150
        snapshot = BalanceSnapshot.objects.get(account_ref=account)
        assert snapshot.next_expiry_at == expires_at

        now = frozen_clock.advance(minutes=30)
        assert SettlementService.balance_of(account) == 50
        assert ledger_sum(account, now) == 50
        assert BalanceSnapshot.objects.get(account_ref=account).next_expiry_at is None

    def test_snapshot_is_disposable(self, account, grant):
        """Deleting snapshots loses nothing."""
        grant(account, 250)
        BalanceSnapshot.objects.all().delete()

        assert SettlementService.balance_of(account) == 250
