"""Tests for the credit expiry sweep and the expire command."""

from io import StringIO

import pytest
from django.core.management import call_command

from settleman.models import EntryKind, LedgerEntry
from settleman.services.expiry import ExpiryService
from settleman.services.ledger import LedgerService
from settleman.services.redemption import RedemptionService
from settleman.service import SettlementService
from settleman.signals import credit_expired


pytestmark = pytest.mark.django_db


class TestSweep:
    """ExpiryService.sweep()."""

    def test_expires_remaining_amount(self, account, grant, frozen_clock):
        """Only the unconsumed part of a credit entry expires."""
        credit = grant(account, 100, expiry_days=10)
        RedemptionService.redeem(account, 30)
        frozen_clock.advance(days=11)

        result = ExpiryService.sweep()

        assert result.entries_written == 1
        assert result.entries_marked == 1
        assert result.accounts == [account]

        expire = LedgerEntry.objects.get(kind=EntryKind.EXPIRE)
        assert expire.amount == -70
        assert expire.original_entry_id == credit.pk
        assert expire.expiry_date == credit.expiry_date
        assert LedgerEntry.objects.get(pk=credit.pk).is_expired is True
        assert SettlementService.balance_of(account) == 0

    def test_idempotent(self, account, grant, frozen_clock):
        """A second run writes and marks nothing."""
        grant(account, 100, expiry_days=1)
        frozen_clock.advance(days=2)

        ExpiryService.sweep()
        count_after_first = LedgerEntry.objects.count()
        second = ExpiryService.sweep()

        assert second.entries_written == 0
        assert second.entries_marked == 0
        assert LedgerEntry.objects.count() == count_after_first

    def test_fully_consumed_entry_only_marked(self, account, grant, frozen_clock):
        grant(account, 100, expiry_days=1)
        RedemptionService.redeem(account, 100)
        frozen_clock.advance(days=2)

        result = ExpiryService.sweep()

        assert result.entries_written == 0
        assert result.entries_marked == 1
        assert not LedgerEntry.objects.filter(kind=EntryKind.EXPIRE).exists()

    def test_interrupted_run_recovers(self, account, grant, frozen_clock):
        """An expire entry written without the mark is not written twice."""
        credit = grant(account, 100, expiry_days=1)
        frozen_clock.advance(days=2)
        LedgerService.append(
            account,
            -100,
            EntryKind.EXPIRE,
            earned_date=credit.earned_date,
            expiry_date=credit.expiry_date,
            original_entry=credit,
        )

        result = ExpiryService.sweep()

        assert result.entries_written == 0
        assert result.entries_marked == 1
        assert LedgerEntry.objects.filter(kind=EntryKind.EXPIRE).count() == 1

    def test_not_yet_due_untouched(self, account, grant):
        grant(account, 100, expiry_days=10)
        grant(account, 100)

        result = ExpiryService.sweep()

        assert result.entries_marked == 0
        assert SettlementService.balance_of(account) == 200

    def test_single_account(self, grant, frozen_clock):
        grant("M-001", 100, expiry_days=1)
        grant("M-002", 100, expiry_days=1)
        frozen_clock.advance(days=2)

        result = ExpiryService.sweep("M-001")

        assert result.accounts == ["M-001"]
        assert ExpiryService.due_entries("M-002").count() == 1

    def test_expired_signal(self, account, grant, frozen_clock):
        credit = grant(account, 100, expiry_days=1)
        frozen_clock.advance(days=2)
        received = []

        def handler(sender, entry, original, **kwargs):
            received.append((entry.amount, original.pk))

        credit_expired.connect(handler)
        try:
            ExpiryService.sweep()
        finally:
            credit_expired.disconnect(handler)

        assert received == [(-100, credit.pk)]


class TestExpireCommand:
    """settleman_expire_credit management command."""

    def test_command_sweeps(self, account, grant, frozen_clock):
        grant(account, 100, expiry_days=1)
        frozen_clock.advance(days=2)
        out = StringIO()

        call_command("settleman_expire_credit", stdout=out)

        assert "Expired 1 entries" in out.getvalue()
        assert SettlementService.balance_of(account) == 0

    def test_command_account_option(self, grant, frozen_clock):
        grant("M-001", 100, expiry_days=1)
        grant("M-002", 100, expiry_days=1)
        frozen_clock.advance(days=2)

        call_command("settleman_expire_credit", "--account", "M-002", stdout=StringIO())

        assert ExpiryService.due_entries("M-001").count() == 1
        assert ExpiryService.due_entries("M-002").count() == 0

    def test_command_fulfillments_option(self, db, frozen_clock):
        out = StringIO()

        call_command("settleman_expire_credit", "--fulfillments", stdout=out)

        assert "Completed 0 expired fulfillments" in out.getvalue()
