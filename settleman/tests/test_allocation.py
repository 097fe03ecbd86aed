"""Tests for settlement allocation (no database)."""

import pytest

from settleman.exceptions import SettlemanError
from settleman.services.allocation import (
    LineItem,
    Tenders,
    allocate,
    is_eligible,
    split_greedy,
)


class TestTenders:
    def test_totals(self):
        tenders = Tenders(cash=100, card=200, transfer=300, credit=50)

        assert tenders.money == 600
        assert tenders.total == 650

    def test_nonzero_money(self):
        """Credit is not a payment record; zero tenders are skipped."""
        tenders = Tenders(cash=0, card=200, transfer=0, credit=50)
        assert tenders.nonzero_money() == [("card", 200)]


class TestAllocate:
    """Totals, shortfall, surplus and per-item split."""

    def test_partial_payment_split(self):
        """600,000 + 400,000 paid with 700,000 -> first item in full, second partly."""
        items = [LineItem("pt_10", 600_000), LineItem("gym_90", 400_000)]

        allocation = allocate(items, Tenders(cash=700_000))

        assert allocation.total_amount == 1_000_000
        assert allocation.paid_amount == 700_000
        assert allocation.unpaid_amount == 300_000
        assert allocation.surplus_amount == 0
        assert [(s.paid_amount, s.unpaid_amount) for s in allocation.splits] == [
            (600_000, 0),
            (100_000, 300_000),
        ]

    def test_surplus(self):
        """Overpayment is surplus; every item is paid in full."""
        items = [LineItem("gym_90", 900_000)]

        allocation = allocate(items, Tenders(cash=2_000_000))

        assert allocation.paid_amount == 900_000
        assert allocation.unpaid_amount == 0
        assert allocation.surplus_amount == 1_100_000
        assert allocation.splits[0].unpaid_amount == 0

    def test_credit_counts_as_tendered(self):
        allocation = allocate([LineItem("gym_30", 300_000)], Tenders(card=200_000, credit=100_000))

        assert allocation.total_tendered == 300_000
        assert allocation.unpaid_amount == 0
        assert allocation.surplus_amount == 0

    def test_nothing_tendered(self):
        allocation = allocate([LineItem("gym_30", 300_000)], Tenders())

        assert allocation.paid_amount == 0
        assert allocation.splits[0].is_unpaid

    def test_paid_sum_matches_items(self):
        """Σ item paid == min(total, tendered); Σ item unpaid == shortfall."""
        items = [LineItem("a", 250), LineItem("b", 125), LineItem("c", 625)]
        for tendered in (0, 100, 375, 999, 1_000, 5_000):
            allocation = allocate(items, Tenders(cash=tendered))
            assert sum(s.paid_amount for s in allocation.splits) == min(1_000, tendered)
            assert sum(s.unpaid_amount for s in allocation.splits) == allocation.unpaid_amount

    def test_negative_price_rejected(self):
        with pytest.raises(SettlemanError, match="INVALID_AMOUNT"):
            allocate([LineItem("x", -1)], Tenders(cash=10))

    def test_negative_tender_rejected(self):
        with pytest.raises(SettlemanError, match="INVALID_AMOUNT"):
            allocate([LineItem("x", 10)], Tenders(cash=-10))

    def test_greedy_keeps_caller_order(self):
        """The same items reversed split differently."""
        a, b = LineItem("a", 600), LineItem("b", 400)

        assert [s.paid_amount for s in split_greedy([a, b], 500)] == [500, 0]
        assert [s.paid_amount for s in split_greedy([b, a], 500)] == [400, 100]


class TestEligibility:
    def test_locker_excluded(self):
        assert is_eligible("gym_90")
        assert not is_eligible("locker_12")

    def test_prefixes_configurable(self, settleman_config):
        settleman_config["EXCLUDED_REF_PREFIXES"] = ("towel_", "locker_")

        assert not is_eligible("towel_1")
        assert not is_eligible("locker_2")
