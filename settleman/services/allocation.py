"""Settlement allocation - totals, shortfall, surplus and per-item split.

Pure functions, no database access.

The per-item split is greedy in caller order: earlier items are paid in
full before later items receive anything.
"""

from dataclasses import dataclass, field
from datetime import datetime

from settleman.conf import settleman_settings
from settleman.exceptions import SettlemanError


@dataclass(frozen=True)
class Tenders:
    """Amounts offered per payment method, plus credit to redeem."""

    cash: int = 0
    card: int = 0
    transfer: int = 0
    credit: int = 0

    @property
    def money(self) -> int:
        return self.cash + self.card + self.transfer

    @property
    def total(self) -> int:
        return self.money + self.credit

    def nonzero_money(self) -> list[tuple[str, int]]:
        """(tender_type, amount) for each nonzero cash/card/transfer tender."""
        pairs = [("cash", self.cash), ("card", self.card), ("transfer", self.transfer)]
        return [(tender, amount) for tender, amount in pairs if amount > 0]


@dataclass(frozen=True)
class LineItem:
    """A line item as purchased, with its applied (possibly discounted) price."""

    ref_id: str
    price: int
    name: str = ""
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass(frozen=True)
class ItemSplit:
    item: LineItem
    paid_amount: int
    unpaid_amount: int

    @property
    def is_unpaid(self) -> bool:
        return self.unpaid_amount > 0


@dataclass(frozen=True)
class Allocation:
    total_amount: int
    total_tendered: int
    paid_amount: int
    unpaid_amount: int
    surplus_amount: int
    splits: list[ItemSplit] = field(default_factory=list)


def split_greedy(items: list[LineItem], amount: int) -> list[ItemSplit]:
    """Spread ``amount`` over items in order, paying each in full before the next."""
    remaining = amount
    splits = []
    for item in items:
        paid = min(remaining, item.price)
        splits.append(ItemSplit(item=item, paid_amount=paid, unpaid_amount=item.price - paid))
        remaining -= paid
    return splits


def validate_tenders(tenders: Tenders) -> None:
    if min(tenders.cash, tenders.card, tenders.transfer, tenders.credit) < 0:
        raise SettlemanError("INVALID_AMOUNT", message="Tender amounts cannot be negative")


def allocate(items: list[LineItem], tenders: Tenders) -> Allocation:
    """
    Compute the settlement of ``tenders`` against ``items``.

    Raises:
        SettlemanError: INVALID_AMOUNT on a negative price or tender
    """
    if any(item.price < 0 for item in items):
        raise SettlemanError("INVALID_AMOUNT", message="Line item price cannot be negative")
    validate_tenders(tenders)

    total_amount = sum(item.price for item in items)
    total_tendered = tenders.total
    unpaid_amount = max(0, total_amount - total_tendered)
    surplus_amount = max(0, total_tendered - total_amount)

    return Allocation(
        total_amount=total_amount,
        total_tendered=total_tendered,
        paid_amount=total_amount - unpaid_amount,
        unpaid_amount=unpaid_amount,
        surplus_amount=surplus_amount,
        splits=split_greedy(items, total_tendered),
    )


def is_eligible(ref_id: str) -> bool:
    """Whether a line item gets a fulfillment record (physical goods do not)."""
    prefixes = tuple(settleman_settings.EXCLUDED_REF_PREFIXES)
    return not ref_id.startswith(prefixes)
