"""Surplus-to-credit conversion.

Payment surplus becomes an earn entry. Each full BONUS_UNIT of surplus
adds BONUS_PER_UNIT of promotional credit as a separate earn entry, so
base and bonus credit stay distinguishable and can expire independently.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from settleman.conf import get_clock, settleman_settings
from settleman.models import EntryKind, LedgerEntry, Order
from settleman.services.ledger import LedgerService

logger = logging.getLogger(__name__)

SURPLUS_SOURCE = "order surplus"
BONUS_SOURCE = "bonus"


@dataclass(frozen=True)
class SurplusCredit:
    base: LedgerEntry | None
    bonus: LedgerEntry | None = None

    @property
    def entries(self) -> list[LedgerEntry]:
        return [e for e in (self.base, self.bonus) if e is not None]

    @property
    def total(self) -> int:
        return sum(e.amount for e in self.entries)


def bonus_for(surplus_amount: int) -> int:
    """Bonus credit for a surplus: floor(surplus / unit) * per_unit."""
    unit = settleman_settings.BONUS_UNIT
    if surplus_amount <= 0 or unit <= 0:
        return 0
    return (surplus_amount // unit) * settleman_settings.BONUS_PER_UNIT


def _default_expiry(days: int | None, now: datetime) -> datetime | None:
    return now + timedelta(days=days) if days is not None else None


def convert_surplus(
    account_ref: str,
    surplus_amount: int,
    related_order: Order | None = None,
    expiry_date: datetime | None = None,
    bonus_expiry_date: datetime | None = None,
    bonus_enabled: bool | None = None,
) -> SurplusCredit:
    """
    Write the surplus (and tiered bonus) as earn entries.

    Args:
        account_ref: Account reference
        surplus_amount: Tendered amount above the order total
        related_order: Order that produced the surplus
        expiry_date: Expiry of the base entry (SURPLUS_CREDIT_EXPIRY_DAYS if None)
        bonus_expiry_date: Expiry of the bonus entry (BONUS_CREDIT_EXPIRY_DAYS if None)
        bonus_enabled: Override BONUS_ENABLED for this call

    Returns:
        SurplusCredit (base is None when surplus_amount <= 0)
    """
    if surplus_amount <= 0:
        return SurplusCredit(base=None)

    now = get_clock().now()
    if expiry_date is None:
        expiry_date = _default_expiry(settleman_settings.SURPLUS_CREDIT_EXPIRY_DAYS, now)

    base = LedgerService.append(
        account_ref,
        surplus_amount,
        EntryKind.EARN,
        earned_date=now,
        expiry_date=expiry_date,
        related_order=related_order,
        source=SURPLUS_SOURCE,
        description=f"Surplus of {surplus_amount}",
    )

    if bonus_enabled is None:
        bonus_enabled = settleman_settings.BONUS_ENABLED
    bonus_amount = bonus_for(surplus_amount) if bonus_enabled else 0
    if bonus_amount <= 0:
        return SurplusCredit(base=base)

    if bonus_expiry_date is None:
        bonus_expiry_date = _default_expiry(settleman_settings.BONUS_CREDIT_EXPIRY_DAYS, now)

    bonus = LedgerService.append(
        account_ref,
        bonus_amount,
        EntryKind.EARN,
        earned_date=now,
        expiry_date=bonus_expiry_date,
        related_order=related_order,
        source=BONUS_SOURCE,
        description=f"Bonus {settleman_settings.BONUS_PER_UNIT} per {settleman_settings.BONUS_UNIT} surplus",
    )
    logger.info("Surplus bonus: %s +%s on surplus %s", account_ref, bonus_amount, surplus_amount)
    return SurplusCredit(base=base, bonus=bonus)
