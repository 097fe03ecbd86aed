"""
Django Settleman - Settlement & Credit Ledger.

Usage:
    from settleman import SettlementService, LineItem, Tenders

    result = SettlementService.purchase(
        "M-001",
        [LineItem(ref_id="pt_10", price=600_000)],
        Tenders(cash=1_000_000),
    )
    SettlementService.balance_of("M-001")
    SettlementService.redeem("M-001", 150_000)
"""


def __getattr__(name):
    if name == "SettlementService":
        from settleman.service import SettlementService

        return SettlementService
    if name == "LineItem":
        from settleman.services.allocation import LineItem

        return LineItem
    if name == "Tenders":
        from settleman.services.allocation import Tenders

        return Tenders
    if name == "SettlemanError":
        from settleman.exceptions import SettlemanError

        return SettlemanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["SettlementService", "LineItem", "Tenders", "SettlemanError"]
__version__ = "0.1.0"
