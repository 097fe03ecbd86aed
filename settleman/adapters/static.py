"""Settings-backed collaborator adapters."""

from settleman.conf import settleman_settings
from settleman.protocols.catalog import LineItemDefinition
from settleman.protocols.directory import AccountInfo


class StaticCatalog:
    """
    CatalogLookup backed by SETTLEMAN["CATALOG"].

    Configuration in settings.py:
        SETTLEMAN = {
            "CATALOG": {
                "pt_10": {"price": 600000, "billing_model": "session_count", "session_count": 10},
                "gym_90": {"price": 400000, "billing_model": "date_range", "duration_days": 90},
            },
        }
    """

    def get_line_item_definition(self, ref_id: str) -> LineItemDefinition | None:
        data = settleman_settings.CATALOG.get(ref_id)
        if data is None:
            return None
        return LineItemDefinition(
            ref_id=ref_id,
            price=data.get("price", 0),
            billing_model=data.get("billing_model", "date_range"),
            session_count=data.get("session_count"),
            duration_days=data.get("duration_days"),
        )


class StaticAccountDirectory:
    """AccountDirectory backed by SETTLEMAN["ACCOUNTS"] ({ref: {"name": ...}})."""

    def get_account(self, account_ref: str) -> AccountInfo | None:
        data = settleman_settings.ACCOUNTS.get(account_ref)
        if data is None:
            return None
        return AccountInfo(
            ref=account_ref,
            name=data.get("name", ""),
            default_tender_preferences=list(data.get("default_tender_preferences", [])),
        )
