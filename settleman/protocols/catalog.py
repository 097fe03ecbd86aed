"""Catalog lookup protocol."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class LineItemDefinition:
    """Catalog definition of a purchasable line item."""

    ref_id: str
    price: int
    billing_model: str  # "session_count" | "date_range"
    session_count: int | None = None
    duration_days: int | None = None


@runtime_checkable
class CatalogLookup(Protocol):
    """
    Protocol for product catalog integration.

    Used by the checkout to decide fulfillment start/end policy.

    Configuration in settings.py:
        SETTLEMAN = {
            "CATALOG_BACKEND": "myproject.adapters.ProductCatalog",
        }
    """

    def get_line_item_definition(self, ref_id: str) -> LineItemDefinition | None:
        """
        Return the definition for a line item ref.

        Returns None when the ref is unknown. Backends raise on
        infrastructure failures.
        """
        ...
