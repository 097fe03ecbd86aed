"""Settleman protocols."""

from settleman.protocols.catalog import (
    CatalogLookup,
    LineItemDefinition,
)
from settleman.protocols.clock import Clock
from settleman.protocols.directory import (
    AccountDirectory,
    AccountInfo,
)

__all__ = [
    # Catalog
    "CatalogLookup",
    "LineItemDefinition",
    # Clock
    "Clock",
    # Accounts
    "AccountDirectory",
    "AccountInfo",
]
