"""
Settleman configuration.

Usage in settings.py:
    SETTLEMAN = {
        "BONUS_UNIT": 1_000_000,
        "BONUS_PER_UNIT": 100_000,
        "SURPLUS_CREDIT_EXPIRY_DAYS": 365,
        "CATALOG_BACKEND": "myproject.adapters.ProductCatalog",
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings
from django.utils.module_loading import import_string


@dataclass
class SettlemanSettings:
    """Settleman configuration settings."""

    # Balance snapshot freshness window (seconds)
    BALANCE_CACHE_TTL: int = 3600

    # Surplus bonus tiering: BONUS_PER_UNIT credit per full BONUS_UNIT of surplus
    BONUS_ENABLED: bool = True
    BONUS_UNIT: int = 1_000_000
    BONUS_PER_UNIT: int = 100_000

    # Default expiry policy for converted credit (None = never expires)
    SURPLUS_CREDIT_EXPIRY_DAYS: int | None = None
    BONUS_CREDIT_EXPIRY_DAYS: int | None = None

    # "Expiring soon" horizons reported on the balance snapshot (days)
    EXPIRY_HORIZONS: tuple[int, int] = (7, 30)

    # Line items whose ref starts with one of these get no fulfillment record
    EXCLUDED_REF_PREFIXES: tuple[str, ...] = ("locker_",)

    # Collaborator backends (dotted paths)
    CLOCK_BACKEND: str = "settleman.adapters.clock.SystemClock"
    CATALOG_BACKEND: str = "settleman.adapters.static.StaticCatalog"
    ACCOUNT_DIRECTORY_BACKEND: str = "settleman.adapters.static.StaticAccountDirectory"

    # Data for the static adapters
    CATALOG: dict = field(default_factory=dict)
    ACCOUNTS: dict = field(default_factory=dict)


def get_settleman_settings() -> SettlemanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "SETTLEMAN", {})
    return SettlemanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_settleman_settings(), name)


settleman_settings = _LazySettings()


def load_backend(setting_name: str):
    """Instantiate the backend configured under ``setting_name``."""
    backend_path = getattr(settleman_settings, setting_name)
    backend_class = import_string(backend_path)
    return backend_class()


def get_clock():
    """Configured Clock backend."""
    return load_backend("CLOCK_BACKEND")
