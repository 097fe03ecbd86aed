"""Account directory protocol."""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class AccountInfo:
    """Display fields for a member account."""

    ref: str
    name: str
    default_tender_preferences: list[str] = field(default_factory=list)


@runtime_checkable
class AccountDirectory(Protocol):
    """
    Read-only protocol for member lookups.

    Only display fields are copied into orders; balances never live here.
    """

    def get_account(self, account_ref: str) -> AccountInfo | None:
        """Get account display information by ref."""
        ...
