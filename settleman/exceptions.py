"""Settleman exceptions."""


class BaseError(Exception):
    """
    Structured exception with a machine-readable code.

    Subclasses declare ``_default_messages`` mapping codes to
    human-readable messages. Extra keyword arguments are kept in ``data``.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class SettlemanError(BaseError):
    """
    Structured exception for settlement and ledger operations.

    Usage:
        try:
            SettlementService.redeem("ACC-001", 5000)
        except SettlemanError as e:
            if e.code == "INSUFFICIENT_CREDIT":
                show_balance(e.data["available"])
    """

    _default_messages = {
        "INSUFFICIENT_CREDIT": "Insufficient credit for redemption",
        "RECORD_NOT_FOUND": "Record not found",
        "INVALID_STATE_TRANSITION": "Invalid state transition",
        "DEPENDENCY_UNAVAILABLE": "Collaborator lookup failed",
        "INVALID_AMOUNT": "Amount is invalid",
        "LEDGER_IMMUTABLE": "Ledger entries cannot be modified",
        "SETTLEMENT_INCOMPLETE": "Order recorded, settlement incomplete",
    }


class InsufficientCredit(SettlemanError):
    """Redemption exceeds the account's available credit."""

    def __init__(self, message: str | None = None, **data):
        super().__init__("INSUFFICIENT_CREDIT", message, **data)


class RecordNotFound(SettlemanError):
    """An order, fulfillment or ledger entry id does not exist."""

    def __init__(self, message: str | None = None, **data):
        super().__init__("RECORD_NOT_FOUND", message, **data)


class InvalidStateTransition(SettlemanError):
    def __init__(self, message: str | None = None, **data):
        super().__init__("INVALID_STATE_TRANSITION", message, **data)


class DependencyUnavailable(SettlemanError):
    """A collaborator (catalog, account directory) lookup failed."""

    def __init__(self, message: str | None = None, **data):
        super().__init__("DEPENDENCY_UNAVAILABLE", message, **data)
