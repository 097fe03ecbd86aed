"""Clock protocol."""

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """
    Source of the current time.

    Injected so ledger dates, expiry checks and hold durations can be
    pinned in tests and replays.

    Configuration in settings.py:
        SETTLEMAN = {
            "CLOCK_BACKEND": "settleman.adapters.clock.SystemClock",
        }
    """

    def now(self) -> datetime:
        """Return the current aware datetime."""
        ...
