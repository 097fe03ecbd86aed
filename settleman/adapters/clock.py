"""Clock adapters."""

from datetime import datetime, timedelta

from django.utils import timezone


class SystemClock:
    """Wall clock backed by django.utils.timezone."""

    def now(self) -> datetime:
        return timezone.now()


class FrozenClock:
    """
    Clock pinned to a settable instant.

    The instant is class-level so every instance loaded through
    CLOCK_BACKEND sees the same time.

    Configuration in settings.py:
        SETTLEMAN = {
            "CLOCK_BACKEND": "settleman.adapters.clock.FrozenClock",
        }
    """

    instant: datetime | None = None

    @classmethod
    def freeze(cls, instant: datetime) -> None:
        cls.instant = instant

    @classmethod
    def advance(cls, **delta) -> datetime:
        """Move the pinned instant forward by timedelta(**delta)."""
        cls.instant = cls.instant + timedelta(**delta)
        return cls.instant

    @classmethod
    def reset(cls) -> None:
        cls.instant = None

    def now(self) -> datetime:
        # Unfrozen behaves like the system clock
        return self.instant or timezone.now()
