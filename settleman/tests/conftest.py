"""Pytest fixtures for Settleman tests."""

from datetime import datetime, timezone as dt_timezone

import pytest

from settleman.adapters.clock import FrozenClock

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def frozen_clock():
    """Pin the clock to T0; tests move it with FrozenClock.advance()."""
    FrozenClock.freeze(T0)
    yield FrozenClock
    FrozenClock.reset()


@pytest.fixture
def settleman_config(settings):
    """
    Mutable SETTLEMAN dict; restored by pytest-django after the test.

    Usage:
        def test_x(settleman_config):
            settleman_config["BONUS_ENABLED"] = False
    """
    settings.SETTLEMAN = dict(settings.SETTLEMAN)
    return settings.SETTLEMAN


@pytest.fixture
def account():
    return "M-001"


@pytest.fixture
def grant(db, frozen_clock):
    """Grant credit to an account, one clock minute after the previous grant."""
    from settleman.services.ledger import LedgerService

    def _grant(account_ref, amount, **kwargs):
        frozen_clock.advance(minutes=1)
        return LedgerService.grant(account_ref, amount, **kwargs)

    return _grant
