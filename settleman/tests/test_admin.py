"""Tests for admin editability."""

import pytest
from django.contrib import admin

from settleman.models import BalanceSnapshot, FulfillmentRecord, LedgerEntry
from settleman.services.allocation import LineItem, Tenders
from settleman.services.checkout import CheckoutService


pytestmark = pytest.mark.django_db


@pytest.fixture
def admin_request(rf, admin_user):
    request = rf.get("/admin/")
    request.user = admin_user
    return request


class TestFulfillmentAdmin:
    """Schedule fields only change through the fulfillment service."""

    def test_schedule_fields_read_only(self, admin_request, account, frozen_clock):
        result = CheckoutService.purchase(
            account, [LineItem("pt_10", 600_000)], Tenders(cash=600_000)
        )
        record = result.fulfillments[0]
        model_admin = admin.site._registry[FulfillmentRecord]

        readonly = model_admin.get_readonly_fields(admin_request, record)
        for name in ("start_date", "end_date", "session_count", "completed_sessions"):
            assert name in readonly

        form_fields = model_admin.get_form(admin_request, record).base_fields
        assert set(form_fields) == {"name", "hold_reason", "notes"}


class TestLedgerAdmin:
    @pytest.mark.parametrize("model", [LedgerEntry, BalanceSnapshot])
    def test_no_change_permission(self, admin_request, model):
        model_admin = admin.site._registry[model]

        assert model_admin.has_add_permission(admin_request) is False
        assert model_admin.has_change_permission(admin_request) is False
        assert model_admin.has_delete_permission(admin_request) is False
