"""Settleman admin.

Ledger entries and balance snapshots are read-only here: credit is granted,
adjusted and redeemed through the services, never edited in place. A
fulfillment's schedule and settlement fields likewise only move through
FulfillmentService; the admin edits its name, hold reason and notes.
"""

from django.contrib import admin
from django.utils.html import format_html

from settleman.models import (
    BalanceSnapshot,
    FulfillmentRecord,
    LedgerEntry,
    Order,
    PaymentRecord,
)


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# LedgerEntry Admin
# ===========================================


@admin.register(LedgerEntry)
class LedgerEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "short_id",
        "account_ref",
        "kind",
        "signed_amount",
        "earned_date",
        "expiry_date",
        "is_expired",
        "source",
        "created_at",
    ]
    list_filter = ["kind", "is_expired", "source"]
    search_fields = ["account_ref", "description", "source"]
    date_hierarchy = "created_at"
    raw_id_fields = ["original_entry", "related_order"]

    fieldsets = [
        (None, {"fields": ["id", "account_ref", "kind", "amount"]}),
        ("Dates", {"fields": ["earned_date", "expiry_date", "is_expired"]}),
        ("Links", {"fields": ["original_entry", "related_order", "fulfillment_refs"]}),
        ("Audit", {"fields": ["source", "description", "created_at"]}),
    ]

    def short_id(self, obj):
        return str(obj.pk)[-8:]

    short_id.short_description = "Entry"

    def signed_amount(self, obj):
        color = "green" if obj.amount > 0 else "firebrick"
        return format_html('<span style="color: {};">{}</span>', color, f"{obj.amount:+,}")

    signed_amount.short_description = "Amount"


# ===========================================
# BalanceSnapshot Admin
# ===========================================


@admin.register(BalanceSnapshot)
class BalanceSnapshotAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "account_ref",
        "total_balance",
        "earned",
        "used",
        "expired",
        "expiring_in_7_days",
        "expiring_in_30_days",
        "transaction_count",
        "next_expiry_at",
        "last_updated",
    ]
    search_fields = ["account_ref"]
    ordering = ["account_ref"]


# ===========================================
# Inline Classes (must be defined before OrderAdmin)
# ===========================================


class PaymentRecordInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = PaymentRecord
    extra = 0
    fields = ["tender_type", "amount", "status", "created_at"]
    readonly_fields = fields


class FulfillmentRecordInline(admin.TabularInline):
    model = FulfillmentRecord
    extra = 0
    fields = ["ref_id", "name", "status", "paid_amount", "unpaid_amount", "start_date", "end_date"]
    readonly_fields = fields
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# Order Admin
# ===========================================


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        "short_id",
        "account_ref",
        "account_name",
        "total_amount",
        "paid_amount",
        "unpaid_amount",
        "credit_used",
        "credit_earned",
        "status",
        "created_at",
    ]
    list_filter = ["status"]
    search_fields = ["account_ref", "account_name"]
    date_hierarchy = "created_at"
    readonly_fields = [
        "id",
        "account_ref",
        "account_name",
        "line_items",
        "total_amount",
        "paid_amount",
        "unpaid_amount",
        "credit_used",
        "credit_earned",
        "status",
        "created_at",
        "updated_at",
    ]
    inlines = [PaymentRecordInline, FulfillmentRecordInline]

    def has_add_permission(self, request, obj=None):
        return False

    def short_id(self, obj):
        return str(obj.pk)[:8]

    short_id.short_description = "Order"


# ===========================================
# FulfillmentRecord Admin
# ===========================================


@admin.register(FulfillmentRecord)
class FulfillmentRecordAdmin(admin.ModelAdmin):
    list_display = [
        "ref_id",
        "name",
        "account_ref",
        "billing_model",
        "status",
        "sessions",
        "start_date",
        "end_date",
        "order_link",
    ]
    list_filter = ["billing_model", "status"]
    search_fields = ["account_ref", "ref_id", "name"]
    raw_id_fields = ["order"]
    readonly_fields = [
        "id",
        "order",
        "account_ref",
        "ref_id",
        "billing_model",
        "paid_amount",
        "unpaid_amount",
        "status",
        "start_date",
        "end_date",
        "session_count",
        "completed_sessions",
        "hold_started_at",
        "total_hold_days",
        "created_at",
        "updated_at",
    ]

    fieldsets = [
        (None, {"fields": ["id", "order", "account_ref", "ref_id", "name", "billing_model"]}),
        ("Settlement", {"fields": ["paid_amount", "unpaid_amount", "status"]}),
        ("Schedule", {"fields": ["start_date", "end_date", "session_count", "completed_sessions"]}),
        (
            "Hold",
            {"fields": ["hold_started_at", "hold_reason", "total_hold_days"], "classes": ["collapse"]},
        ),
        ("Notes", {"fields": ["notes"]}),
        ("Timestamps", {"fields": ["created_at", "updated_at"], "classes": ["collapse"]}),
    ]

    def has_add_permission(self, request, obj=None):
        return False

    def sessions(self, obj):
        if obj.session_count is None:
            return "-"
        return f"{obj.completed_sessions}/{obj.session_count}"

    sessions.short_description = "Sessions"

    def order_link(self, obj):
        from django.urls import reverse

        url = reverse("admin:settleman_order_change", args=[obj.order_id])
        return format_html('<a href="{}">{}</a>', url, str(obj.order_id)[:8])

    order_link.short_description = "Order"
