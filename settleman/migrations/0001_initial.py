# Generated migration for the settlement and credit ledger models

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "account_ref",
                    models.CharField(db_index=True, max_length=100, verbose_name="account"),
                ),
                (
                    "account_name",
                    models.CharField(blank=True, max_length=200, verbose_name="account name"),
                ),
                ("line_items", models.JSONField(default=list, verbose_name="line items")),
                ("total_amount", models.BigIntegerField(default=0, verbose_name="total")),
                ("paid_amount", models.BigIntegerField(default=0, verbose_name="paid")),
                ("unpaid_amount", models.BigIntegerField(default=0, verbose_name="unpaid")),
                ("credit_used", models.BigIntegerField(default=0, verbose_name="credit used")),
                ("credit_earned", models.BigIntegerField(default=0, verbose_name="credit earned")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("partially_paid", "Partially paid"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        verbose_name="created at",
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "order",
                "verbose_name_plural": "orders",
                "db_table": "settleman_order",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="BalanceSnapshot",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "account_ref",
                    models.CharField(max_length=100, unique=True, verbose_name="account"),
                ),
                ("total_balance", models.BigIntegerField(default=0, verbose_name="balance")),
                ("earned", models.BigIntegerField(default=0, verbose_name="earned")),
                ("used", models.BigIntegerField(default=0, verbose_name="used")),
                ("expired", models.BigIntegerField(default=0, verbose_name="expired")),
                (
                    "expiring_in_7_days",
                    models.BigIntegerField(default=0, verbose_name="expiring in 7 days"),
                ),
                (
                    "expiring_in_30_days",
                    models.BigIntegerField(default=0, verbose_name="expiring in 30 days"),
                ),
                ("transaction_count", models.IntegerField(default=0, verbose_name="transactions")),
                (
                    "next_expiry_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="next expiry"),
                ),
                (
                    "last_updated",
                    models.DateTimeField(
                        default=django.utils.timezone.now, verbose_name="last updated"
                    ),
                ),
            ],
            options={
                "verbose_name": "balance snapshot",
                "verbose_name_plural": "balance snapshots",
                "db_table": "settleman_balance_snapshot",
            },
        ),
        migrations.CreateModel(
            name="PaymentRecord",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "tender_type",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("card", "Card"),
                            ("transfer", "Bank transfer"),
                        ],
                        max_length=20,
                        verbose_name="tender",
                    ),
                ),
                ("amount", models.BigIntegerField(verbose_name="amount")),
                (
                    "status",
                    models.CharField(
                        choices=[("completed", "Completed")],
                        default="completed",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now, verbose_name="created at"
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="settleman.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "payment",
                "verbose_name_plural": "payments",
                "db_table": "settleman_payment",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="FulfillmentRecord",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "account_ref",
                    models.CharField(db_index=True, max_length=100, verbose_name="account"),
                ),
                ("ref_id", models.CharField(max_length=100, verbose_name="item ref")),
                ("name", models.CharField(blank=True, max_length=200, verbose_name="name")),
                (
                    "billing_model",
                    models.CharField(
                        choices=[
                            ("session_count", "Session count"),
                            ("date_range", "Date range"),
                        ],
                        default="date_range",
                        max_length=20,
                        verbose_name="billing model",
                    ),
                ),
                ("paid_amount", models.BigIntegerField(default=0, verbose_name="paid")),
                ("unpaid_amount", models.BigIntegerField(default=0, verbose_name="unpaid")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("unpaid", "Unpaid"),
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("hold", "On hold"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("start_date", models.DateTimeField(verbose_name="start")),
                ("end_date", models.DateTimeField(blank=True, null=True, verbose_name="end")),
                (
                    "session_count",
                    models.PositiveIntegerField(blank=True, null=True, verbose_name="sessions"),
                ),
                (
                    "completed_sessions",
                    models.PositiveIntegerField(default=0, verbose_name="completed sessions"),
                ),
                (
                    "hold_started_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="hold started"),
                ),
                (
                    "hold_reason",
                    models.CharField(blank=True, max_length=200, verbose_name="hold reason"),
                ),
                (
                    "total_hold_days",
                    models.PositiveIntegerField(default=0, verbose_name="total hold days"),
                ),
                ("notes", models.TextField(blank=True, verbose_name="notes")),
                (
                    "created_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now, verbose_name="created at"
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="fulfillments",
                        to="settleman.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "fulfillment",
                "verbose_name_plural": "fulfillments",
                "db_table": "settleman_fulfillment",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "account_ref",
                    models.CharField(
                        db_index=True,
                        help_text="External account reference (member id)",
                        max_length=100,
                        verbose_name="account",
                    ),
                ),
                (
                    "amount",
                    models.BigIntegerField(
                        help_text="Positive for grants, negative for consumption",
                        verbose_name="amount",
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("earn", "Earn"),
                            ("use", "Use"),
                            ("expire", "Expire"),
                            ("adjust", "Adjust"),
                        ],
                        db_index=True,
                        max_length=10,
                        verbose_name="kind",
                    ),
                ),
                ("earned_date", models.DateTimeField(verbose_name="earned at")),
                (
                    "expiry_date",
                    models.DateTimeField(blank=True, null=True, verbose_name="expires at"),
                ),
                ("is_expired", models.BooleanField(default=False, verbose_name="expired")),
                ("source", models.CharField(blank=True, max_length=100, verbose_name="source")),
                (
                    "description",
                    models.CharField(blank=True, max_length=255, verbose_name="description"),
                ),
                (
                    "fulfillment_refs",
                    models.JSONField(blank=True, default=list, verbose_name="fulfillments"),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        verbose_name="created at",
                    ),
                ),
                (
                    "original_entry",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="consumptions",
                        to="settleman.ledgerentry",
                        verbose_name="original entry",
                    ),
                ),
                (
                    "related_order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="settleman.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "ledger entry",
                "verbose_name_plural": "ledger entries",
                "db_table": "settleman_ledger_entry",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["account_ref", "kind"],
                        name="ledger_account_kind_idx",
                    ),
                    models.Index(
                        fields=["account_ref", "earned_date"],
                        name="ledger_account_earned_idx",
                    ),
                ],
            },
        ),
    ]
