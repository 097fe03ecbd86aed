from django.apps import AppConfig


class SettlemanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "settleman"
    verbose_name = "Settleman - Settlement & Credit Ledger"
