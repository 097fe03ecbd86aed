"""Management command to expire past-due credit."""

from django.core.management.base import BaseCommand

from settleman.services.expiry import ExpiryService
from settleman.services.fulfillment import FulfillmentService


class Command(BaseCommand):
    help = "Expire credit entries past their expiry date (safe to re-run)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--account",
            default=None,
            help="Only sweep this account reference",
        )
        parser.add_argument(
            "--fulfillments",
            action="store_true",
            help="Also complete date-range fulfillments past their end date",
        )

    def handle(self, *args, **options):
        result = ExpiryService.sweep(options["account"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Expired {result.entries_written} entries "
                f"({result.entries_marked} marked) across {len(result.accounts)} accounts."
            )
        )

        if options["fulfillments"]:
            completed = FulfillmentService.complete_expired()
            self.stdout.write(self.style.SUCCESS(f"Completed {completed} expired fulfillments."))
