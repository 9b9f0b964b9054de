from django.core.management.base import BaseCommand
from services.cancellation import reset_monthly_strikes


class Command(BaseCommand):
    help = "Zero driver cancellation strikes whose last reset is older than the reset period."

    def handle(self, *args, **options):
        reset_count = reset_monthly_strikes()

        self.stdout.write(
            self.style.SUCCESS(f"Reset strikes for {reset_count} driver(s).")
        )
