from django.core.management.base import BaseCommand
from services.escrow import auto_confirm_sweep


class Command(BaseCommand):
    help = "Release escrow holds the customer never confirmed (geofence or status verified)."

    def handle(self, *args, **options):
        result = auto_confirm_sweep()

        for detail in result.details:
            if detail.get("outcome") != "confirmed":
                self.stdout.write(f"  payment {detail['payment_id']} (job {detail['job_id']}): {detail}")

        self.stdout.write(
            self.style.SUCCESS(
                f"Checked {result.checked} held payment(s); confirmed {result.confirmed}, failed {result.failed}."
            )
        )
