from django.core.management.base import BaseCommand
from services.auction import expire_stale_bids


class Command(BaseCommand):
    help = "Mark bids that passed their expiry without a response as EXPIRED."

    def handle(self, *args, **options):
        expired_count = expire_stale_bids()

        self.stdout.write(
            self.style.SUCCESS(f"Expired {expired_count} bid(s).")
        )
