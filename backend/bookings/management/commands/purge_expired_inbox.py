from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from bookings.models import InboxEntry
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Delete provider inbox entries whose expiry has passed."

    def add_arguments(self, parser):
        parser.add_argument(
            "--grace-minutes",
            type=int,
            default=0,
            help="Only delete entries expired for at least this many minutes (default: 0).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        grace = options["grace_minutes"]
        dry_run = options["dry_run"]
        cutoff = timezone.now() - timedelta(minutes=grace)

        expired = InboxEntry.objects.expired(cutoff)
        count = expired.count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {count} expired inbox entries."
                )
            )
            return

        expired.delete()
        logger.info("Purged %d expired inbox entries", count)
        self.stdout.write(
            self.style.SUCCESS(f"Deleted {count} expired inbox entries.")
        )
