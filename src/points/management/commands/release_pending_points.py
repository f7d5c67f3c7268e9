"""Release due pending points now, outside the daily schedule."""
import json
from datetime import date

from django.core.management.base import BaseCommand, CommandError

from points.services import release_pending_points


class Command(BaseCommand):
    help = "Release every pending point whose scheduled release date has passed"

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            help="Release as of this date (YYYY-MM-DD) instead of today.",
        )

    def handle(self, *args, **options):
        today = None
        if options["date"]:
            try:
                today = date.fromisoformat(options["date"])
            except ValueError:
                raise CommandError(f"Invalid date: {options['date']}")

        result = release_pending_points(today=today)
        self.stdout.write(self.style.SUCCESS(json.dumps({
            "released_count": result["released_count"],
            "total_amount": str(result["total_amount"]),
        })))
