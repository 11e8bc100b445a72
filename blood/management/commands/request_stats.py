from __future__ import annotations

from django.core.management.base import BaseCommand

from blood.services.repository import DjangoRepository, STATUS_PENDING


class Command(BaseCommand):
    help = "Print blood request counts per status and donor counts per blood group."

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-empty",
            action="store_true",
            help="Hide statuses and blood groups with a count of zero.",
        )

    def handle(self, *args, **options):
        skip_empty = bool(options.get("skip_empty"))
        repo = DjangoRepository()

        request_counts = repo.count_requests_by_status()
        donor_counts = repo.count_donors_by_blood_group()

        self.stdout.write(f"Active requests: {request_counts.get(STATUS_PENDING, 0)}")
        self.stdout.write(f"Total requests: {sum(request_counts.values())}")
        self.stdout.write("\nRequests by status:")
        for status, total in request_counts.items():
            if skip_empty and not total:
                continue
            self.stdout.write(f"- {status}: {total}")

        self.stdout.write(f"\nTotal donors: {sum(donor_counts.values())}")
        self.stdout.write("Donors by blood group:")
        for group, total in donor_counts.items():
            if skip_empty and not total:
                continue
            self.stdout.write(f"- {group}: {total}")

        self.stdout.write(self.style.SUCCESS("Done."))
