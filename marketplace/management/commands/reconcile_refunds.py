"""
Management command to repair refund records whose return request or order
never reached the matching refunded state.

Run with: python manage.py reconcile_refunds [--dry-run]
"""

from django.core.management.base import BaseCommand

from marketplace.returns_resolution import reconcile_refund_records


class Command(BaseCommand):
    help = 'Move returns and orders with a completed refund record into their refunded state'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be repaired without making changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        if dry_run:
            self.stdout.write(self.style.WARNING('DRY RUN - No changes will be made'))

        repaired = reconcile_refund_records(dry_run=dry_run)

        for refund_id in repaired:
            self.stdout.write(f"Refund record: {refund_id}")

        if dry_run:
            self.stdout.write(
                self.style.WARNING(f'\nWould repair {len(repaired)} refund records')
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(f'\nRepaired {len(repaired)} refund records')
            )
