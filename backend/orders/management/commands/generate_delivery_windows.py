"""
Management command to create upcoming delivery windows from the weekly templates.
Meant to run daily (cron) so the booking range is always populated.
"""
from django.core.management.base import BaseCommand

from backend.orders.windows import generate_windows, BOOKING_DAYS_AHEAD


class Command(BaseCommand):
    help = 'Create delivery windows from the enabled weekly templates'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days-ahead',
            type=int,
            default=BOOKING_DAYS_AHEAD,
            help=f'Generate for today through this many days out (default {BOOKING_DAYS_AHEAD})',
        )

    def handle(self, *args, **options):
        created, skipped = generate_windows(options['days_ahead'])
        self.stdout.write(self.style.SUCCESS(
            f'Generated {created} delivery windows, skipped {skipped} existing windows'
        ))
