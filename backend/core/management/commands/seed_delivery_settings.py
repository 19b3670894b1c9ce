"""
Management command to create the runtime settings checkout reads
"""
from django.core.management.base import BaseCommand

from backend.core.models import Setting

DEFAULT_SETTINGS = [
    ('delivery_fee', '5.00', 'Flat delivery fee charged per order'),
    ('free_delivery_threshold', '100', 'Order subtotal from which delivery is free'),
]


class Command(BaseCommand):
    help = "Creates the delivery fee settings if they do not exist yet"

    def add_arguments(self, parser):
        parser.add_argument(
            '--overwrite',
            action='store_true',
            help='Reset existing values to the defaults',
        )

    def handle(self, *args, **options):
        overwrite = options['overwrite']
        for key, value, description in DEFAULT_SETTINGS:
            setting, created = Setting.objects.get_or_create(
                key=key, defaults={'value': value, 'description': description}
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f"Created {key} = {value}"))
            elif overwrite:
                setting.value = value
                setting.description = description
                setting.save()
                self.stdout.write(self.style.WARNING(f"Reset {key} = {value}"))
            else:
                self.stdout.write(f"Kept {key} = {setting.value}")
