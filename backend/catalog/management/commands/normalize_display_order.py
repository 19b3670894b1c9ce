from django.core.management.base import BaseCommand
from django.db import transaction

from backend.core.cache_utils import invalidate_resource_cache, CATEGORIES, BRANDS, PRODUCT_LINES
from backend.catalog.models import Category, Brand, ProductLine


class Command(BaseCommand):
    help = 'Renumber display_order of every sibling group to 0..n-1, keeping the current order'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run without making changes to see what would be updated',
        )

    def renumber(self, nodes, dry_run):
        changed = []
        for position, node in enumerate(nodes):
            if node.display_order != position:
                node.display_order = position
                changed.append(node)
        if changed and not dry_run:
            type(changed[0]).objects.bulk_update(changed, ['display_order'])
        return len(changed)

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        totals = {'categories': 0, 'brands': 0, 'product lines': 0}

        with transaction.atomic():
            totals['categories'] += self.renumber(list(Category.objects.order_by('display_order', 'id')), dry_run)

            for category_id in Category.objects.values_list('id', flat=True):
                brands = Brand.objects.filter(category_id=category_id).order_by('display_order', 'id')
                totals['brands'] += self.renumber(list(brands), dry_run)

            for brand_id in Brand.objects.values_list('id', flat=True):
                lines = ProductLine.objects.filter(brand_id=brand_id).order_by('display_order', 'id')
                totals['product lines'] += self.renumber(list(lines), dry_run)

        if not dry_run:
            invalidate_resource_cache(CATEGORIES, BRANDS, PRODUCT_LINES)

        prefix = '[DRY RUN] Would update' if dry_run else 'Updated'
        for label, count in totals.items():
            self.stdout.write(self.style.SUCCESS(f'{prefix} {count} {label}'))
