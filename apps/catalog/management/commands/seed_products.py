"""
Management command to load the beer catalog.

Usage:
    python manage.py seed_products
    python manage.py seed_products --clear
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.catalog.models import Product


BEER_PRODUCTS = [
    {
        'name': 'Kirin Nodogoshi Beer',
        'price': 280,
        'image': '/images/nodogosi.jpg',
        'description': (
            "Refreshing Japanese beer with 5% alcohol content. Kirin's brewing "
            'technology creates the perfect "nodogoshi" (throat feel).'
        ),
    },
    {
        'name': 'Sapporo Premium Beer',
        'price': 320,
        'image': '/images/sapporo.webp',
        'description': (
            'Premium Japanese lager beer from Sapporo Breweries. Crisp, clean '
            'taste with the iconic star logo since 1876.'
        ),
    },
    {
        'name': 'Kirin Ichiban Shibori',
        'price': 330,
        'image': '/images/kirin.webp',
        'description': (
            'Premium beer made using only the first press of the wort. Pure '
            "taste from Japan's finest brewing techniques."
        ),
    },
    {
        'name': 'Kirin Honkirin Beer',
        'price': 350,
        'image': '/images/honkirin.webp',
        'description': (
            'Authentic Kirin beer with 6% alcohol content. Long-term '
            'low-temperature fermentation for rich, full-bodied taste.'
        ),
    },
    {
        'name': 'Kirin Nama Beer',
        'price': 310,
        'image': '/images/nama.webp',
        'description': (
            'Fresh draft beer taste in a can. Unpasteurized for maximum flavor '
            'and authentic brewery experience.'
        ),
    },
]


class Command(BaseCommand):
    help = 'Create or update the beer products sold in the shop'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Deactivate products that are not part of the catalog',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        names = [item['name'] for item in BEER_PRODUCTS]

        if options['clear']:
            hidden = Product.objects.exclude(name__in=names).update(is_active=False)
            self.stdout.write(f'Deactivated {hidden} product(s) outside the catalog.')

        created = 0
        for item in BEER_PRODUCTS:
            _, was_created = Product.objects.update_or_create(
                name=item['name'],
                defaults={**item, 'is_active': True},
            )
            created += int(was_created)
            self.stdout.write(f"  - {item['name']} | ¥{item['price']}")

        self.stdout.write(
            self.style.SUCCESS(
                f'Catalog ready: {created} created, {len(BEER_PRODUCTS) - created} updated.'
            )
        )
