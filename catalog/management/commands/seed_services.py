"""
seed_services.py
----------------
Seeds (creates or updates) the standard services offered with boiler parts.
Safe to run any time; it upserts by slug.

Usage:
    python manage.py seed_services
"""

from decimal import Decimal
from django.core.management.base import BaseCommand
from catalog.models import ProductService


CATALOG = [
    {"slug": "standard-delivery",      "name": "Standard Delivery",      "type": ProductService.TYPE_DELIVERY,     "price": Decimal("0.00"),   "is_free": True,  "is_optional": False, "sort_order": 1},
    {"slug": "next-day-delivery",      "name": "Next Day Delivery",      "type": ProductService.TYPE_DELIVERY,     "price": Decimal("9.99"),   "is_free": False, "is_optional": True,  "sort_order": 2},
    {"slug": "part-fitting",           "name": "Part Fitting",           "type": ProductService.TYPE_INSTALLATION, "price": Decimal("85.00"),  "is_free": False, "is_optional": True,  "sort_order": 3},
    {"slug": "boiler-installation",    "name": "Boiler Installation",    "type": ProductService.TYPE_INSTALLATION, "price": Decimal("450.00"), "is_free": False, "is_optional": True,  "sort_order": 4},
    {"slug": "commissioning-setup",    "name": "Commissioning & Setup",  "type": ProductService.TYPE_SETUP,        "price": Decimal("60.00"),  "is_free": False, "is_optional": True,  "sort_order": 5},
    {"slug": "annual-service",         "name": "Annual Boiler Service",  "type": ProductService.TYPE_MAINTENANCE,  "price": Decimal("95.00"),  "is_free": False, "is_optional": True,  "sort_order": 6},
    {"slug": "old-part-disposal",      "name": "Old Part Disposal",      "type": ProductService.TYPE_OTHER,        "price": Decimal("15.00"),  "is_free": False, "is_optional": True,  "sort_order": 7},
]


class Command(BaseCommand):
    help = "Seed or update the standard product services."

    def handle(self, *args, **options):
        created = 0
        updated = 0

        for item in CATALOG:
            defaults = {k: v for k, v in item.items() if k != "slug"}
            svc, is_created = ProductService.objects.get_or_create(
                slug=item["slug"],
                defaults={**defaults, "is_active": True},
            )
            if is_created:
                created += 1
                continue

            changed = False
            for field, value in defaults.items():
                if getattr(svc, field) != value:
                    setattr(svc, field, value)
                    changed = True
            if not svc.is_active:
                svc.is_active = True
                changed = True
            if changed:
                svc.save()
                updated += 1

        self.stdout.write(self.style.SUCCESS(f"Seed complete. Created={created}, Updated={updated}"))
