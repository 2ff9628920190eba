"""
reset_daily_orders.py
---------------------
Django management command to zero every provider's daily order counter.

Usage:
    python manage.py reset_daily_orders
    python manage.py reset_daily_orders --city birmingham

Schedule it nightly (cron or similar). Busy providers become available again;
offline providers are left offline.
"""

from django.core.management.base import BaseCommand

from providers.models import ServiceProvider
from providers.services.assignment import AssignmentService


class Command(BaseCommand):
    help = "Reset current_daily_orders for all (or one city's) service providers."

    def add_arguments(self, parser):
        parser.add_argument("--city", help="Only reset providers in the city with this slug.")

    def handle(self, *args, **options):
        qs = ServiceProvider.objects.all()
        if options.get("city"):
            qs = qs.filter(city__slug=options["city"])

        count = AssignmentService().reset_daily_orders(qs)
        self.stdout.write(self.style.SUCCESS(f"Reset daily orders for {count} provider(s)."))
