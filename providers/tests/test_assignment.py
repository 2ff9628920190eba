from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase

from configmgr.models import SystemSetting
from providers.exceptions import ProviderAtCapacity
from providers.models import ServiceProvider
from providers.services.assignment import AssignmentService

from .helpers import make_category, make_location, make_provider


class DailyOrderTests(TestCase):
    def setUp(self):
        self.service = AssignmentService()
        city, area = make_location()
        self.provider = make_provider("Jane", city, area, max_daily_orders=2)

    def test_claim_until_full(self):
        """The provider turns busy when the last order is claimed."""
        self.service.claim_daily_order(self.provider)
        self.assertEqual(self.provider.current_daily_orders, 1)
        self.assertEqual(self.provider.availability_status, ServiceProvider.STATUS_AVAILABLE)

        self.service.claim_daily_order(self.provider)
        self.assertEqual(self.provider.current_daily_orders, 2)
        self.assertEqual(self.provider.availability_status, ServiceProvider.STATUS_BUSY)
        self.assertFalse(self.provider.is_available())

    def test_claim_never_passes_cap(self):
        """A claim on a full provider fails without touching the counter."""
        ServiceProvider.objects.filter(pk=self.provider.pk).update(current_daily_orders=2)
        # This copy still believes there is room.
        with self.assertRaises(ProviderAtCapacity):
            self.service.claim_daily_order(self.provider)
        self.provider.refresh_from_db()
        self.assertEqual(self.provider.current_daily_orders, 2)

    def test_release_makes_busy_provider_available(self):
        """Releasing an order reopens a busy provider."""
        self.service.claim_daily_order(self.provider)
        self.service.claim_daily_order(self.provider)
        self.service.release_daily_order(self.provider)
        self.assertEqual(self.provider.current_daily_orders, 1)
        self.assertEqual(self.provider.availability_status, ServiceProvider.STATUS_AVAILABLE)

    def test_release_at_zero_is_noop(self):
        """The counter never goes below zero."""
        self.service.release_daily_order(self.provider)
        self.assertEqual(self.provider.current_daily_orders, 0)

    def test_reset_keeps_offline_providers_offline(self):
        """Reset zeroes counters but leaves offline providers alone."""
        city, area = self.provider.city, self.provider.area
        offline = make_provider(
            "Off", city, area, availability_status=ServiceProvider.STATUS_OFFLINE, current_daily_orders=1
        )
        self.service.claim_daily_order(self.provider)
        self.service.claim_daily_order(self.provider)

        self.assertEqual(self.service.reset_daily_orders(), 2)

        self.provider.refresh_from_db()
        offline.refresh_from_db()
        self.assertEqual(self.provider.current_daily_orders, 0)
        self.assertEqual(self.provider.availability_status, ServiceProvider.STATUS_AVAILABLE)
        self.assertEqual(offline.current_daily_orders, 0)
        self.assertEqual(offline.availability_status, ServiceProvider.STATUS_OFFLINE)

    def test_management_command(self):
        """reset_daily_orders reports how many providers it reset."""
        self.service.claim_daily_order(self.provider)
        out = StringIO()
        call_command("reset_daily_orders", stdout=out)
        self.provider.refresh_from_db()
        self.assertEqual(self.provider.current_daily_orders, 0)
        self.assertIn("1 provider(s)", out.getvalue())


class AutoAssignTests(TestCase):
    def setUp(self):
        cache.clear()
        self.service = AssignmentService()
        self.city, self.area = make_location()
        self.other_area = self.city.areas.create(name="Moseley", slug="moseley")

    def test_prefers_least_loaded_in_area(self):
        """The provider with the fewest orders today is picked."""
        loaded = make_provider("Loaded", self.city, self.area, rating=Decimal("5.00"), current_daily_orders=3)
        quiet = make_provider("Quiet", self.city, self.area, rating=Decimal("3.00"))

        chosen = self.service.auto_assign_provider(self.city, self.area, "installer")

        self.assertEqual(chosen.pk, quiet.pk)
        self.assertEqual(chosen.current_daily_orders, 1)
        loaded.refresh_from_db()
        self.assertEqual(loaded.current_daily_orders, 3)

    def test_rating_breaks_load_tie(self):
        """Equal load falls back to rating."""
        make_provider("Good", self.city, self.area, rating=Decimal("3.00"))
        best = make_provider("Best", self.city, self.area, rating=Decimal("4.80"))
        self.assertEqual(self.service.auto_assign_provider(self.city, self.area).pk, best.pk)

    def test_falls_back_to_city(self):
        """Nobody in the area means any provider in the city."""
        elsewhere = make_provider("Elsewhere", self.city, self.other_area)
        self.assertEqual(self.service.auto_assign_provider(self.city, self.area).pk, elsewhere.pk)

    def test_nobody_available(self):
        """No candidate gives None."""
        make_provider("Full", self.city, self.area, max_daily_orders=1, current_daily_orders=1)
        self.assertIsNone(self.service.auto_assign_provider(self.city, self.area))

    def test_category_comes_from_setting(self):
        """Without an explicit category the stored checkout category is used."""
        self.addCleanup(cache.clear)
        make_provider("Fitter", self.city, self.area, rating=Decimal("5.00"))
        courier = make_provider("Courier", self.city, self.area, category=make_category("delivery"))
        SystemSetting.objects.create(key="CHECKOUT_PROVIDER_CATEGORY", value="delivery")

        self.assertEqual(self.service.auto_assign_provider(self.city, self.area).pk, courier.pk)
