from datetime import time, timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from coupons.models import Coupon
from providers.models import ServiceProviderSchedule
from providers.services.booking_manager import BookingManager
from providers.tests.helpers import make_location, make_provider


def book(provider, day, hour):
    return ServiceProviderSchedule.objects.create(
        provider=provider, service_date=day, start_time=time(hour), end_time=time(hour + 1)
    )


class ReportsSummaryTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.staff = User.objects.create_user(username="admin", password="testpass123", is_staff=True)
        city, area = make_location()
        self.busy = make_provider("Busy Bee", city, area, business_name="Busy Bee Heating")
        self.quiet = make_provider("Quiet", city, area)
        today = timezone.localdate()
        self.past_day = today - timedelta(days=2)
        self.next_week = today + timedelta(days=7)

        for hour in (9, 10, 11):
            book(self.busy, self.past_day, hour)
        BookingManager().cancel_booking(book(self.quiet, self.past_day, 9))
        # Booked ahead; these jobs have not happened yet.
        for hour in (9, 10, 11, 12):
            book(self.quiet, self.next_week, hour)

        Coupon.objects.create(code="WELCOME10", type=Coupon.TYPE_PERCENTAGE, value=Decimal("10"), used_count=4)
        Coupon.objects.create(code="UNUSED", type=Coupon.TYPE_FIXED, value=Decimal("5"))

    def summary(self):
        self.client.force_authenticate(user=self.staff)
        resp = self.client.get("/api/reports/summary")
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def test_requires_staff(self):
        """Anonymous users cannot read the report."""
        resp = self.client.get("/api/reports/summary")
        self.assertIn(resp.status_code, (401, 403))

    def test_summary(self):
        """Bookings and cancellations are grouped by the day they happened."""
        body = self.summary()

        today = timezone.localdate().isoformat()
        self.assertEqual(body["bookings_per_day"], [{"day": today, "count": 8}])
        self.assertEqual(body["cancellations_per_day"], [{"day": today, "count": 1}])
        self.assertEqual(body["coupon_usage"], [{"code": "WELCOME10", "used_count": 4, "usage_limit": None}])

    def test_busiest_providers_ignore_future_bookings(self):
        """Only jobs dated up to today count towards the busiest providers."""
        body = self.summary()
        self.assertEqual(
            body["busiest_providers"],
            [{"provider_id": self.busy.id, "provider_name": "Busy Bee Heating", "count": 3}],
        )

    def test_busiest_providers_ignore_old_bookings(self):
        """Jobs older than the report window drop out."""
        ServiceProviderSchedule.objects.filter(provider=self.busy).update(
            service_date=timezone.localdate() - timedelta(days=45)
        )
        self.assertEqual(self.summary()["busiest_providers"], [])
