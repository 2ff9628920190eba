from datetime import time, timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APIClient

from configmgr.models import SystemSetting
from providers.models import ServiceProvider, ServiceProviderSchedule, Weekday
from providers.services.slot_utils import local_now

from .helpers import link, make_category, make_location, make_provider, make_service, upcoming, work_weekdays


class ProviderApiTestBase(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.staff = User.objects.create_user(username="admin", password="testpass123", is_staff=True)
        self.city, self.area = make_location()
        self.boiler = make_service("Boiler installation")

        self.x = make_provider("X", self.city, self.area, rating=Decimal("4.50"), total_jobs_completed=100)
        self.y = make_provider("Y", self.city, self.area, rating=Decimal("4.50"), total_jobs_completed=50)
        for p in (self.x, self.y):
            link(p, self.boiler)
            work_weekdays(p)

        self.monday = upcoming(Weekday.MONDAY)


class AvailabilityApiTests(ProviderApiTestBase):
    def test_check_availability(self):
        """Matching providers come back best first."""
        resp = self.client.post(
            "/api/services/check-availability/",
            data={"city_id": self.city.id, "area_id": self.area.id, "service_ids": [self.boiler.id]},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["available"])
        self.assertEqual(body["provider_count"], 2)
        self.assertEqual([p["id"] for p in body["providers"]], [self.x.id, self.y.id])

    def test_check_availability_returns_top_five(self):
        """The count covers every match but only five are listed."""
        for i in range(6):
            link(make_provider(f"P{i}", self.city, self.area), self.boiler)
        resp = self.client.post(
            "/api/services/check-availability/",
            data={"city_id": self.city.id, "area_id": self.area.id, "service_ids": [self.boiler.id]},
            format="json",
        )
        self.assertEqual(resp.json()["provider_count"], 8)
        self.assertEqual(len(resp.json()["providers"]), 5)

    def test_check_availability_with_preferred_time(self):
        """A provider booked at the preferred time is left out."""
        ServiceProviderSchedule.objects.create(
            provider=self.x, service_date=self.monday, start_time=time(10), end_time=time(11)
        )
        resp = self.client.post(
            "/api/services/check-availability/",
            data={
                "city_id": self.city.id,
                "area_id": self.area.id,
                "service_ids": [self.boiler.id],
                "service_date": self.monday.isoformat(),
                "service_time": "10:00",
            },
            format="json",
        )
        self.assertEqual([p["id"] for p in resp.json()["providers"]], [self.y.id])

    def test_check_availability_nobody(self):
        """An empty service list is a normal "nobody available" answer."""
        resp = self.client.post(
            "/api/services/check-availability/",
            data={"city_id": self.city.id, "area_id": self.area.id, "service_ids": []},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["available"])

    def test_category_setting_changes_matched_providers(self):
        """A stored checkout category replaces the default installer match."""
        self.addCleanup(cache.clear)
        courier = make_provider("Courier", self.city, self.area, category=make_category("delivery"))
        link(courier, self.boiler)
        work_weekdays(courier)
        SystemSetting.objects.create(key="CHECKOUT_PROVIDER_CATEGORY", value="delivery")

        resp = self.client.post(
            "/api/services/check-availability/",
            data={"city_id": self.city.id, "area_id": self.area.id, "service_ids": [self.boiler.id]},
            format="json",
        )

        self.assertEqual([p["id"] for p in resp.json()["providers"]], [courier.id])

    def test_past_date_rejected(self):
        """A preferred date before today is a validation error."""
        yesterday = local_now().date() - timedelta(days=1)
        resp = self.client.post(
            "/api/services/check-availability/",
            data={
                "city_id": self.city.id,
                "area_id": self.area.id,
                "service_ids": [self.boiler.id],
                "service_date": yesterday.isoformat(),
                "service_time": "10:00",
            },
            format="json",
        )
        self.assertEqual(resp.status_code, 400)

    def test_area_must_belong_to_city(self):
        """check-availability refuses an area from another city."""
        other_city, other_area = make_location("Leeds", "Headingley")
        resp = self.client.post(
            "/api/services/check-availability/",
            data={"city_id": self.city.id, "area_id": other_area.id, "service_ids": [self.boiler.id]},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)

    def test_slots_for_one_provider(self):
        """With provider_id the free slots of that provider are listed."""
        resp = self.client.get(
            "/api/services/available-slots/",
            {
                "provider_id": self.x.id,
                "city_id": self.city.id,
                "area_id": self.area.id,
                "service_date": self.monday.isoformat(),
            },
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["provider"]["id"], self.x.id)
        self.assertEqual(len(body["slots"]), 9)
        self.assertEqual(body["slots"][0], {"start": "09:00", "end": "10:00"})

    def test_slots_area_from_other_city_rejected(self):
        """available-slots refuses an area that belongs to another city."""
        other_city, other_area = make_location("Leeds", "Headingley")
        resp = self.client.get(
            "/api/services/available-slots/",
            {"city_id": self.city.id, "area_id": other_area.id, "service_date": self.monday.isoformat()},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("area_id", resp.json())

    def test_slots_provider_outside_location_rejected(self):
        """A provider from another area of the same city cannot be listed for this one."""
        moseley = self.city.areas.create(name="Moseley", slug="moseley")
        elsewhere = make_provider("Elsewhere", self.city, moseley)
        work_weekdays(elsewhere)
        resp = self.client.get(
            "/api/services/available-slots/",
            {
                "provider_id": elsewhere.id,
                "city_id": self.city.id,
                "area_id": self.area.id,
                "service_date": self.monday.isoformat(),
            },
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("provider_id", resp.json())

    def test_slots_for_top_providers(self):
        """Without provider_id the best three providers are listed."""
        for i in range(3):
            p = make_provider(f"P{i}", self.city, self.area, rating=Decimal("3.00"))
            link(p, self.boiler)
            work_weekdays(p)
        resp = self.client.post(
            "/api/services/available-slots/",
            data={
                "city_id": self.city.id,
                "area_id": self.area.id,
                "service_date": self.monday.isoformat(),
                "service_ids": [self.boiler.id],
            },
            format="json",
        )
        groups = resp.json()["available_providers"]
        self.assertEqual(len(groups), 3)
        self.assertEqual([g["provider"]["id"] for g in groups[:2]], [self.x.id, self.y.id])

    def test_slots_skip_providers_without_free_time(self):
        """Providers with no free slot that day are left out."""
        saturday = upcoming(Weekday.SATURDAY)
        resp = self.client.post(
            "/api/services/available-slots/",
            data={"city_id": self.city.id, "area_id": self.area.id, "service_date": saturday.isoformat()},
            format="json",
        )
        self.assertEqual(resp.json()["available_providers"], [])

    def test_areas_for_city(self):
        """Only active areas of the city are listed."""
        self.city.areas.create(name="Closed", slug="closed", is_active=False)
        resp = self.client.get("/api/areas/", {"city": self.city.id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([a["name"] for a in resp.json()["areas"]], ["Edgbaston"])

    def test_areas_requires_city(self):
        """The city parameter is mandatory."""
        self.assertEqual(self.client.get("/api/areas/").status_code, 400)


class ProviderDetailApiTests(ProviderApiTestBase):
    def test_detail_has_services_and_full_week(self):
        """Provider detail carries prices and all seven weekdays."""
        resp = self.client.get(f"/api/providers/{self.x.id}/")
        self.assertEqual(resp.status_code, 200)
        provider = resp.json()["provider"]
        self.assertEqual([s["name"] for s in provider["services"]], ["Boiler installation"])
        self.assertEqual(provider["services"][0]["price"], "250.00")
        week = provider["weekly_schedule"]
        self.assertEqual(len(week), 7)
        self.assertEqual(week["monday"]["start_time"], "09:00:00")
        self.assertIsNone(week["sunday"])

    def test_actions_require_staff(self):
        """Anonymous users cannot run provider actions."""
        resp = self.client.post(f"/api/providers/{self.x.id}/verify/")
        self.assertIn(resp.status_code, (401, 403))

    def test_verify(self):
        """Staff can verify a pending provider."""
        pending = make_provider("New", self.city, self.area, is_verified=False)
        self.client.force_authenticate(user=self.staff)
        resp = self.client.post(f"/api/providers/{pending.id}/verify/")
        self.assertEqual(resp.status_code, 200)
        pending.refresh_from_db()
        self.assertTrue(pending.is_verified)
        self.assertIsNotNone(pending.verified_at)

    def test_toggle_status(self):
        """toggle-status flips is_active both ways."""
        self.client.force_authenticate(user=self.staff)
        self.client.post(f"/api/providers/{self.x.id}/toggle-status/")
        self.x.refresh_from_db()
        self.assertFalse(self.x.is_active)
        self.client.post(f"/api/providers/{self.x.id}/toggle-status/")
        self.x.refresh_from_db()
        self.assertTrue(self.x.is_active)

    def test_reset_daily_orders(self):
        """Resetting frees a busy provider."""
        ServiceProvider.objects.filter(pk=self.x.pk).update(
            current_daily_orders=5, availability_status=ServiceProvider.STATUS_BUSY
        )
        self.client.force_authenticate(user=self.staff)
        resp = self.client.post(f"/api/providers/{self.x.id}/reset-daily-orders/")
        self.assertEqual(resp.json()["provider"]["current_daily_orders"], 0)
        self.assertEqual(resp.json()["provider"]["availability_status"], ServiceProvider.STATUS_AVAILABLE)


class ScheduleApiTests(ProviderApiTestBase):
    def post_booking(self, start="11:00"):
        return self.client.post(
            "/api/schedules/",
            data={"provider": self.x.id, "service_date": self.monday.isoformat(), "start_time": start},
            format="json",
        )

    def test_book_slot(self):
        """A booking ends one provider duration after its start."""
        resp = self.post_booking()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["end_time"], "12:00:00")
        self.assertEqual(resp.json()["status"], "scheduled")

    def test_conflict_is_409(self):
        """An overlapping booking is a conflict, not a bad request."""
        self.post_booking("11:00")
        resp = self.post_booking("11:30")
        self.assertEqual(resp.status_code, 409)

    def test_outside_hours_is_400(self):
        """A slot running past closing time is rejected."""
        self.assertEqual(self.post_booking("17:30").status_code, 400)

    def test_past_date_is_400(self):
        """Bookings cannot be made for past dates."""
        yesterday = local_now().date() - timedelta(days=1)
        resp = self.client.post(
            "/api/schedules/",
            data={"provider": self.x.id, "service_date": yesterday.isoformat(), "start_time": "10:00"},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)

    def test_cancel_then_rebook(self):
        """A cancelled slot can be booked again but not cancelled twice."""
        booking_id = self.post_booking().json()["id"]
        resp = self.client.post(f"/api/schedules/{booking_id}/cancel/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.post(f"/api/schedules/{booking_id}/cancel/").status_code, 400)
        self.assertEqual(self.post_booking().status_code, 201)

    def test_booked_slot_disappears_from_listing(self):
        """A booked start time is no longer offered."""
        self.post_booking("11:00")
        resp = self.client.get(
            "/api/services/available-slots/",
            {
                "provider_id": self.x.id,
                "city_id": self.city.id,
                "area_id": self.area.id,
                "service_date": self.monday.isoformat(),
            },
        )
        starts = [s["start"] for s in resp.json()["slots"]]
        self.assertEqual(len(starts), 8)
        self.assertNotIn("11:00", starts)

    def test_listing_requires_staff(self):
        """Only staff can list bookings."""
        self.assertIn(self.client.get("/api/schedules/").status_code, (401, 403))
