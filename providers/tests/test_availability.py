from datetime import datetime, time, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from providers.models import ServiceProvider, ServiceProviderSchedule, Weekday
from providers.services.availability_engine import AvailabilityEngine
from providers.services.slot_utils import Slot, add_minutes, generate_slots, overlaps, without_booked

from .helpers import MONDAY, link, make_category, make_location, make_provider, make_service, work


def book(provider, day, start, end, status=ServiceProviderSchedule.STATUS_SCHEDULED):
    return ServiceProviderSchedule.objects.create(
        provider=provider, service_date=day, start_time=start, end_time=end, status=status
    )


class SlotUtilsTests(TestCase):
    def test_generate_slots_stops_at_close(self):
        """The last slot ends exactly at closing time."""
        slots = generate_slots(time(9), time(10, 30), 30)
        self.assertEqual([s.start for s in slots], [time(9), time(9, 30), time(10)])
        self.assertEqual(slots[-1].end, time(10, 30))

    def test_partial_slot_is_dropped(self):
        """A trailing slot shorter than the duration is not offered."""
        self.assertEqual(len(generate_slots(time(9), time(10, 45), 60)), 1)

    def test_touching_intervals_do_not_overlap(self):
        """Intervals are half open."""
        self.assertFalse(overlaps(time(10), time(11), time(11), time(12)))
        self.assertTrue(overlaps(time(10), time(11, 1), time(11), time(12)))

    def test_without_booked(self):
        """Any slot touched by a booking is removed."""
        slots = generate_slots(time(9), time(12), 60)
        free = without_booked(slots, [(time(10, 30), time(11))])
        self.assertEqual(free, [Slot(time(9), time(10)), Slot(time(11), time(12))])

    def test_add_minutes_past_midnight(self):
        """Slots cannot run into the next day."""
        with self.assertRaises(ValueError):
            add_minutes(time(23, 30), 60)


class TimeSlotTests(TestCase):
    def setUp(self):
        self.engine = AvailabilityEngine()
        city, area = make_location()
        self.provider = make_provider("Jane", city, area, avg_service_duration=60)
        work(self.provider, Weekday.MONDAY, time(9), time(18))
        # Evaluated well before the day so the lead-time filter never applies.
        self.now = timezone.make_aware(datetime(2029, 12, 1, 8, 0))

    def test_booked_hour_is_removed(self):
        """A booked hour drops out of an otherwise full day."""
        book(self.provider, MONDAY, time(11), time(12))

        slots = self.engine.get_available_time_slots(self.provider, MONDAY, now=self.now)

        starts = [s.start for s in slots]
        self.assertEqual(len(slots), 8)
        self.assertNotIn(time(11), starts)
        self.assertEqual(starts[0], time(9))
        self.assertEqual(slots[-1], Slot(time(17), time(18)))

    def test_slots_fit_hours_and_avoid_bookings(self):
        """Every slot is inside working hours and clear of bookings."""
        booked = [(time(10, 30), time(11, 15)), (time(14), time(15))]
        for start, end in booked:
            book(self.provider, MONDAY, start, end)

        slots = self.engine.get_available_time_slots(self.provider, MONDAY, now=self.now)

        for slot in slots:
            self.assertGreaterEqual(slot.start, time(9))
            self.assertLessEqual(slot.end, time(18))
            self.assertEqual(
                datetime.combine(MONDAY, slot.end) - datetime.combine(MONDAY, slot.start),
                timedelta(minutes=60),
            )
            for start, end in booked:
                self.assertFalse(overlaps(slot.start, slot.end, start, end))
        self.assertEqual(slots, sorted(slots))

    def test_cancelled_booking_frees_slot(self):
        """Cancelled bookings do not block slots."""
        book(self.provider, MONDAY, time(11), time(12), status=ServiceProviderSchedule.STATUS_CANCELLED)
        slots = self.engine.get_available_time_slots(self.provider, MONDAY, now=self.now)
        self.assertEqual(len(slots), 9)

    def test_day_off_has_no_slots(self):
        """No working hours means no slots."""
        tuesday = MONDAY + timedelta(days=1)
        self.assertEqual(self.engine.get_available_time_slots(self.provider, tuesday, now=self.now), [])

    def test_day_marked_unavailable_has_no_slots(self):
        """A weekday switched off has no slots."""
        work(self.provider, Weekday.TUESDAY, time(9), time(18), is_available=False)
        tuesday = MONDAY + timedelta(days=1)
        self.assertEqual(self.engine.get_available_time_slots(self.provider, tuesday, now=self.now), [])

    def test_fully_booked_day(self):
        """A day with every hour booked has no slots."""
        start = time(9)
        while start < time(18):
            end = add_minutes(start, 60)
            book(self.provider, MONDAY, start, end)
            start = end
        self.assertEqual(self.engine.get_available_time_slots(self.provider, MONDAY, now=self.now), [])

    def test_same_day_lead_time(self):
        """Slots inside the lead time are hidden on the day itself."""
        self.provider.min_advance_booking_hours = 2
        self.provider.save()
        now = timezone.make_aware(datetime(2030, 1, 7, 10, 30))

        slots = self.engine.get_available_time_slots(self.provider, MONDAY, now=now)

        self.assertEqual([s.start for s in slots], [time(13), time(14), time(15), time(16), time(17)])

    def test_lead_time_ignored_on_other_days(self):
        """The lead time does not reach into tomorrow."""
        self.provider.min_advance_booking_hours = 2
        self.provider.save()
        sunday_evening = timezone.make_aware(datetime(2030, 1, 6, 23, 0))

        slots = self.engine.get_available_time_slots(self.provider, MONDAY, now=sunday_evening)

        self.assertEqual(len(slots), 9)

    def test_default_lead_time_hides_same_day_slots(self):
        """Without an explicit lead time a provider cannot be booked for later today."""
        city, area = self.provider.city, self.provider.area
        fresh = ServiceProvider.objects.create(contact_name="Fresh", category=make_category(), city=city, area=area)
        work(fresh, Weekday.MONDAY, time(9), time(18))
        self.assertEqual(fresh.min_advance_booking_hours, 24)

        early_monday = timezone.make_aware(datetime(2030, 1, 7, 8, 0))
        self.assertEqual(self.engine.get_available_time_slots(fresh, MONDAY, now=early_monday), [])

        sunday_evening = timezone.make_aware(datetime(2030, 1, 6, 23, 0))
        self.assertEqual(len(self.engine.get_available_time_slots(fresh, MONDAY, now=sunday_evening)), 9)


class AvailableProvidersTests(TestCase):
    def setUp(self):
        self.engine = AvailabilityEngine()
        self.city, self.area = make_location()
        self.s1 = make_service("Boiler installation")
        self.s2 = make_service("Old boiler removal", price="60.00")

        self.x = make_provider("X", self.city, self.area, rating=Decimal("4.50"), total_jobs_completed=100)
        self.y = make_provider("Y", self.city, self.area, rating=Decimal("4.50"), total_jobs_completed=50)
        for p in (self.x, self.y):
            link(p, self.s1)
            work(p, Weekday.MONDAY)

    def ids(self, providers):
        return [p.id for p in providers]

    def test_ordering_rating_then_jobs(self):
        """Best rating first, then most jobs completed."""
        z = make_provider("Z", self.city, self.area, rating=Decimal("4.90"))
        link(z, self.s1)

        result = self.engine.get_available_providers(self.city, self.area, "installer", [self.s1.id])

        self.assertEqual(self.ids(result), [z.id, self.x.id, self.y.id])

    def test_must_offer_every_service(self):
        """Providers must offer all requested services."""
        link(self.y, self.s2)
        result = self.engine.get_available_providers(self.city, self.area, "installer", [self.s1.id, self.s2.id])
        self.assertEqual(self.ids(result), [self.y.id])

    def test_inactive_service_link_excluded(self):
        """A switched-off service link does not count."""
        self.x.service_links.update(is_active=False)
        result = self.engine.get_available_providers(self.city, self.area, "installer", [self.s1.id])
        self.assertEqual(self.ids(result), [self.y.id])

    def test_empty_service_list_matches_nobody(self):
        """An empty service list matches no provider."""
        self.assertEqual(self.engine.get_available_providers(self.city, self.area, "installer", []), [])

    def test_no_service_constraint(self):
        """Omitting services matches any eligible provider."""
        loner = make_provider("Loner", self.city, self.area, rating=Decimal("1.00"))
        result = self.engine.get_available_providers(self.city, self.area, "installer", None)
        self.assertIn(loner.id, self.ids(result))

    def test_ineligible_providers_excluded(self):
        """Unverified, inactive, busy, full and wrong-category providers are skipped."""
        make_provider("Unverified", self.city, self.area, is_verified=False)
        make_provider("Inactive", self.city, self.area, is_active=False)
        make_provider("Busy", self.city, self.area, availability_status=ServiceProvider.STATUS_BUSY)
        make_provider("Full", self.city, self.area, max_daily_orders=2, current_daily_orders=2)
        make_provider("Delivery", self.city, self.area, category=make_category("delivery"))
        for p in ServiceProvider.objects.exclude(pk__in=[self.x.pk, self.y.pk]):
            link(p, self.s1)

        result = self.engine.get_available_providers(self.city, self.area, "installer", [self.s1.id])

        self.assertEqual(self.ids(result), [self.x.id, self.y.id])

    def test_other_area_excluded(self):
        """Providers in another area of the city are skipped."""
        other = self.city.areas.create(name="Moseley", slug="moseley")
        elsewhere = make_provider("Elsewhere", self.city, other, rating=Decimal("5.00"))
        link(elsewhere, self.s1)
        result = self.engine.get_available_providers(self.city, self.area, "installer", [self.s1.id])
        self.assertNotIn(elsewhere.id, self.ids(result))

    def test_preferred_datetime_inside_hours(self):
        """A preferred time inside working hours keeps everyone."""
        result = self.engine.get_available_providers(
            self.city, self.area, "installer", [self.s1.id], datetime.combine(MONDAY, time(10))
        )
        self.assertEqual(self.ids(result), [self.x.id, self.y.id])

    def test_preferred_datetime_overlapping_booking(self):
        """A provider booked at the preferred time is skipped."""
        book(self.x, MONDAY, time(10), time(11))
        result = self.engine.get_available_providers(
            self.city, self.area, "installer", [self.s1.id], datetime.combine(MONDAY, time(10, 30))
        )
        self.assertEqual(self.ids(result), [self.y.id])

    def test_preferred_datetime_must_finish_within_hours(self):
        """The whole job has to fit before closing."""
        # 17:30 + 60 minutes runs past 18:00.
        result = self.engine.get_available_providers(
            self.city, self.area, "installer", [self.s1.id], datetime.combine(MONDAY, time(17, 30))
        )
        self.assertEqual(result, [])

    def test_preferred_datetime_on_day_off(self):
        """Nobody works on a day without hours."""
        result = self.engine.get_available_providers(
            self.city, self.area, "installer", [self.s1.id],
            datetime.combine(MONDAY + timedelta(days=2), time(10)),
        )
        self.assertEqual(result, [])

    def test_has_available_providers(self):
        """True only when a provider offers the service."""
        self.assertTrue(self.engine.has_available_providers(self.city, self.area, "installer", [self.s1.id]))
        self.assertFalse(self.engine.has_available_providers(self.city, self.area, "installer", [self.s2.id]))
