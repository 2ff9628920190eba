"""
availability_engine.py
----------------------
Finds service providers who can take a job and computes their free slots.

Provider matching:
1) location (city + area) and optional category slug,
2) active, verified, status "available", below today's order cap,
3) linked (active link) to every requested service,
4) optionally free at a preferred date/time: working that weekday, the
   requested interval inside working hours, and no overlapping booking.
Ordering is rating desc, then jobs completed desc, then id.

Slot computation (per provider, per day):
- working window for the weekday -> fixed-length candidate slots
- today only: drop slots starting before now + min_advance_booking_hours
- drop slots overlapping a non-cancelled booking
All intervals are half-open [start, end).

The result is advisory. The unique constraint on bookings is what finally
prevents a double booking (see BookingManager).
"""

import logging
from datetime import timedelta

from ..models import ServiceProvider, ServiceProviderSchedule
from .slot_utils import (
    add_minutes,
    generate_slots,
    local_now,
    not_before,
    without_booked,
)

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    def _booked_intervals(self, provider, day):
        return list(
            ServiceProviderSchedule.objects
            .not_cancelled()
            .for_day(provider, day)
            .values_list("start_time", "end_time")
        )

    def has_booking_conflict(self, provider, day, start_time, end_time, exclude_id=None) -> bool:
        """
        Conflict if any non-cancelled booking for `provider` on `day` satisfies:
            existing_start < new_end AND existing_end > new_start
        """
        qs = (
            ServiceProviderSchedule.objects
            .not_cancelled()
            .for_day(provider, day)
            .filter(start_time__lt=end_time, end_time__gt=start_time)
        )
        if exclude_id is not None:
            qs = qs.exclude(pk=exclude_id)
        return qs.exists()

    def fits_working_hours(self, provider, day, start_time, end_time) -> bool:
        hours = provider.working_hours_for(day)
        if hours is None or not hours.is_available:
            return False
        return hours.start_time <= start_time and end_time <= hours.end_time

    def is_slot_available_for_provider(self, provider, day, start_time, end_time) -> bool:
        if not self.fits_working_hours(provider, day, start_time, end_time):
            return False
        if self.has_booking_conflict(provider, day, start_time, end_time):
            return False
        return True

    def is_free_at(self, provider, preferred_datetime) -> bool:
        """Can `provider` start one job of their usual length at `preferred_datetime`?"""
        when = local_now(preferred_datetime)
        try:
            end_time = add_minutes(when.time(), provider.slot_minutes)
        except ValueError:
            return False
        return self.is_slot_available_for_provider(provider, when.date(), when.time(), end_time)

    # -------------------------
    # Providers
    # -------------------------
    def get_available_providers(self, city, area, category_slug=None, service_ids=None, preferred_datetime=None):
        """
        Providers able to perform every service in `service_ids` at the location.

        Args:
            city, area: City/Area instances or ids
            category_slug: e.g. "installer"; None means any category
            service_ids: ProductService ids. None skips the service check;
                an empty list matches nobody.
            preferred_datetime: optional datetime the job should start at

        Returns:
            list[ServiceProvider], best first
        """
        if service_ids is not None and len(service_ids) == 0:
            return []

        qs = ServiceProvider.objects.available().by_location(city, area)
        if category_slug:
            qs = qs.by_category_slug(category_slug)

        # One join per service: the provider must hold an active link to each.
        for service_id in sorted(set(service_ids or [])):
            qs = qs.filter(service_links__service_id=service_id, service_links__is_active=True)

        qs = (
            qs.distinct()
            .select_related("category", "city", "area")
            .prefetch_related("working_hours")
            .order_by("-rating", "-total_jobs_completed", "id")
        )
        providers = list(qs)

        if preferred_datetime is not None:
            providers = [p for p in providers if self.is_free_at(p, preferred_datetime)]

        logger.debug(
            "Available providers city=%s area=%s category=%s services=%s at=%s -> %s",
            city, area, category_slug, service_ids, preferred_datetime, [p.id for p in providers],
        )
        return providers

    def has_available_providers(self, city, area, category_slug=None, service_ids=None, preferred_datetime=None) -> bool:
        return bool(self.get_available_providers(city, area, category_slug, service_ids, preferred_datetime))

    # -------------------------
    # Slots
    # -------------------------
    def get_available_time_slots(self, provider, day, now=None):
        """
        Free slots for `provider` on `day`, in chronological order.

        Returns:
            list[Slot]; empty when the provider does not work that day or is fully booked.
        """
        hours = provider.working_hours_for(day)
        if hours is None or not hours.is_available:
            return []

        slots = generate_slots(hours.start_time, hours.end_time, provider.slot_minutes)

        current = local_now(now)
        if day == current.date():
            earliest = current + timedelta(hours=provider.min_advance_booking_hours)
            slots = not_before(slots, day, earliest)

        return without_booked(slots, self._booked_intervals(provider, day))
