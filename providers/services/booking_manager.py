"""
booking_manager.py
------------------
Coordinates booking creation, cancellation and status changes for provider
schedules.

Double-booking prevention:
- The provider row is locked (SELECT ... FOR UPDATE) while the overlap check
  and insert run, so bookings for one provider are serialized where the
  database supports row locks.
- The partial unique constraint on (provider, service_date, start_time) is the
  final arbiter. An IntegrityError from it becomes SlotUnavailable, which
  callers treat as "pick another slot", not as a server error.
"""

import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from ..exceptions import SlotUnavailable
from ..models import ServiceProvider, ServiceProviderSchedule
from .availability_engine import AvailabilityEngine
from .slot_utils import add_minutes, local_now

logger = logging.getLogger(__name__)


class BookingManager:
    def __init__(self):
        self.availability = AvailabilityEngine()

    def book_slot(self, provider, service_date, start_time, order_reference="", notes="", now=None):
        """
        Book one slot of the provider's usual length starting at `start_time`.

        Args:
            provider: ServiceProvider instance
            service_date: date
            start_time: time
            order_reference: optional order number
            notes: optional string

        Raises:
            ValueError: provider inactive, outside working hours, or inside the
                same-day lead time window.
            SlotUnavailable: overlaps an existing booking or lost the race for it.
        """
        if not provider.is_active:
            raise ValueError("This service provider is not currently active.")

        end_time = add_minutes(start_time, provider.slot_minutes)

        current = local_now(now)
        if service_date == current.date():
            earliest = current + timedelta(hours=provider.min_advance_booking_hours)
            if current.replace(year=service_date.year, month=service_date.month, day=service_date.day,
                               hour=start_time.hour, minute=start_time.minute,
                               second=0, microsecond=0) < earliest:
                raise ValueError("Selected time is too soon for this provider.")

        try:
            with transaction.atomic():
                locked = ServiceProvider.objects.select_for_update().get(pk=provider.pk)

                if not self.availability.fits_working_hours(locked, service_date, start_time, end_time):
                    raise ValueError("Selected time is outside the provider's working hours.")

                if self.availability.has_booking_conflict(locked, service_date, start_time, end_time):
                    raise SlotUnavailable("Selected time overlaps an existing booking for this provider.")

                schedule = ServiceProviderSchedule.objects.create(
                    provider=locked,
                    order_reference=order_reference or "",
                    service_date=service_date,
                    start_time=start_time,
                    end_time=end_time,
                    notes=notes or "",
                )
        except IntegrityError:
            logger.info(
                "Slot race lost for provider=%s %s %s", provider.pk, service_date, start_time
            )
            raise SlotUnavailable("This slot is no longer available. Please pick another slot.")

        logger.info(
            "Booked provider=%s %s %s-%s (order=%s)",
            provider.pk, service_date, start_time, end_time, order_reference or "-",
        )
        return schedule

    @transaction.atomic
    def cancel_booking(self, schedule):
        if schedule.status == ServiceProviderSchedule.STATUS_CANCELLED:
            raise ValueError("This booking is already cancelled.")
        if schedule.status == ServiceProviderSchedule.STATUS_COMPLETED:
            raise ValueError("A completed booking cannot be cancelled.")

        schedule.status = ServiceProviderSchedule.STATUS_CANCELLED
        schedule.cancelled_at = timezone.now()
        schedule.save(update_fields=["status", "cancelled_at"])
        logger.info("Cancelled booking %s for provider=%s", schedule.pk, schedule.provider_id)
        return schedule

    @transaction.atomic
    def start_booking(self, schedule):
        if schedule.status != ServiceProviderSchedule.STATUS_SCHEDULED:
            raise ValueError("Only a scheduled booking can be started.")
        schedule.status = ServiceProviderSchedule.STATUS_IN_PROGRESS
        schedule.save(update_fields=["status"])
        return schedule

    @transaction.atomic
    def complete_booking(self, schedule):
        if schedule.status not in (
            ServiceProviderSchedule.STATUS_SCHEDULED,
            ServiceProviderSchedule.STATUS_IN_PROGRESS,
        ):
            raise ValueError("Only an open booking can be completed.")
        schedule.status = ServiceProviderSchedule.STATUS_COMPLETED
        schedule.save(update_fields=["status"])
        ServiceProvider.objects.filter(pk=schedule.provider_id).update(
            total_jobs_completed=F("total_jobs_completed") + 1
        )
        return schedule
