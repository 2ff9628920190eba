# providers/models.py
#
# Purpose:
# - Service providers (installers, delivery drivers, support engineers), where
#   they work, which services they perform, when they work, and what is booked.
#
# Design highlights:
# - WorkingHours: one row per (provider, weekday). ServiceProvider.weekly_schedule()
#   turns them into a fixed 7-day mapping keyed by Weekday.
# - ProviderServiceLink: provider <-> ProductService with an optional per-provider
#   price and an experience level.
# - ServiceProviderSchedule: a booked slot. A partial unique constraint on
#   (provider, service_date, start_time) over non-cancelled rows is the final
#   guard against double booking.
#
# Notes for developers:
# - Intervals are half-open [start, end): a slot ending at 11:00 does not clash
#   with a booking starting at 11:00.
#

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from catalog.services.pricing import effective_value


# -------------------------
# Locations
# -------------------------
class City(models.Model):
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    county = models.CharField(max_length=200, blank=True)
    region = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]
        verbose_name_plural = "cities"

    def __str__(self):
        return self.name


class Area(models.Model):
    city = models.ForeignKey(City, on_delete=models.CASCADE, related_name="areas")
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200)
    postcode = models.CharField(max_length=20, blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]
        constraints = [
            models.UniqueConstraint(fields=["city", "slug"], name="uniq_area_slug_per_city"),
        ]

    def __str__(self):
        return f"{self.city.name} - {self.name}"


class ServiceProviderCategory(models.Model):
    """installer / delivery / support ..."""
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]
        verbose_name_plural = "service provider categories"

    def __str__(self):
        return self.name


# -------------------------
# Service provider
# -------------------------
class ServiceProviderQuerySet(models.QuerySet):
    def available(self):
        """Active, verified, marked available and below today's order cap."""
        return self.filter(
            is_active=True,
            is_verified=True,
            availability_status=ServiceProvider.STATUS_AVAILABLE,
            current_daily_orders__lt=models.F("max_daily_orders"),
        )

    def by_location(self, city, area=None):
        qs = self.filter(city=city)
        if area is not None:
            qs = qs.filter(area=area)
        return qs

    def by_category_slug(self, slug):
        return self.filter(category__slug=slug)


class ServiceProvider(models.Model):
    """
    An installer/delivery/support agent who can be assigned to orders.

    Rules:
    - eligible for assignment only when is_available() holds
    - current_daily_orders never exceeds max_daily_orders (see claim_daily_order)
    """
    STATUS_AVAILABLE = "available"
    STATUS_BUSY = "busy"
    STATUS_OFFLINE = "offline"
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, "Available"),
        (STATUS_BUSY, "Busy"),
        (STATUS_OFFLINE, "Offline"),
    ]

    business_name = models.CharField(max_length=255, blank=True)
    contact_name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    contact_number = models.CharField(max_length=30, blank=True)
    description = models.TextField(blank=True)

    category = models.ForeignKey(ServiceProviderCategory, on_delete=models.PROTECT, related_name="providers")
    city = models.ForeignKey(City, on_delete=models.PROTECT, related_name="providers")
    area = models.ForeignKey(Area, on_delete=models.PROTECT, related_name="providers")

    service_charge = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00"), validators=[MinValueValidator(0)]
    )
    availability_status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)
    max_daily_orders = models.PositiveIntegerField(default=5, validators=[MinValueValidator(1), MaxValueValidator(50)])
    current_daily_orders = models.PositiveIntegerField(default=0)

    rating = models.DecimalField(
        max_digits=3, decimal_places=2, default=Decimal("0.00"),
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    total_jobs_completed = models.PositiveIntegerField(default=0)
    total_reviews = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)
    is_verified = models.BooleanField(default=False)
    verified_at = models.DateTimeField(null=True, blank=True)

    avg_service_duration = models.PositiveIntegerField(
        default=60, validators=[MinValueValidator(1)], help_text="Slot length in minutes."
    )
    min_advance_booking_hours = models.PositiveIntegerField(
        default=24, help_text="Same-day bookings must start at least this many hours from now."
    )

    services = models.ManyToManyField(
        "catalog.ProductService", through="ProviderServiceLink", related_name="providers", blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ServiceProviderQuerySet.as_manager()

    class Meta:
        ordering = ["-rating", "-total_jobs_completed", "id"]

    def __str__(self):
        return self.display_name

    def clean(self):
        if self.area_id and self.city_id and self.area.city_id != self.city_id:
            raise ValidationError({"area": "Area must belong to the selected city."})
        if self.current_daily_orders > self.max_daily_orders:
            raise ValidationError({"current_daily_orders": "Cannot exceed max daily orders."})

    @property
    def display_name(self):
        return self.business_name or self.contact_name

    @property
    def location(self):
        return f"{self.area.name}, {self.city.name}"

    @property
    def slot_minutes(self):
        return self.avg_service_duration or settings.DEFAULT_SERVICE_DURATION

    def is_available(self) -> bool:
        return (
            self.is_active
            and self.is_verified
            and self.availability_status == self.STATUS_AVAILABLE
            and self.current_daily_orders < self.max_daily_orders
        )

    def update_rating(self, new_rating):
        """Fold one review (1..5) into the running average."""
        new_rating = Decimal(str(new_rating))
        if not Decimal("1") <= new_rating <= Decimal("5"):
            raise ValueError("Rating must be between 1 and 5.")
        total = self.rating * self.total_reviews + new_rating
        self.total_reviews += 1
        self.rating = (total / self.total_reviews).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        self.save(update_fields=["rating", "total_reviews"])

    # -------------------------
    # Working hours
    # -------------------------
    def weekly_schedule(self):
        """
        Fixed 7-entry mapping {Weekday: WorkingHours or None}.
        Days without a row map to None (provider does not work).
        """
        rows = {wh.weekday: wh for wh in self.working_hours.all()}
        return {day: rows.get(day.value) for day in Weekday}

    def working_hours_for(self, day):
        """WorkingHours for a date's weekday, or None if not configured."""
        for wh in self.working_hours.all():
            if wh.weekday == day.weekday():
                return wh
        return None


# -------------------------
# Weekly working hours
# -------------------------
class Weekday(models.IntegerChoices):
    MONDAY = 0, "Monday"
    TUESDAY = 1, "Tuesday"
    WEDNESDAY = 2, "Wednesday"
    THURSDAY = 3, "Thursday"
    FRIDAY = 4, "Friday"
    SATURDAY = 5, "Saturday"
    SUNDAY = 6, "Sunday"


class WorkingHours(models.Model):
    provider = models.ForeignKey(ServiceProvider, on_delete=models.CASCADE, related_name="working_hours")
    weekday = models.PositiveSmallIntegerField(choices=Weekday.choices)
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_available = models.BooleanField(default=True)

    class Meta:
        ordering = ["provider_id", "weekday"]
        verbose_name_plural = "working hours"
        constraints = [
            models.UniqueConstraint(fields=["provider", "weekday"], name="uniq_working_hours_per_day"),
        ]

    def __str__(self):
        label = Weekday(self.weekday).label
        if not self.is_available:
            return f"{label}: off"
        return f"{label}: {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({"end_time": "End time must be after start time."})


# -------------------------
# Provider <-> service
# -------------------------
class ProviderServiceLink(models.Model):
    LEVEL_BEGINNER = "beginner"
    LEVEL_INTERMEDIATE = "intermediate"
    LEVEL_EXPERT = "expert"
    LEVEL_CHOICES = [
        (LEVEL_BEGINNER, "Beginner"),
        (LEVEL_INTERMEDIATE, "Intermediate"),
        (LEVEL_EXPERT, "Expert"),
    ]

    provider = models.ForeignKey(ServiceProvider, on_delete=models.CASCADE, related_name="service_links")
    service = models.ForeignKey("catalog.ProductService", on_delete=models.CASCADE, related_name="provider_links")
    custom_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    experience_level = models.CharField(max_length=20, choices=LEVEL_CHOICES, default=LEVEL_INTERMEDIATE)
    is_active = models.BooleanField(default=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["provider", "service"], name="uniq_provider_service"),
        ]

    def __str__(self):
        return f"{self.provider} - {self.service}"

    @property
    def price(self):
        return effective_value(self.service.price, self.custom_price)


# -------------------------
# Booked slots
# -------------------------
class ServiceProviderScheduleQuerySet(models.QuerySet):
    def not_cancelled(self):
        return self.exclude(status=ServiceProviderSchedule.STATUS_CANCELLED)

    def for_day(self, provider, day):
        return self.filter(provider=provider, service_date=day)


class ServiceProviderSchedule(models.Model):
    """
    A booked slot for a provider.

    status: scheduled -> in_progress -> completed, or cancelled.
    """
    STATUS_SCHEDULED = "scheduled"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, "Scheduled"),
        (STATUS_IN_PROGRESS, "In progress"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    provider = models.ForeignKey(ServiceProvider, on_delete=models.CASCADE, related_name="schedules")
    order_reference = models.CharField(max_length=64, blank=True)
    service_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = ServiceProviderScheduleQuerySet.as_manager()

    class Meta:
        ordering = ["service_date", "start_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "service_date", "start_time"],
                condition=~Q(status="cancelled"),
                name="uniq_active_schedule_start",
            ),
        ]

    def __str__(self):
        return f"{self.provider} on {self.service_date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({"end_time": "End time must be after start time."})

    def conflicts_with(self, start, end) -> bool:
        """Half-open overlap with [start, end)."""
        return start < self.end_time and end > self.start_time

    @property
    def duration_minutes(self):
        start = datetime.combine(self.service_date, self.start_time)
        end = datetime.combine(self.service_date, self.end_time)
        return int((end - start) / timedelta(minutes=1))
