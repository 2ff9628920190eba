from django.contrib import admin
from django.utils import timezone

from .models import (
    Area,
    City,
    ProviderServiceLink,
    ServiceProvider,
    ServiceProviderCategory,
    ServiceProviderSchedule,
    WorkingHours,
)
from .services.assignment import AssignmentService


@admin.register(City)
class CityAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "county", "region", "is_active", "sort_order")
    list_filter = ("is_active", "region")
    search_fields = ("name",)
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Area)
class AreaAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "city", "postcode", "is_active")
    list_filter = ("is_active", "city")
    search_fields = ("name", "postcode")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(ServiceProviderCategory)
class ServiceProviderCategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "is_active")
    prepopulated_fields = {"slug": ("name",)}


class WorkingHoursInline(admin.TabularInline):
    model = WorkingHours
    extra = 0


class ProviderServiceLinkInline(admin.TabularInline):
    model = ProviderServiceLink
    extra = 0
    autocomplete_fields = ("service",)


@admin.register(ServiceProvider)
class ServiceProviderAdmin(admin.ModelAdmin):
    list_display = (
        "id", "display_name", "category", "city", "area", "availability_status",
        "current_daily_orders", "max_daily_orders", "rating", "is_active", "is_verified",
    )
    list_filter = ("availability_status", "is_active", "is_verified", "category", "city")
    search_fields = ("business_name", "contact_name", "email")
    inlines = [WorkingHoursInline, ProviderServiceLinkInline]
    actions = ["activate", "deactivate", "verify", "reset_daily_orders"]

    @admin.action(description="Activate selected providers")
    def activate(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} provider(s) activated.")

    @admin.action(description="Deactivate selected providers")
    def deactivate(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} provider(s) deactivated.")

    @admin.action(description="Verify selected providers")
    def verify(self, request, queryset):
        updated = queryset.update(is_verified=True, verified_at=timezone.now())
        self.message_user(request, f"{updated} provider(s) verified.")

    @admin.action(description="Reset daily order counters")
    def reset_daily_orders(self, request, queryset):
        count = AssignmentService().reset_daily_orders(queryset)
        self.message_user(request, f"Daily orders reset for {count} provider(s).")


@admin.register(ServiceProviderSchedule)
class ServiceProviderScheduleAdmin(admin.ModelAdmin):
    list_display = ("id", "provider", "service_date", "start_time", "end_time", "status", "order_reference")
    list_filter = ("status", "service_date")
    search_fields = ("order_reference", "provider__business_name", "provider__contact_name")
