from rest_framework import serializers

from .models import (
    Area,
    City,
    ProviderServiceLink,
    ServiceProvider,
    ServiceProviderSchedule,
    WorkingHours,
)
from .services.slot_utils import local_now


def _not_in_past(value):
    if value < local_now().date():
        raise serializers.ValidationError("Date must be today or later.")
    return value


class CitySerializer(serializers.ModelSerializer):
    class Meta:
        model = City
        fields = ["id", "name", "slug"]


class AreaSerializer(serializers.ModelSerializer):
    class Meta:
        model = Area
        fields = ["id", "city", "name", "slug", "postcode"]


class WorkingHoursSerializer(serializers.ModelSerializer):
    day = serializers.CharField(source="get_weekday_display", read_only=True)

    class Meta:
        model = WorkingHours
        fields = ["weekday", "day", "start_time", "end_time", "is_available"]


class ProviderServiceLinkSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source="service.id", read_only=True)
    name = serializers.CharField(source="service.name", read_only=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = ProviderServiceLink
        fields = ["id", "name", "price", "experience_level"]


class ServiceProviderSerializer(serializers.ModelSerializer):
    """List representation used by the availability endpoints."""
    name = serializers.CharField(source="display_name", read_only=True)
    total_jobs = serializers.IntegerField(source="total_jobs_completed", read_only=True)

    class Meta:
        model = ServiceProvider
        fields = ["id", "name", "rating", "total_jobs", "service_charge"]


class ServiceProviderDetailSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="display_name", read_only=True)
    category = serializers.CharField(source="category.name", read_only=True)
    location = serializers.CharField(read_only=True)
    services = serializers.SerializerMethodField()
    weekly_schedule = serializers.SerializerMethodField()

    class Meta:
        model = ServiceProvider
        fields = [
            "id", "name", "business_name", "description",
            "rating", "total_reviews", "total_jobs_completed", "service_charge",
            "location", "category", "avg_service_duration", "min_advance_booking_hours",
            "availability_status", "current_daily_orders", "max_daily_orders",
            "is_active", "is_verified", "services", "weekly_schedule",
        ]

    def get_services(self, obj):
        links = obj.service_links.filter(is_active=True).select_related("service")
        return ProviderServiceLinkSerializer(links, many=True).data

    def get_weekly_schedule(self, obj):
        # Every weekday appears; None means the provider does not work that day.
        out = {}
        for day, hours in obj.weekly_schedule().items():
            key = day.label.lower()
            out[key] = WorkingHoursSerializer(hours).data if hours is not None else None
        return out


class ScheduleSerializer(serializers.ModelSerializer):
    class Meta:
        model = ServiceProviderSchedule
        fields = [
            "id", "provider", "order_reference", "service_date", "start_time", "end_time",
            "status", "notes", "created_at", "cancelled_at",
        ]
        read_only_fields = ["end_time", "status", "created_at", "cancelled_at"]
        # Overlaps and races are resolved by BookingManager (409), not here.
        validators = []

    def validate_service_date(self, value):
        return _not_in_past(value)


# -------------------------
# Request bodies
# -------------------------
class CheckAvailabilityRequestSerializer(serializers.Serializer):
    """POST body for /api/services/check-availability/."""
    city_id = serializers.PrimaryKeyRelatedField(queryset=City.objects.all(), source="city")
    area_id = serializers.PrimaryKeyRelatedField(queryset=Area.objects.all(), source="area")
    service_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=True)
    service_date = serializers.DateField(required=False, allow_null=True)
    service_time = serializers.TimeField(required=False, allow_null=True, input_formats=["%H:%M"])

    def validate_service_date(self, value):
        return _not_in_past(value) if value else value

    def validate(self, attrs):
        if attrs["area"].city_id != attrs["city"].id:
            raise serializers.ValidationError({"area_id": "Area does not belong to the selected city."})
        return attrs


class AvailableSlotsRequestSerializer(serializers.Serializer):
    """Query string or body for /api/services/available-slots/."""
    provider_id = serializers.PrimaryKeyRelatedField(
        queryset=ServiceProvider.objects.all(), source="provider", required=False, allow_null=True
    )
    city_id = serializers.PrimaryKeyRelatedField(queryset=City.objects.all(), source="city")
    area_id = serializers.PrimaryKeyRelatedField(queryset=Area.objects.all(), source="area")
    service_date = serializers.DateField()
    service_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False, allow_null=True
    )

    def validate_service_date(self, value):
        return _not_in_past(value)

    def validate(self, attrs):
        city, area = attrs["city"], attrs["area"]
        if area.city_id != city.id:
            raise serializers.ValidationError({"area_id": "Area does not belong to the selected city."})
        provider = attrs.get("provider")
        if provider is not None and (provider.city_id != city.id or provider.area_id != area.id):
            raise serializers.ValidationError({"provider_id": "Provider does not serve the selected area."})
        return attrs
