# providers/views.py
#
# Purpose:
# - Checkout-facing availability endpoints (which providers can come, and when).
# - Provider details plus staff actions (toggle active, verify, reset counter).
# - Slot booking and cancellation.
#
# Notes for developers:
# - Availability answers are advisory. POST /api/schedules/ can still lose the
#   slot to a concurrent booking; that comes back as 409 "pick another slot".
# - Business-rule "no" answers (nobody free, no slots) are 200 with empty lists.
#
import logging

from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils import timezone

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from configmgr.cache import get_setting
from sparesite.permissions import IsStaffOnly, IsStaffOrReadOnly

from .exceptions import SlotUnavailable
from .models import Area, City, ServiceProvider, ServiceProviderSchedule
from .serializers import (
    AreaSerializer,
    AvailableSlotsRequestSerializer,
    CheckAvailabilityRequestSerializer,
    ScheduleSerializer,
    ServiceProviderDetailSerializer,
    ServiceProviderSerializer,
)
from .services.assignment import AssignmentService
from .services.availability_engine import AvailabilityEngine
from .services.booking_manager import BookingManager

logger = logging.getLogger(__name__)

CHECK_AVAILABILITY_LIMIT = 5
SLOT_SEARCH_LIMIT = 3


# -------------------- Availability --------------------
class CheckAvailabilityView(APIView):
    """
    POST /api/services/check-availability/
    Body: {"city_id", "area_id", "service_ids": [..], "service_date"?, "service_time"?}
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = CheckAvailabilityRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        preferred = None
        if data.get("service_date") and data.get("service_time"):
            preferred = timezone.datetime.combine(data["service_date"], data["service_time"])

        providers = AvailabilityEngine().get_available_providers(
            data["city"],
            data["area"],
            category_slug=_default_category(),
            service_ids=data["service_ids"],
            preferred_datetime=preferred,
        )
        return Response({
            "success": True,
            "available": bool(providers),
            "provider_count": len(providers),
            "providers": ServiceProviderSerializer(providers[:CHECK_AVAILABILITY_LIMIT], many=True).data,
        })


class AvailableSlotsView(APIView):
    """
    GET or POST /api/services/available-slots/
    - with provider_id: that provider's free slots for service_date
    - without: slots of the best SLOT_SEARCH_LIMIT providers that still have any
    """
    permission_classes = [AllowAny]

    def get(self, request):
        return self._respond(request.query_params)

    def post(self, request):
        return self._respond(request.data)

    def _respond(self, payload):
        serializer = AvailableSlotsRequestSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        engine = AvailabilityEngine()
        day = data["service_date"]

        provider = data.get("provider")
        if provider is not None:
            slots = engine.get_available_time_slots(provider, day)
            return Response({
                "success": True,
                "provider": {"id": provider.id, "name": provider.display_name},
                "slots": [s.as_dict() for s in slots],
            })

        providers = engine.get_available_providers(
            data["city"],
            data["area"],
            category_slug=_default_category(),
            service_ids=data.get("service_ids"),
        )
        results = []
        for p in providers[:SLOT_SEARCH_LIMIT]:
            slots = engine.get_available_time_slots(p, day)
            if slots:
                results.append({
                    "provider": {"id": p.id, "name": p.display_name, "rating": str(p.rating)},
                    "slots": [s.as_dict() for s in slots],
                })
        return Response({"success": True, "available_providers": results})


def _default_category():
    """Provider category matched at checkout; a SystemSetting overrides the project default."""
    return get_setting("CHECKOUT_PROVIDER_CATEGORY", settings.DEFAULT_PROVIDER_CATEGORY)


# -------------------- Locations --------------------
class AreaListView(APIView):
    """GET /api/areas/?city=ID  active areas of a city."""
    permission_classes = [AllowAny]

    def get(self, request):
        city_id = (request.query_params.get("city") or "").strip()
        if not city_id.isdigit():
            return Response({"detail": "Missing or invalid 'city'."}, status=status.HTTP_400_BAD_REQUEST)
        city = get_object_or_404(City, pk=int(city_id))
        areas = Area.objects.filter(city=city, is_active=True).order_by("sort_order", "name")
        return Response({"areas": AreaSerializer(areas, many=True).data})


# -------------------- Providers --------------------
class ServiceProviderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    - GET  /api/providers/{id}/                   details with services + weekly schedule
    - POST /api/providers/{id}/toggle-status/     staff
    - POST /api/providers/{id}/verify/            staff
    - POST /api/providers/{id}/reset-daily-orders/ staff
    """
    permission_classes = [IsStaffOrReadOnly]

    def get_queryset(self):
        qs = (
            ServiceProvider.objects
            .select_related("category", "city", "area")
            .prefetch_related("working_hours")
        )
        user = getattr(self.request, "user", None)
        if user and user.is_authenticated and user.is_staff:
            return qs
        return qs.filter(is_active=True)

    def get_serializer_class(self):
        if self.action == "list":
            return ServiceProviderSerializer
        return ServiceProviderDetailSerializer

    def _detail(self, provider):
        provider.refresh_from_db()
        return Response({"success": True, "provider": ServiceProviderDetailSerializer(provider).data})

    def retrieve(self, request, *args, **kwargs):
        return Response({"success": True, "provider": self.get_serializer(self.get_object()).data})

    @action(detail=True, methods=["post"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        provider = self.get_object()
        provider.is_active = not provider.is_active
        provider.save(update_fields=["is_active"])
        logger.info("Provider %s is_active=%s", provider.pk, provider.is_active)
        return self._detail(provider)

    @action(detail=True, methods=["post"])
    def verify(self, request, pk=None):
        provider = self.get_object()
        provider.is_verified = True
        provider.verified_at = timezone.now()
        provider.save(update_fields=["is_verified", "verified_at"])
        return self._detail(provider)

    @action(detail=True, methods=["post"], url_path="reset-daily-orders")
    def reset_daily_orders(self, request, pk=None):
        provider = self.get_object()
        AssignmentService().reset_daily_orders(ServiceProvider.objects.filter(pk=provider.pk))
        return self._detail(provider)


# -------------------- Schedules --------------------
class ScheduleViewSet(mixins.CreateModelMixin,
                      mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      viewsets.GenericViewSet):
    """
    Endpoints:
    - POST /api/schedules/              book a slot (no login, like checkout)
    - POST /api/schedules/{id}/cancel/  cancel a booking
    - GET  /api/schedules/              staff listing
    """
    queryset = ServiceProviderSchedule.objects.select_related("provider").order_by("service_date", "start_time")
    serializer_class = ScheduleSerializer
    manager = BookingManager()

    def get_permissions(self):
        if self.action in ("create", "cancel"):
            return [AllowAny()]
        return [IsStaffOnly()]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            schedule = self.manager.book_slot(
                provider=data["provider"],
                service_date=data["service_date"],
                start_time=data["start_time"],
                order_reference=data.get("order_reference", ""),
                notes=data.get("notes", ""),
            )
        except SlotUnavailable as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        out = ScheduleSerializer(schedule)
        headers = self.get_success_headers(out.data)
        return Response(out.data, status=status.HTTP_201_CREATED, headers=headers)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        schedule = get_object_or_404(ServiceProviderSchedule, pk=pk)
        try:
            self.manager.cancel_booking(schedule)
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"detail": "Booking cancelled."}, status=status.HTTP_200_OK)
