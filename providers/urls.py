# providers/urls.py
#
# - /api/services/check-availability/  providers for a location + services
# - /api/services/available-slots/     free slots (one provider or the top 3)
# - /api/providers/{id}/               provider details + staff actions
# - /api/areas/?city=ID                areas of a city
# - /api/schedules/                    book / cancel slots
#
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import (
    AreaListView,
    AvailableSlotsView,
    CheckAvailabilityView,
    ScheduleViewSet,
    ServiceProviderViewSet,
)

router = SimpleRouter()
router.register(r"providers", ServiceProviderViewSet, basename="provider")
router.register(r"schedules", ScheduleViewSet, basename="schedule")

urlpatterns = [
    path("", include(router.urls)),
    path("services/check-availability/", CheckAvailabilityView.as_view(), name="service-check-availability"),
    path("services/available-slots/", AvailableSlotsView.as_view(), name="service-available-slots"),
    path("areas/", AreaListView.as_view(), name="area-list"),
]
