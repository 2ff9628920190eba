# reports/views.py

from datetime import timedelta

from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from coupons.models import Coupon
from providers.models import ServiceProviderSchedule
from sparesite.permissions import IsStaffOnly

REPORT_DAYS = 30
TOP_N = 5


class ReportsView(APIView):
    """
    GET /api/reports/summary

    Returns JSON with:
    - bookings_per_day: [{ "day": "YYYY-MM-DD", "count": N }, ...]  by the day the booking was made
    - cancellations_per_day: [{ "day": "YYYY-MM-DD", "count": N }, ...]  by cancellation date
    - busiest_providers: [{ "provider_id": X, "provider_name": "...", "count": N }, ...]  by service date
    - coupon_usage: [{ "code": "...", "used_count": N, "usage_limit": N|null }, ...]

    Window: the last REPORT_DAYS days. Only accessible by staff users.
    """
    permission_classes = [IsStaffOnly]

    def get(self, request):
        now = timezone.now()
        start = now - timedelta(days=REPORT_DAYS)
        today = timezone.localdate(now)
        start_day = today - timedelta(days=REPORT_DAYS)

        # Service dates inside the window; future bookings are not counted yet.
        recent = ServiceProviderSchedule.objects.filter(service_date__gte=start_day, service_date__lte=today)

        bookings_qs = (
            ServiceProviderSchedule.objects.filter(created_at__gte=start)
            .values(day=TruncDate("created_at"))
            .annotate(count=Count("id"))
            .order_by("day")
        )

        cancellations_qs = (
            ServiceProviderSchedule.objects
            .filter(status=ServiceProviderSchedule.STATUS_CANCELLED, cancelled_at__gte=start)
            .values(day=TruncDate("cancelled_at"))
            .annotate(count=Count("id"))
            .order_by("day")
        )

        busiest = (
            recent.exclude(status=ServiceProviderSchedule.STATUS_CANCELLED)
            .values("provider", "provider__business_name", "provider__contact_name")
            .annotate(count=Count("id"))
            .order_by("-count", "provider")[:TOP_N]
        )
        busiest_providers = [
            {
                "provider_id": row["provider"],
                "provider_name": row["provider__business_name"] or row["provider__contact_name"],
                "count": row["count"],
            }
            for row in busiest
        ]

        coupon_usage = list(
            Coupon.objects.filter(used_count__gt=0)
            .order_by("-used_count", "code")
            .values("code", "used_count", "usage_limit")[:TOP_N]
        )

        data = {
            "bookings_per_day": list(bookings_qs),
            "cancellations_per_day": list(cancellations_qs),
            "busiest_providers": busiest_providers,
            "coupon_usage": coupon_usage,
        }
        return Response(data)
