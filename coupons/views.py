# coupons/views.py
#
# Purpose:
# - Back-office coupon CRUD (staff only).
# - Public "apply coupon" check used by the checkout page.
# - Redemption endpoint for the checkout/POS flow (409 when the last use is gone).
#
from django.db.models import Q

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from sparesite.money import format_money
from sparesite.permissions import IsStaffOnly

from .exceptions import CouponUsageExhausted
from .models import Coupon
from .serializers import ApplyCouponSerializer, CouponSerializer, RedeemCouponSerializer
from .services.coupon_manager import CouponManager


class CouponViewSet(viewsets.ModelViewSet):
    """
    Endpoints:
    - /api/coupons/                 CRUD (staff)
    - GET  /api/coupons/valid/      currently valid coupons (staff, autocomplete)
    - POST /api/coupons/apply/      validate a code against a cart total (public)
    - POST /api/coupons/redeem/     count one use (staff / checkout)

    Filters: ?search=, ?type=, ?is_active=
    """
    serializer_class = CouponSerializer
    permission_classes = [IsStaffOnly]
    manager = CouponManager()

    def get_queryset(self):
        qs = Coupon.objects.all().order_by("-created_at", "-id")
        params = self.request.query_params

        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(Q(code__icontains=search) | Q(name__icontains=search))

        coupon_type = (params.get("type") or "").strip()
        if coupon_type:
            qs = qs.filter(type=coupon_type)

        is_active = params.get("is_active")
        if is_active in ("true", "1", "false", "0"):
            qs = qs.filter(is_active=is_active in ("true", "1"))
        return qs

    @action(detail=False, methods=["get"])
    def valid(self, request):
        qs = Coupon.objects.valid().order_by("code")
        return Response(CouponSerializer(qs, many=True).data)

    @action(detail=False, methods=["post"], permission_classes=[AllowAny])
    def apply(self, request):
        serializer = ApplyCouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self.manager.apply(data["code"], data["cart_total"])
        except Coupon.DoesNotExist:
            return Response(
                {"success": False, "message": "Invalid or expired coupon code."},
                status=status.HTTP_404_NOT_FOUND,
            )

        message = (
            f"Coupon applied: {format_money(result['discount'])} off." if result["valid"]
            else "Coupon cannot be applied to this order."
        )
        return Response({
            "success": result["valid"],
            "message": message,
            "code": result["code"],
            "valid": result["valid"],
            "discount": str(result["discount"]),
            "cart_total": str(result["cart_total"]),
            "total_after_discount": str(result["total_after_discount"]),
        })

    @action(detail=False, methods=["post"])
    def redeem(self, request):
        serializer = RedeemCouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            coupon = self.manager.lookup(serializer.validated_data["code"])
        except Coupon.DoesNotExist:
            return Response({"detail": "Coupon not found."}, status=status.HTTP_404_NOT_FOUND)

        try:
            coupon = self.manager.redeem(coupon)
        except CouponUsageExhausted as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(CouponSerializer(coupon).data)
