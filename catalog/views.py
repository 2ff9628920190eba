# catalog/views.py
#
# Purpose:
# - Read-only product API with the per-product service list.
# - Service catalog CRUD (writes are staff-only).
# - Cost aggregation endpoint used by the checkout page.
#
from django.shortcuts import get_object_or_404

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from sparesite.permissions import IsStaffOrReadOnly

from .models import Product, ProductService
from .serializers import ProductSerializer, ProductServiceSerializer, ServiceCostRequestSerializer
from .services.service_calculation import calculate_service_cost, services_for_product


def _money(value):
    return str(value)


class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Public product listing (active products only).
    - GET /api/products/{id}/services/  services with effective terms
    """
    serializer_class = ProductSerializer

    def get_queryset(self):
        qs = Product.objects.select_related("category", "brand").order_by("id")
        return qs.filter(status=Product.STATUS_ACTIVE)

    @action(detail=True, methods=["get"])
    def services(self, request, pk=None):
        product = get_object_or_404(Product.objects.select_related("category"), pk=pk)
        services = services_for_product(product)
        for item in services:
            item["price"] = _money(item["price"])
        return Response({
            "product": {
                "id": product.id,
                "name": product.name,
                "category": product.category.name if product.category else None,
            },
            "services": services,
        })


class ProductServiceViewSet(viewsets.ModelViewSet):
    """
    Service catalog:
    - Anyone can list active services.
    - Only staff can create/update/delete services (IsStaffOrReadOnly).
    """
    serializer_class = ProductServiceSerializer
    permission_classes = [IsStaffOrReadOnly]

    def get_queryset(self):
        user = getattr(self.request, "user", None)
        qs = ProductService.objects.all().order_by("sort_order", "id")
        if user and user.is_authenticated and user.is_staff:
            return qs
        return qs.filter(is_active=True)


class ServiceCostView(APIView):
    """
    POST /api/services/calculate-cost/
    Body: {"service_ids": [..], "product_ids": [..]}
    """

    def post(self, request):
        serializer = ServiceCostRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = calculate_service_cost(data["service_ids"], data["product_ids"])
        except (ProductService.DoesNotExist, Product.DoesNotExist) as e:
            raise NotFound(str(e))

        details = [{**row, "price": _money(row["price"])} for row in result["details"]]
        return Response(
            {"success": True, "total_cost": _money(result["total"]), "details": details},
            status=status.HTTP_200_OK,
        )
