# catalog/urls.py
#
# - /api/products/                 product listing (+ /{id}/services/)
# - /api/product-services/         service catalog CRUD
# - /api/services/calculate-cost/  cross-product service cost
#
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ProductViewSet, ProductServiceViewSet, ServiceCostView

router = DefaultRouter()
router.register(r"products", ProductViewSet, basename="product")
router.register(r"product-services", ProductServiceViewSet, basename="product-service")

urlpatterns = [
    path("", include(router.urls)),
    path("services/calculate-cost/", ServiceCostView.as_view(), name="service-calculate-cost"),
]
