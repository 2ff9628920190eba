from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import CouponViewSet

router = SimpleRouter()
router.register(r"coupons", CouponViewSet, basename="coupon")

urlpatterns = [path("", include(router.urls))]
