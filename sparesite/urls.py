# sparesite/urls.py
#
# Purpose:
# - Project URL router.
# - Django admin is the back office; everything else is JSON under /api/.
#
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static


urlpatterns = [
    # Django admin
    path("admin/", admin.site.urls),

    # =====
    # API's
    # =====
    path("api/", include("catalog.urls")),
    path("api/", include("providers.urls")),
    path("api/", include("coupons.urls")),
    path("api/", include("configmgr.urls")),
    path("api/reports/", include("reports.urls")),
]

# Static files in DEBUG (dev only). In production, serve via web server / CDN.
if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
