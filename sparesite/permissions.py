# sparesite/permissions.py
#
# Shared DRF permissions.
# - IsStaffOrReadOnly: anyone reads, staff writes (catalog, providers).
# - IsStaffOnly: back-office endpoints (coupons admin, reports).

from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsStaffOrReadOnly(BasePermission):
    """
    Read: anyone
    Write: staff only
    """
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class IsStaffOnly(BasePermission):
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_staff)
