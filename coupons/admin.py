from django.contrib import admin

from .models import Coupon


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = (
        "id", "code", "name", "type", "value", "minimum_amount",
        "maximum_discount", "used_count", "usage_limit", "is_active", "expires_at",
    )
    list_filter = ("type", "is_active")
    search_fields = ("code", "name")
    readonly_fields = ("created_at", "updated_at")
    # used_count stays editable here for manual corrections only.
