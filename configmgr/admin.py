from django.contrib import admin

from .models import SystemSetting


@admin.register(SystemSetting)
class SystemSettingAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "group", "is_public", "updated_at")
    list_filter = ("group", "is_public")
    search_fields = ("key", "value")
