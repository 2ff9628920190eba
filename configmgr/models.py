from django.db import models


class SystemSetting(models.Model):
    """
    Simple key/value settings store.
    Example keys:
      - CHECKOUT_PROVIDER_CATEGORY (e.g., 'installer')
      - SUPPORT_PHONE (e.g., '0121 496 0000')

    is_public settings are served to the storefront via /api/settings/.
    """
    key = models.CharField(max_length=100, unique=True)
    value = models.CharField(max_length=500, blank=True)
    group = models.CharField(max_length=50, default="general")
    is_public = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["group", "key"]

    def __str__(self):
        return f"{self.key}={self.value}"
