# configmgr/apps.py
from django.apps import AppConfig


class ConfigmgrConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "configmgr"

    def ready(self):
        # Import signal handlers so cache invalidation is registered at startup
        import configmgr.signals  # noqa: F401
