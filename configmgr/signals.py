# configmgr/signals.py
#
# Drop cached reads whenever a SystemSetting changes.
#
import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .cache import invalidate_setting
from .models import SystemSetting

logger = logging.getLogger(__name__)


@receiver(post_save, sender=SystemSetting)
@receiver(post_delete, sender=SystemSetting)
def invalidate_setting_cache(sender, instance, **kwargs):
    invalidate_setting(instance.key)
    logger.info("Invalidated cached setting %s", instance.key)
