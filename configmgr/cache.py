"""
cache.py
--------
Read-through caching for site settings on top of Django's cache framework.

remember(key, ttl, loader) returns the cached value for `key`, or calls
`loader()` and stores its result for `ttl` seconds. Callers never talk to the
cache backend directly, so swapping locmem for Redis/Memcached is a settings
change only.

Setting reads (get_setting / public_settings) are invalidated by the
post_save / post_delete handlers in configmgr/signals.py.
"""

import logging

from django.conf import settings
from django.core.cache import cache

from .models import SystemSetting

logger = logging.getLogger(__name__)

KEY_PREFIX = "configmgr"
PUBLIC_SETTINGS_KEY = f"{KEY_PREFIX}:public"

# Stored in place of None so a missing setting is cached too.
_MISSING = "__missing__"


def _ttl(ttl=None):
    return settings.SETTINGS_CACHE_TTL if ttl is None else ttl


def remember(key, ttl, loader):
    value = cache.get(key, _MISSING)
    if value != _MISSING:
        return value
    logger.debug("Cache miss for %s", key)
    value = loader()
    cache.set(key, value, _ttl(ttl))
    return value


def forget(*keys):
    cache.delete_many(list(keys))


def setting_key(name):
    return f"{KEY_PREFIX}:setting:{name}"


def get_setting(name, default=None, ttl=None):
    def load():
        row = SystemSetting.objects.filter(key=name).values_list("value", flat=True).first()
        return _MISSING if row is None else row

    value = remember(setting_key(name), _ttl(ttl), load)
    return default if value == _MISSING else value


def public_settings(ttl=None):
    """{key: value} of every public setting."""
    return remember(
        PUBLIC_SETTINGS_KEY,
        _ttl(ttl),
        lambda: dict(SystemSetting.objects.filter(is_public=True).values_list("key", "value")),
    )


def invalidate_setting(name):
    forget(setting_key(name), PUBLIC_SETTINGS_KEY)
