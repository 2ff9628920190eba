from unittest import mock

from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APIClient

from .cache import get_setting, public_settings, remember
from .models import SystemSetting


class RememberTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_loader_runs_once(self):
        loader = mock.Mock(return_value=42)
        self.assertEqual(remember("answer", 60, loader), 42)
        self.assertEqual(remember("answer", 60, loader), 42)
        loader.assert_called_once_with()

    def test_falsy_values_are_cached(self):
        loader = mock.Mock(return_value=0)
        remember("zero", 60, loader)
        remember("zero", 60, loader)
        self.assertEqual(loader.call_count, 1)


class SettingCacheTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_get_setting_default(self):
        self.assertEqual(get_setting("SUPPORT_PHONE", "n/a"), "n/a")

    def test_get_setting_hits_database_once(self):
        SystemSetting.objects.create(key="SUPPORT_PHONE", value="0121 496 0000")
        self.assertEqual(get_setting("SUPPORT_PHONE"), "0121 496 0000")
        with self.assertNumQueries(0):
            self.assertEqual(get_setting("SUPPORT_PHONE"), "0121 496 0000")

    def test_missing_setting_is_cached_until_created(self):
        self.assertIsNone(get_setting("BANNER"))
        with self.assertNumQueries(0):
            self.assertIsNone(get_setting("BANNER"))
        SystemSetting.objects.create(key="BANNER", value="Free fitting this week")
        self.assertEqual(get_setting("BANNER"), "Free fitting this week")

    def test_save_invalidates(self):
        setting = SystemSetting.objects.create(key="SUPPORT_PHONE", value="old", is_public=True)
        self.assertEqual(get_setting("SUPPORT_PHONE"), "old")
        self.assertEqual(public_settings(), {"SUPPORT_PHONE": "old"})

        setting.value = "new"
        setting.save()

        self.assertEqual(get_setting("SUPPORT_PHONE"), "new")
        self.assertEqual(public_settings(), {"SUPPORT_PHONE": "new"})

    def test_delete_invalidates(self):
        setting = SystemSetting.objects.create(key="BANNER", value="Sale", is_public=True)
        self.assertEqual(public_settings(), {"BANNER": "Sale"})
        setting.delete()
        self.assertEqual(public_settings(), {})


class PublicSettingsApiTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_only_public_settings_are_exposed(self):
        SystemSetting.objects.create(key="SUPPORT_PHONE", value="0121 496 0000", is_public=True)
        SystemSetting.objects.create(key="SMTP_PASSWORD", value="secret")
        resp = self.client.get("/api/settings/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"settings": {"SUPPORT_PHONE": "0121 496 0000"}})
