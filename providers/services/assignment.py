"""
assignment.py
-------------
Daily order counting and automatic provider assignment.

Counting:
- claim_daily_order() increments current_daily_orders with a conditional
  UPDATE, so the counter never passes max_daily_orders even under concurrent
  checkouts. Reaching the cap flips the provider to "busy".
- release_daily_order() undoes one claim (order cancelled).
- reset_daily_orders() zeroes every counter; run nightly via the
  `reset_daily_orders` management command.

Auto-assignment prefers the least loaded provider in the customer's area,
then falls back to the whole city.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.db.models import F

from configmgr.cache import get_setting

from ..exceptions import ProviderAtCapacity
from ..models import ServiceProvider

logger = logging.getLogger(__name__)


class AssignmentService:
    @transaction.atomic
    def claim_daily_order(self, provider):
        updated = (
            ServiceProvider.objects
            .filter(pk=provider.pk, current_daily_orders__lt=F("max_daily_orders"))
            .update(current_daily_orders=F("current_daily_orders") + 1)
        )
        if not updated:
            raise ProviderAtCapacity(f"{provider} has no capacity left today.")

        ServiceProvider.objects.filter(
            pk=provider.pk,
            current_daily_orders__gte=F("max_daily_orders"),
            availability_status=ServiceProvider.STATUS_AVAILABLE,
        ).update(availability_status=ServiceProvider.STATUS_BUSY)

        provider.refresh_from_db(fields=["current_daily_orders", "availability_status"])
        logger.info(
            "Provider %s claimed order %s/%s",
            provider.pk, provider.current_daily_orders, provider.max_daily_orders,
        )
        return provider

    @transaction.atomic
    def release_daily_order(self, provider):
        ServiceProvider.objects.filter(pk=provider.pk, current_daily_orders__gt=0).update(
            current_daily_orders=F("current_daily_orders") - 1
        )
        ServiceProvider.objects.filter(
            pk=provider.pk,
            availability_status=ServiceProvider.STATUS_BUSY,
            current_daily_orders__lt=F("max_daily_orders"),
        ).update(availability_status=ServiceProvider.STATUS_AVAILABLE)
        provider.refresh_from_db(fields=["current_daily_orders", "availability_status"])
        return provider

    def reset_daily_orders(self, queryset=None) -> int:
        """
        Zero the counters. Busy providers become available again; offline
        ones stay offline.

        Returns the number of providers whose counter was reset.
        """
        qs = queryset if queryset is not None else ServiceProvider.objects.all()
        with transaction.atomic():
            count = qs.update(current_daily_orders=0)
            qs.filter(availability_status=ServiceProvider.STATUS_BUSY).update(
                availability_status=ServiceProvider.STATUS_AVAILABLE
            )
        logger.info("Reset daily orders for %s providers", count)
        return count

    def candidates(self, city, area=None, category_slug=None):
        qs = ServiceProvider.objects.available().by_location(city, area)
        if category_slug:
            qs = qs.by_category_slug(category_slug)
        return qs.order_by("current_daily_orders", "-rating", "id")

    def auto_assign_provider(self, city, area, category_slug=None):
        """
        Pick and claim the least loaded provider for a location.

        Tries the area first, then any provider in the city. A candidate that
        fills up between the query and the claim is skipped.

        Returns:
            ServiceProvider, or None when nobody has capacity.
        """
        category_slug = category_slug or get_setting(
            "CHECKOUT_PROVIDER_CATEGORY", settings.DEFAULT_PROVIDER_CATEGORY
        )

        for scope_area in (area, None):
            for provider in self.candidates(city, scope_area, category_slug):
                try:
                    return self.claim_daily_order(provider)
                except ProviderAtCapacity:
                    continue

        logger.warning("No provider available for city=%s area=%s category=%s", city, area, category_slug)
        return None
