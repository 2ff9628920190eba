"""
coupon_manager.py
-----------------
Coordinates coupon lookup, application to a cart total and redemption.

- lookup(code): case-insensitive; unknown codes raise Coupon.DoesNotExist.
- apply(code, cart_total): a result dict; an unusable coupon is valid=False with
  a zero discount, never an exception.
- redeem(coupon): compare-and-increment of used_count in one UPDATE. Losing the
  race for the last use raises CouponUsageExhausted.
"""

import logging

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from sparesite.money import round_money, to_decimal

from ..exceptions import CouponUsageExhausted
from ..models import Coupon

logger = logging.getLogger(__name__)


class CouponManager:
    def lookup(self, code):
        code = (code or "").strip()
        if not code:
            raise Coupon.DoesNotExist("Coupon code is empty.")
        return Coupon.objects.get(code__iexact=code)

    def apply(self, code, cart_total, now=None):
        """
        Validate `code` against `cart_total`.

        Returns:
            dict: code, valid, discount, cart_total, total_after_discount
        Raises:
            Coupon.DoesNotExist: unknown code
        """
        coupon = self.lookup(code)
        now = now or timezone.now()
        cart_total = round_money(to_decimal(cart_total))
        valid = coupon.is_valid(cart_total, now=now)
        discount = coupon.calculate_discount(cart_total, now=now)
        return {
            "coupon": coupon,
            "code": coupon.code,
            "valid": valid,
            "discount": discount,
            "cart_total": cart_total,
            "total_after_discount": round_money(cart_total - discount),
        }

    @transaction.atomic
    def redeem(self, coupon):
        """
        Count one use of `coupon`.

        Raises:
            CouponUsageExhausted: the usage limit was already reached.
        """
        updated = (
            Coupon.objects
            .filter(pk=coupon.pk)
            .filter(Q(usage_limit__isnull=True) | Q(used_count__lt=F("usage_limit")))
            .update(used_count=F("used_count") + 1)
        )
        if not updated:
            logger.warning("Coupon %s usage limit reached", coupon.code)
            raise CouponUsageExhausted(f"Coupon {coupon.code} has no uses left.")

        coupon.refresh_from_db(fields=["used_count"])
        logger.info("Coupon %s redeemed (%s used)", coupon.code, coupon.used_count)
        return coupon
