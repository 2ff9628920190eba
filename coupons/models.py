# coupons/models.py
#
# Purpose:
# - Coupon codes with temporal, usage and minimum-spend constraints.
#
# Design highlights:
# - is_valid() and CouponQuerySet.valid() encode the same rules; the queryset
#   only leaves out the cart-total rule, which needs a cart.
# - calculate_discount() never raises for an unusable coupon; it returns 0.00.
# - used_count is only increased through CouponManager.redeem() (conditional
#   UPDATE), never by read-modify-write on an instance.
#

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from sparesite.money import ZERO, round_money, to_decimal


class CouponQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def valid(self, now=None):
        """
        Coupons usable right now, ignoring the cart total:
        active, started, not expired, and below the usage limit.
        """
        now = now or timezone.now()
        return self.filter(
            Q(is_active=True),
            Q(starts_at__isnull=True) | Q(starts_at__lte=now),
            Q(expires_at__isnull=True) | Q(expires_at__gte=now),
            Q(usage_limit__isnull=True) | Q(used_count__lt=F("usage_limit")),
        )


class Coupon(models.Model):
    """
    A discount code.

    Rules:
    - percentage: cart_total * value / 100, capped by maximum_discount when set
    - fixed_amount: value, but never more than the cart total
    - code is stored upper-case; lookups are case-insensitive
    """
    TYPE_PERCENTAGE = "percentage"
    TYPE_FIXED = "fixed_amount"
    TYPE_CHOICES = [
        (TYPE_PERCENTAGE, "Percentage"),
        (TYPE_FIXED, "Fixed amount"),
    ]

    code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_PERCENTAGE)
    value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    minimum_amount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    maximum_discount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)],
        help_text="Cap for percentage coupons.",
    )
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    starts_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CouponQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    def clean(self):
        if self.starts_at and self.expires_at and self.expires_at <= self.starts_at:
            raise ValidationError({"expires_at": "Expiry must be after the start time."})
        if self.type == self.TYPE_PERCENTAGE and self.value is not None and self.value > 100:
            raise ValidationError({"value": "A percentage coupon cannot exceed 100."})
        if self.usage_limit is not None and self.used_count > self.usage_limit:
            raise ValidationError({"used_count": "Used count cannot exceed the usage limit."})

    # -------------------------
    # Validity / discount
    # -------------------------
    def is_valid(self, cart_total=0, now=None) -> bool:
        now = now or timezone.now()
        if not self.is_active:
            return False
        if self.starts_at is not None and now < self.starts_at:
            return False
        if self.expires_at is not None and now > self.expires_at:
            return False
        if self.usage_limit is not None and self.used_count >= self.usage_limit:
            return False
        if self.minimum_amount is not None and to_decimal(cart_total) < self.minimum_amount:
            return False
        return True

    def calculate_discount(self, cart_total, now=None) -> Decimal:
        """
        Discount for `cart_total`, rounded half-up to 2 places.
        Returns 0.00 whenever the coupon is not valid for this cart.
        """
        cart_total = to_decimal(cart_total)
        if not self.is_valid(cart_total, now=now):
            return ZERO

        if self.type == self.TYPE_PERCENTAGE:
            discount = cart_total * self.value / Decimal("100")
            if self.maximum_discount is not None and discount > self.maximum_discount:
                discount = self.maximum_discount
        else:
            discount = min(self.value, cart_total)

        return round_money(max(discount, ZERO))

    @property
    def remaining_uses(self):
        if self.usage_limit is None:
            return None
        return max(self.usage_limit - self.used_count, 0)
