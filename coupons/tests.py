from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth.models import User
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from .exceptions import CouponUsageExhausted
from .models import Coupon
from .services.coupon_manager import CouponManager


def welcome10(**overrides):
    fields = dict(
        code="WELCOME10",
        name="Welcome 10%",
        type=Coupon.TYPE_PERCENTAGE,
        value=Decimal("10"),
        minimum_amount=Decimal("500"),
        maximum_discount=Decimal("200"),
        usage_limit=100,
        used_count=0,
        is_active=True,
        starts_at=timezone.now() - timedelta(days=1),
        expires_at=timezone.now() + timedelta(days=30),
    )
    fields.update(overrides)
    return Coupon.objects.create(**fields)


class CouponDiscountTests(TestCase):
    """Validity rules and discount math."""

    def test_percentage_discount(self):
        """Ten percent of the cart."""
        coupon = welcome10()
        self.assertTrue(coupon.is_valid(Decimal("1000")))
        self.assertEqual(coupon.calculate_discount(Decimal("1000")), Decimal("100.00"))

    def test_percentage_discount_is_capped(self):
        """The maximum discount caps a percentage coupon."""
        coupon = welcome10()
        self.assertEqual(coupon.calculate_discount(Decimal("3000")), Decimal("200.00"))

    def test_fixed_amount_below_minimum(self):
        """A cart under the minimum gets nothing."""
        coupon = Coupon.objects.create(
            code="SAVE50", type=Coupon.TYPE_FIXED, value=Decimal("50"), minimum_amount=Decimal("1000")
        )
        self.assertFalse(coupon.is_valid(Decimal("800")))
        self.assertEqual(coupon.calculate_discount(Decimal("800")), Decimal("0.00"))

    def test_expired_coupon_is_invalid_for_any_total(self):
        """Expired coupons give nothing whatever the cart."""
        coupon = welcome10(code="EXPIRED10", expires_at=timezone.now() - timedelta(days=1))
        for total in ("0", "500", "1000", "100000"):
            self.assertFalse(coupon.is_valid(Decimal(total)))
            self.assertEqual(coupon.calculate_discount(Decimal(total)), Decimal("0.00"))

    def test_not_started_coupon_is_invalid(self):
        """Coupons are unusable before their start."""
        coupon = welcome10(starts_at=timezone.now() + timedelta(hours=1))
        self.assertFalse(coupon.is_valid(Decimal("1000")))

    def test_inactive_coupon_is_invalid(self):
        """Inactive coupons are unusable."""
        coupon = welcome10(is_active=False)
        self.assertFalse(coupon.is_valid(Decimal("1000")))

    def test_usage_limit_reached(self):
        """A used-up coupon is invalid."""
        coupon = welcome10(usage_limit=5, used_count=5)
        self.assertFalse(coupon.is_valid(Decimal("1000")))

    def test_fixed_amount_never_exceeds_cart(self):
        """A fixed discount is limited to the cart total."""
        coupon = Coupon.objects.create(code="BIG200", type=Coupon.TYPE_FIXED, value=Decimal("200"))
        self.assertEqual(coupon.calculate_discount(Decimal("50")), Decimal("50.00"))
        self.assertEqual(coupon.calculate_discount(Decimal("500")), Decimal("200.00"))

    def test_cap_never_exceeded(self):
        """No cart total pushes the discount past the cap."""
        coupon = welcome10(minimum_amount=None)
        for total in ("1", "999.99", "2000", "2000.01", "123456.78"):
            self.assertLessEqual(coupon.calculate_discount(Decimal(total)), Decimal("200"))

    def test_rounding_half_up(self):
        """Discounts round half up to the penny."""
        coupon = Coupon.objects.create(code="P125", type=Coupon.TYPE_PERCENTAGE, value=Decimal("12.5"))
        # 12.5% of 0.99 = 0.12375 -> 0.12 ; 12.5% of 1.00 = 0.125 -> 0.13
        self.assertEqual(coupon.calculate_discount(Decimal("0.99")), Decimal("0.12"))
        self.assertEqual(coupon.calculate_discount(Decimal("1.00")), Decimal("0.13"))

    def test_validity_is_idempotent(self):
        """Checking twice at the same instant agrees."""
        coupon = welcome10()
        now = timezone.now()
        first = coupon.is_valid(Decimal("750"), now=now)
        self.assertEqual(first, coupon.is_valid(Decimal("750"), now=now))

    def test_explicit_now_controls_time_rules(self):
        """Passing now moves the expiry check."""
        coupon = welcome10()
        later = timezone.now() + timedelta(days=31)
        self.assertFalse(coupon.is_valid(Decimal("1000"), now=later))

    def test_code_is_stored_upper_case(self):
        """Codes are trimmed and upper-cased on save."""
        coupon = Coupon.objects.create(code=" spring5 ", type=Coupon.TYPE_FIXED, value=Decimal("5"))
        self.assertEqual(coupon.code, "SPRING5")


class CouponQuerySetTests(TestCase):
    def test_valid_queryset_matches_is_valid(self):
        """The valid() queryset agrees with is_valid()."""
        now = timezone.now()
        welcome10(code="OK")
        welcome10(code="OFF", is_active=False)
        welcome10(code="LATE", starts_at=now + timedelta(days=1))
        welcome10(code="OLD", expires_at=now - timedelta(days=1))
        welcome10(code="USED", usage_limit=3, used_count=3)
        Coupon.objects.create(code="OPEN", type=Coupon.TYPE_FIXED, value=Decimal("5"))

        codes = set(Coupon.objects.valid(now=now).values_list("code", flat=True))
        self.assertEqual(codes, {"OK", "OPEN"})

        # Same verdict as is_valid() with a cart total that clears every minimum.
        for coupon in Coupon.objects.all():
            self.assertEqual(coupon.is_valid(Decimal("100000"), now=now), coupon.code in codes)


class CouponManagerTests(TestCase):
    def setUp(self):
        self.manager = CouponManager()

    def test_lookup_is_case_insensitive(self):
        """Codes are looked up regardless of case."""
        welcome10()
        self.assertEqual(self.manager.lookup("welcome10").code, "WELCOME10")

    def test_lookup_unknown_code(self):
        """Unknown codes raise DoesNotExist."""
        with self.assertRaises(Coupon.DoesNotExist):
            self.manager.lookup("NOPE")

    def test_apply_invalid_coupon_returns_zero(self):
        """An unusable coupon leaves the total unchanged."""
        welcome10()
        result = self.manager.apply("WELCOME10", Decimal("100"))
        self.assertFalse(result["valid"])
        self.assertEqual(result["discount"], Decimal("0.00"))
        self.assertEqual(result["total_after_discount"], Decimal("100.00"))

    def test_apply_judges_validity_and_discount_at_one_instant(self):
        """A coupon expiring mid-request gets the same verdict for validity and discount."""
        expiry = timezone.now() + timedelta(hours=1)
        welcome10(expires_at=expiry)
        ticks = [expiry - timedelta(microseconds=1)] + [expiry + timedelta(microseconds=1)] * 5
        with mock.patch("django.utils.timezone.now", side_effect=ticks):
            result = self.manager.apply("WELCOME10", Decimal("1000"))
        self.assertTrue(result["valid"])
        self.assertEqual(result["discount"], Decimal("100.00"))

    def test_redeem_increments(self):
        """Redeeming counts one use."""
        coupon = welcome10(usage_limit=2)
        self.manager.redeem(coupon)
        self.assertEqual(coupon.used_count, 1)

    def test_redeem_last_use_then_conflict(self):
        """A stale copy cannot take a use that is already gone."""
        coupon = welcome10(usage_limit=1)
        self.manager.redeem(coupon)

        # A stale copy still believes one use is left.
        stale = Coupon.objects.get(pk=coupon.pk)
        stale.used_count = 0
        with self.assertRaises(CouponUsageExhausted):
            self.manager.redeem(stale)

        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)

    def test_redeem_unlimited(self):
        """Coupons without a limit can be redeemed forever."""
        coupon = Coupon.objects.create(code="FOREVER", type=Coupon.TYPE_FIXED, value=Decimal("1"))
        for _ in range(3):
            self.manager.redeem(coupon)
        self.assertEqual(coupon.used_count, 3)


class CouponApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.staff = User.objects.create_user(username="admin", password="testpass123", is_staff=True)

    def test_apply_valid_coupon(self):
        """The response carries the discount and a formatted message."""
        welcome10()
        resp = self.client.post(
            "/api/coupons/apply/", data={"code": "welcome10", "cart_total": "1000.00"}, format="json"
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["valid"])
        self.assertEqual(body["discount"], "100.00")
        self.assertEqual(body["total_after_discount"], "900.00")
        self.assertEqual(body["message"], "Coupon applied: £100.00 off.")

    def test_apply_below_minimum_is_not_an_error(self):
        """An unusable coupon is a 200 with valid false."""
        welcome10()
        resp = self.client.post(
            "/api/coupons/apply/", data={"code": "WELCOME10", "cart_total": "100.00"}, format="json"
        )
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["valid"])
        self.assertEqual(resp.json()["discount"], "0.00")
        self.assertEqual(resp.json()["message"], "Coupon cannot be applied to this order.")

    def test_apply_unknown_code_is_404(self):
        """Unknown codes are 404."""
        resp = self.client.post(
            "/api/coupons/apply/", data={"code": "NOPE", "cart_total": "10.00"}, format="json"
        )
        self.assertEqual(resp.status_code, 404)

    def test_crud_requires_staff(self):
        """Anonymous users cannot manage coupons."""
        resp = self.client.get("/api/coupons/")
        self.assertIn(resp.status_code, (401, 403))

    def test_staff_create_uppercases_code(self):
        """Staff-created codes are upper-cased."""
        self.client.force_authenticate(user=self.staff)
        resp = self.client.post(
            "/api/coupons/",
            data={"code": "summer15", "name": "Summer", "type": "percentage", "value": "15"},
            format="json",
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["code"], "SUMMER15")

    def test_staff_create_rejects_duplicate_code(self):
        """Codes are unique regardless of case."""
        welcome10()
        self.client.force_authenticate(user=self.staff)
        resp = self.client.post(
            "/api/coupons/",
            data={"code": "Welcome10", "type": "fixed_amount", "value": "5"},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)

    def test_redeem_conflict_is_409(self):
        """Redeeming a used-up coupon is a conflict."""
        welcome10(usage_limit=1, used_count=1)
        self.client.force_authenticate(user=self.staff)
        resp = self.client.post("/api/coupons/redeem/", data={"code": "WELCOME10"}, format="json")
        self.assertEqual(resp.status_code, 409)

    def test_valid_listing(self):
        """Only currently valid coupons are listed."""
        welcome10()
        welcome10(code="OLD", expires_at=timezone.now() - timedelta(days=1))
        self.client.force_authenticate(user=self.staff)
        resp = self.client.get("/api/coupons/valid/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([c["code"] for c in resp.json()], ["WELCOME10"])
