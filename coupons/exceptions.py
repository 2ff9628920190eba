class CouponUsageExhausted(ValueError):
    """The coupon's last use was taken by a concurrent checkout."""
