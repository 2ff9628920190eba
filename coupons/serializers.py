from rest_framework import serializers

from .models import Coupon


class CouponSerializer(serializers.ModelSerializer):
    remaining_uses = serializers.IntegerField(read_only=True)

    class Meta:
        model = Coupon
        fields = [
            "id", "code", "name", "description", "type", "value",
            "minimum_amount", "maximum_discount", "usage_limit", "used_count",
            "remaining_uses", "is_active", "starts_at", "expires_at",
            "created_at", "updated_at",
        ]
        read_only_fields = ["used_count", "created_at", "updated_at"]

    def validate_code(self, value):
        code = (value or "").strip().upper()
        if not code:
            raise serializers.ValidationError("Code is required.")
        qs = Coupon.objects.filter(code__iexact=code)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("Coupon code already exists.")
        return code

    def validate(self, attrs):
        coupon_type = attrs.get("type", getattr(self.instance, "type", Coupon.TYPE_PERCENTAGE))
        value = attrs.get("value", getattr(self.instance, "value", None))
        starts_at = attrs.get("starts_at", getattr(self.instance, "starts_at", None))
        expires_at = attrs.get("expires_at", getattr(self.instance, "expires_at", None))

        if coupon_type == Coupon.TYPE_PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError("A percentage coupon cannot exceed 100.")
        if starts_at and expires_at and expires_at <= starts_at:
            raise serializers.ValidationError("Expiry must be after the start time.")
        return attrs


class ApplyCouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)
    cart_total = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class RedeemCouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)
