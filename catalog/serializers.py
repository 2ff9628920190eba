from rest_framework import serializers

from .models import Category, Brand, Product, ProductService, ProductServiceAssignment


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "slug", "parent"]


class BrandSerializer(serializers.ModelSerializer):
    class Meta:
        model = Brand
        fields = ["id", "name", "slug"]


class ProductSerializer(serializers.ModelSerializer):
    category = CategorySerializer(read_only=True)
    brand = BrandSerializer(read_only=True)
    final_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id", "name", "slug", "sku", "short_description",
            "price", "sale_price", "final_price", "in_stock",
            "category", "brand",
        ]


class ProductServiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductService
        fields = [
            "id", "name", "slug", "description", "type", "price",
            "is_optional", "is_free", "conditions", "is_active", "sort_order",
        ]


class ProductServiceAssignmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductServiceAssignment
        fields = ["id", "product", "service", "custom_price", "is_mandatory", "is_free", "conditions"]


class ServiceCostRequestSerializer(serializers.Serializer):
    """POST body for /api/services/calculate-cost/."""
    service_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    product_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
