# catalog/models.py
#
# Purpose:
# - Catalog models needed for service pricing: Category, Brand, Product,
#   ProductService and the per-product override (ProductServiceAssignment).
#
# Design highlights:
# - ProductService carries the base terms (price, is_free, is_optional).
# - ProductServiceAssignment overrides them for one product. Nullable flags mean
#   "inherit from the service"; resolution lives in catalog.services.pricing.
#

from django.core.validators import MinValueValidator
from django.db import models


# -------------------------
# Category / Brand
# -------------------------
class Category(models.Model):
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    parent = models.ForeignKey(
        "self", on_delete=models.CASCADE, null=True, blank=True, related_name="children"
    )
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name


class Brand(models.Model):
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


# -------------------------
# Product (spare part)
# -------------------------
class Product(models.Model):
    """
    A boiler spare part.

    final_price is the sale price when it undercuts the list price.
    """
    STATUS_DRAFT = "draft"
    STATUS_ACTIVE = "active"
    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_ACTIVE, "Active"),
    ]

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    sku = models.CharField(max_length=64, unique=True)
    short_description = models.CharField(max_length=500, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    sale_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    in_stock = models.BooleanField(default=True)
    category = models.ForeignKey(
        Category, on_delete=models.SET_NULL, null=True, blank=True, related_name="products"
    )
    brand = models.ForeignKey(
        Brand, on_delete=models.SET_NULL, null=True, blank=True, related_name="products"
    )
    services = models.ManyToManyField(
        "ProductService", through="ProductServiceAssignment", related_name="products", blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def final_price(self):
        if self.sale_price is not None and self.sale_price < self.price:
            return self.sale_price
        return self.price


# -------------------------
# Services sold alongside products
# -------------------------
class ProductService(models.Model):
    """
    A service that can be added to a product (installation, delivery...).

    Rules:
    - price must be >= 0
    - is_optional=False makes the service mandatory wherever it is assigned
    - is_free=True prices it at zero unless an assignment sets a custom price
    """
    TYPE_SETUP = "setup"
    TYPE_DELIVERY = "delivery"
    TYPE_INSTALLATION = "installation"
    TYPE_MAINTENANCE = "maintenance"
    TYPE_OTHER = "other"
    TYPE_CHOICES = [
        (TYPE_SETUP, "Setup"),
        (TYPE_DELIVERY, "Delivery"),
        (TYPE_INSTALLATION, "Installation"),
        (TYPE_MAINTENANCE, "Maintenance"),
        (TYPE_OTHER, "Other"),
    ]

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_OTHER)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    is_optional = models.BooleanField(default=True)
    is_free = models.BooleanField(default=False)
    conditions = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]

    def __str__(self):
        return self.name


class ProductServiceAssignment(models.Model):
    """
    Per-product override of a service's terms.
    None on any override field means "use the service default".
    """
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="service_assignments")
    service = models.ForeignKey(ProductService, on_delete=models.CASCADE, related_name="assignments")
    custom_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    is_mandatory = models.BooleanField(null=True, blank=True)
    is_free = models.BooleanField(null=True, blank=True)
    conditions = models.JSONField(default=dict, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["product", "service"], name="uniq_product_service_assignment"),
        ]

    def __str__(self):
        return f"{self.service.name} on {self.product.name}"
