from django.contrib import admin

from .models import Category, Brand, Product, ProductService, ProductServiceAssignment


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "parent", "is_active", "sort_order")
    list_filter = ("is_active",)
    search_fields = ("name",)
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "is_active")
    search_fields = ("name",)
    prepopulated_fields = {"slug": ("name",)}


class ProductServiceAssignmentInline(admin.TabularInline):
    model = ProductServiceAssignment
    extra = 0
    autocomplete_fields = ("service",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "sku", "price", "sale_price", "status", "in_stock")
    list_filter = ("status", "in_stock", "category", "brand")
    search_fields = ("name", "sku")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [ProductServiceAssignmentInline]


@admin.register(ProductService)
class ProductServiceAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "type", "price", "is_optional", "is_free", "is_active", "sort_order")
    list_filter = ("type", "is_active", "is_free")
    search_fields = ("name",)
    list_editable = ("price", "is_active", "sort_order")
    prepopulated_fields = {"slug": ("name",)}
