from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework.test import APIClient

from .models import Product, ProductService, ProductServiceAssignment
from .services.pricing import effective_terms, effective_value
from .services.service_calculation import (
    calculate_service_cost,
    calculate_services_total,
    services_for_product,
    validate_selected_services,
)


def make_product(name, sku, price="100.00", **kwargs):
    return Product.objects.create(name=name, slug=sku.lower(), sku=sku, price=Decimal(price), **kwargs)


def make_service(name, price, **kwargs):
    return ProductService.objects.create(
        name=name, slug=name.lower().replace(" ", "-"), price=Decimal(price), **kwargs
    )


class EffectiveTermsTests(TestCase):
    """Override resolution for a service on one product."""

    def setUp(self):
        self.product = make_product("Diverter Valve", "DV-1")
        self.service = make_service("Part Fitting", "85.00", is_optional=True)

    def test_effective_value_prefers_override(self):
        self.assertEqual(effective_value(10, None), 10)
        self.assertEqual(effective_value(10, 0), 0)
        self.assertEqual(effective_value(True, False), False)

    def test_base_price_without_assignment(self):
        terms = effective_terms(self.service)
        self.assertEqual(terms.price, Decimal("85.00"))
        self.assertFalse(terms.is_free)
        self.assertFalse(terms.is_mandatory)

    def test_custom_price_wins(self):
        assignment = ProductServiceAssignment.objects.create(
            product=self.product, service=self.service, custom_price=Decimal("60.00")
        )
        self.assertEqual(effective_terms(self.service, assignment).price, Decimal("60.00"))

    def test_assignment_free_flag_zeroes_price(self):
        assignment = ProductServiceAssignment.objects.create(
            product=self.product, service=self.service, is_free=True
        )
        terms = effective_terms(self.service, assignment)
        self.assertTrue(terms.is_free)
        self.assertEqual(terms.price, Decimal("0.00"))

    def test_assignment_can_unset_free_service(self):
        self.service.is_free = True
        self.service.save()
        assignment = ProductServiceAssignment.objects.create(
            product=self.product, service=self.service, is_free=False
        )
        self.assertEqual(effective_terms(self.service, assignment).price, Decimal("85.00"))

    def test_mandatory_inherits_from_is_optional(self):
        self.service.is_optional = False
        self.assertTrue(effective_terms(self.service).is_mandatory)

        assignment = ProductServiceAssignment(product=self.product, service=self.service, is_mandatory=False)
        self.assertFalse(effective_terms(self.service, assignment).is_mandatory)


class ServiceCostTests(TestCase):
    def setUp(self):
        self.p1 = make_product("Pump", "PMP-1")
        self.p2 = make_product("Fan", "FAN-1")
        self.fitting = make_service("Part Fitting", "85.00")
        self.delivery = make_service("Next Day Delivery", "9.99")
        ProductServiceAssignment.objects.create(product=self.p2, service=self.fitting, custom_price=Decimal("50.00"))

    def test_full_cross_product(self):
        result = calculate_service_cost([self.fitting.id, self.delivery.id], [self.p1.id, self.p2.id])

        # fitting: 85 + 50, delivery: 9.99 + 9.99
        self.assertEqual(result["total"], Decimal("154.98"))
        self.assertEqual(len(result["details"]), 4)
        pairs = [(d["service_id"], d["product_id"]) for d in result["details"]]
        self.assertEqual(pairs, [
            (self.fitting.id, self.p1.id),
            (self.fitting.id, self.p2.id),
            (self.delivery.id, self.p1.id),
            (self.delivery.id, self.p2.id),
        ])

    def test_empty_inputs_give_zero(self):
        self.assertEqual(calculate_service_cost([], [self.p1.id]), {"total": Decimal("0.00"), "details": []})
        self.assertEqual(calculate_service_cost([self.fitting.id], []), {"total": Decimal("0.00"), "details": []})

    def test_unknown_service_raises(self):
        with self.assertRaises(ProductService.DoesNotExist):
            calculate_service_cost([999], [self.p1.id])

    def test_unknown_product_raises(self):
        with self.assertRaises(Product.DoesNotExist):
            calculate_service_cost([self.fitting.id], [999])


class ProductServiceSelectionTests(TestCase):
    def setUp(self):
        self.product = make_product("Heat Exchanger", "HX-1")
        self.delivery = make_service("Standard Delivery", "0.00", is_free=True, is_optional=False, sort_order=1)
        self.fitting = make_service("Part Fitting", "85.00", sort_order=2)
        self.disposal = make_service("Old Part Disposal", "15.00", sort_order=3)
        self.inactive = make_service("Retired", "5.00", is_active=False)
        for svc in (self.delivery, self.fitting, self.inactive):
            ProductServiceAssignment.objects.create(product=self.product, service=svc)

    def test_services_for_product(self):
        services = services_for_product(self.product)
        self.assertEqual([s["id"] for s in services], [self.delivery.id, self.fitting.id])
        self.assertTrue(services[0]["is_mandatory"])
        self.assertTrue(services[0]["is_free"])
        self.assertEqual(services[1]["price"], Decimal("85.00"))
        self.assertTrue(services[1]["is_optional"])

    def test_missing_mandatory_service(self):
        errors = validate_selected_services(self.product, [self.fitting.id])
        self.assertEqual(len(errors), 1)
        self.assertIn("Standard Delivery", errors[0])

    def test_unassigned_service_rejected(self):
        errors = validate_selected_services(self.product, [self.delivery.id, self.disposal.id])
        self.assertEqual(len(errors), 1)
        self.assertIn("not available", errors[0])

    def test_valid_selection(self):
        self.assertEqual(validate_selected_services(self.product, [self.delivery.id, self.fitting.id]), [])

    def test_services_total(self):
        result = calculate_services_total(self.product, [self.delivery.id, self.fitting.id, 12345])
        self.assertEqual(result["total"], Decimal("85.00"))
        self.assertEqual(len(result["breakdown"]), 2)
        self.assertTrue(result["breakdown"][0]["is_free"])


class CatalogApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.product = make_product("Pump", "PMP-1")
        self.fitting = make_service("Part Fitting", "85.00")
        ProductServiceAssignment.objects.create(product=self.product, service=self.fitting)

    def test_calculate_cost_endpoint(self):
        resp = self.client.post(
            "/api/services/calculate-cost/",
            data={"service_ids": [self.fitting.id], "product_ids": [self.product.id]},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["total_cost"], "85.00")
        self.assertEqual(len(resp.json()["details"]), 1)

    def test_calculate_cost_unknown_id_is_404(self):
        resp = self.client.post(
            "/api/services/calculate-cost/",
            data={"service_ids": [999], "product_ids": [self.product.id]},
            format="json",
        )
        self.assertEqual(resp.status_code, 404)

    def test_calculate_cost_requires_lists(self):
        resp = self.client.post(
            "/api/services/calculate-cost/",
            data={"service_ids": [], "product_ids": [self.product.id]},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)

    def test_product_services_endpoint(self):
        resp = self.client.get(f"/api/products/{self.product.id}/services/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["services"][0]["price"], "85.00")

    def test_service_writes_are_staff_only(self):
        resp = self.client.post(
            "/api/product-services/",
            data={"name": "X", "slug": "x", "price": "1.00"},
            format="json",
        )
        self.assertIn(resp.status_code, (401, 403))

    def test_seed_services_is_idempotent(self):
        call_command("seed_services", stdout=StringIO())
        count = ProductService.objects.count()
        call_command("seed_services", stdout=StringIO())
        self.assertEqual(ProductService.objects.count(), count)
