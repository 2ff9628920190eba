"""
service_calculation.py
----------------------
Service cost aggregation and per-product service selection.

- calculate_service_cost(service_ids, product_ids): every service priced against
  every product (full cross product), summed, with one detail row per pair.
- services_for_product(product): active services assigned to a product with their
  effective terms.
- validate_selected_services(product, service_ids): mandatory / assignment checks.
- calculate_services_total(product, service_ids): total for one cart line.

Unknown ids raise the model's DoesNotExist; empty inputs give empty results.
"""

import logging

from sparesite.money import ZERO, round_money

from ..models import Product, ProductService, ProductServiceAssignment
from .pricing import effective_terms

logger = logging.getLogger(__name__)


def _fetch_all(model, ids):
    """in_bulk() that refuses to silently drop unknown ids."""
    found = model.objects.in_bulk(set(ids))
    missing = sorted(set(ids) - set(found))
    if missing:
        raise model.DoesNotExist(
            f"{model.__name__} not found: {', '.join(str(i) for i in missing)}"
        )
    return found


def _assignment_map(service_ids, product_ids):
    rows = ProductServiceAssignment.objects.filter(
        service_id__in=set(service_ids), product_id__in=set(product_ids)
    )
    return {(a.service_id, a.product_id): a for a in rows}


def calculate_service_cost(service_ids, product_ids):
    """
    Price each requested service against each requested product and sum.

    Callers wanting "one service for N products" pass matching singleton lists;
    this function does not deduplicate per product.

    Returns:
        dict: {"total": Decimal, "details": [{service_id, service_name, product_id, price}]}
    """
    service_ids = list(service_ids or [])
    product_ids = list(product_ids or [])
    if not service_ids or not product_ids:
        return {"total": ZERO, "details": []}

    services = _fetch_all(ProductService, service_ids)
    _fetch_all(Product, product_ids)
    assignments = _assignment_map(service_ids, product_ids)

    total = ZERO
    details = []
    for service_id in service_ids:
        service = services[service_id]
        for product_id in product_ids:
            terms = effective_terms(service, assignments.get((service_id, product_id)))
            total += terms.price
            details.append({
                "service_id": service_id,
                "service_name": service.name,
                "product_id": product_id,
                "price": terms.price,
            })

    logger.debug(
        "Service cost for services=%s products=%s: %s", service_ids, product_ids, total
    )
    return {"total": round_money(total), "details": details}


def services_for_product(product):
    """
    Active services assigned to `product`, ordered by sort_order.

    Returns:
        list: dicts with id, name, description, type, price, is_free, is_mandatory, is_optional
    """
    assignments = (
        ProductServiceAssignment.objects
        .filter(product=product, service__is_active=True)
        .select_related("service")
        .order_by("service__sort_order", "service__name")
    )
    result = []
    for assignment in assignments:
        service = assignment.service
        terms = effective_terms(service, assignment)
        result.append({
            "id": service.id,
            "name": service.name,
            "description": service.description,
            "type": service.type,
            "price": terms.price,
            "is_free": terms.is_free,
            "is_mandatory": terms.is_mandatory,
            "is_optional": not terms.is_mandatory,
        })
    return result


def validate_selected_services(product, service_ids):
    """
    Check a customer's service selection for one product.

    Returns:
        list[str]: error messages; empty when the selection is acceptable.
    """
    selected = set(service_ids or [])
    errors = []

    assignments = (
        ProductServiceAssignment.objects
        .filter(product=product, service__is_active=True)
        .select_related("service")
    )
    assigned_ids = set()
    for assignment in assignments:
        assigned_ids.add(assignment.service_id)
        if effective_terms(assignment.service, assignment).is_mandatory and assignment.service_id not in selected:
            errors.append(f"Service '{assignment.service.name}' is mandatory for this product.")

    for service_id in sorted(selected - assigned_ids):
        errors.append(f"Service {service_id} is not available for this product.")

    return errors


def calculate_services_total(product, service_ids):
    """
    Total of the selected services for a single product (one cart line).
    Ids that are not services at all are skipped.
    """
    services = ProductService.objects.in_bulk(set(service_ids or []))
    assignments = {
        a.service_id: a
        for a in ProductServiceAssignment.objects.filter(product=product, service_id__in=services.keys())
    }

    total = ZERO
    breakdown = []
    for service_id in service_ids or []:
        service = services.get(service_id)
        if service is None:
            continue
        price = effective_terms(service, assignments.get(service_id)).price
        total += price
        breakdown.append({
            "service_id": service_id,
            "name": service.name,
            "price": price,
            "is_free": price == ZERO,
        })

    return {"total": round_money(total), "breakdown": breakdown}
