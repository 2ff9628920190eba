"""
pricing.py
----------
Effective terms of a service on a product.

A ProductService has base terms; a ProductServiceAssignment may override any of
them for one product. Every caller resolves through effective_terms() instead of
null-coalescing the fields itself.

Resolution:
- is_free      = assignment.is_free if set, else service.is_free
- is_mandatory = assignment.is_mandatory if set, else (not service.is_optional)
- price        = assignment.custom_price if set, else 0 when free, else service.price
"""

from dataclasses import dataclass
from decimal import Decimal

from sparesite.money import ZERO, round_money


def effective_value(base, override=None):
    """Return override when it is set, otherwise base."""
    return base if override is None else override


@dataclass(frozen=True)
class ServiceTerms:
    price: Decimal
    is_free: bool
    is_mandatory: bool


def effective_terms(service, assignment=None) -> ServiceTerms:
    """
    Resolve the terms of `service` for one product.

    Args:
        service: ProductService instance
        assignment: ProductServiceAssignment for the product, or None

    Returns:
        ServiceTerms
    """
    custom_price = getattr(assignment, "custom_price", None)
    is_free = effective_value(service.is_free, getattr(assignment, "is_free", None))
    is_mandatory = effective_value(not service.is_optional, getattr(assignment, "is_mandatory", None))

    if custom_price is not None:
        price = round_money(custom_price)
    elif is_free:
        price = ZERO
    else:
        price = round_money(service.price)

    return ServiceTerms(price=price, is_free=bool(is_free), is_mandatory=bool(is_mandatory))


def effective_price(service, assignment=None) -> Decimal:
    return effective_terms(service, assignment).price
