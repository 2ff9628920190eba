from datetime import date, time, timedelta
from decimal import Decimal

from catalog.models import ProductService
from providers.models import (
    Area,
    City,
    ProviderServiceLink,
    ServiceProvider,
    ServiceProviderCategory,
    WorkingHours,
)
from providers.services.slot_utils import local_now

# 2030-01-07 is a Monday.
MONDAY = date(2030, 1, 7)


def upcoming(weekday, weeks_ahead=1):
    """A date falling on `weekday` at least a week after today."""
    today = local_now().date()
    start = today + timedelta(days=7 * weeks_ahead)
    return start + timedelta(days=(weekday - start.weekday()) % 7)


def make_location(city_name="Birmingham", area_name="Edgbaston"):
    city = City.objects.create(name=city_name, slug=city_name.lower())
    area = Area.objects.create(city=city, name=area_name, slug=area_name.lower())
    return city, area


def make_category(slug="installer"):
    return ServiceProviderCategory.objects.get_or_create(slug=slug, defaults={"name": slug.title()})[0]


def make_provider(name, city, area, category=None, **kwargs):
    fields = dict(
        contact_name=name,
        category=category or make_category(),
        city=city,
        area=area,
        is_verified=True,
        rating=Decimal("4.00"),
        min_advance_booking_hours=0,
    )
    fields.update(kwargs)
    return ServiceProvider.objects.create(**fields)


def make_service(name="Boiler installation", price="250.00"):
    return ProductService.objects.create(
        name=name,
        slug=name.lower().replace(" ", "-"),
        type=ProductService.TYPE_INSTALLATION,
        price=Decimal(price),
    )


def link(provider, service, **kwargs):
    return ProviderServiceLink.objects.create(provider=provider, service=service, **kwargs)


def work(provider, weekday, start=time(9), end=time(18), is_available=True):
    return WorkingHours.objects.create(
        provider=provider, weekday=weekday, start_time=start, end_time=end, is_available=is_available
    )


def work_weekdays(provider, start=time(9), end=time(18)):
    for weekday in range(5):
        work(provider, weekday, start, end)
