class SlotUnavailable(ValueError):
    """The requested slot was taken (or overlaps a booking). Pick another one."""


class ProviderAtCapacity(ValueError):
    """The provider reached max_daily_orders before this order could be counted."""
