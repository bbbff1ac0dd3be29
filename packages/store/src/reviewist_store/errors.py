class StoreError(Exception):
    """Base class for store-layer failures."""


class SchedulingError(StoreError):
    """Blocking store work could not be dispatched to its executor."""
