class ZeroUnavailable(TypeError):
    """Raised when the count type of a multiset cannot produce its additive identity.
    Only operations which need a zero raise it, lookups keep working.
    """


class CapacityOverflow(OverflowError):
    """Raised when a requested capacity exceeds `sys.maxsize`."""

    def __init__(self, requested: int) -> None:
        OverflowError.__init__(self, f"Requested capacity {requested} exceeds the maximum size")
        self.requested = requested


class UnencodableItem(TypeError):
    """Raised when an item cannot be converted to bytes for digesting.
    Similar to the TypeError raised by `hash()` for unhashable objects.
    """

    def __init__(self, *args, item=None):
        super().__init__(*args)
        self.item = item
