class TaskValidationError(ValueError):
    """Raised when task input is rejected before any side effect."""


class StoreError(Exception):
    """The task store could not complete a read or write."""


class CacheError(Exception):
    """The cache backend failed and the layer is configured to fail closed."""
