"""
DeltaWatch exceptions.

Observation itself never raises: invalid paths and rejected writes degrade to
``UNDEFINED`` or no-ops. These errors only surface when an observer is
configured to be strict.
"""


class DeltaWatchError(Exception):
    """Base class for DeltaWatch errors."""

    pass


class CascadeLimitError(DeltaWatchError):
    """Raised when bindings keep producing changes past the pass limit."""

    pass


class BindingCycleError(DeltaWatchError):
    """Raised when a new binding would close a cycle and cycles are rejected."""

    pass
