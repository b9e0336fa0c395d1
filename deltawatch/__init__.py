"""
DeltaWatch - Dirty-Checking Observation with Explicit Delivery

Watches plain Python objects, sequences and dotted paths for changes, projects
sequence edits onto minimal splices, and keeps paths in sync with directional
bindings. Nothing happens until ``Observer.deliver()`` (or ``deliver_all()``)
is called.
"""

from .bindings import Binding, BindingResolver
from .config import CascadeLimitPolicy, ObserverConfig
from .errors import BindingCycleError, CascadeLimitError, DeltaWatchError
from .observer import (
    Observer,
    _reset_registry,
    create_observer,
    deliver_all,
    live_observers,
)
from .paths import get_value_at_path, parse_path, set_value_at_path
from .splices import Splice, apply_splices, edit_cost, project_splices
from .summary import ChangeSummary
from .values import UNDEFINED, resolve_property, same_value

__all__ = [
    # Observer
    "Observer",
    "ObserverConfig",
    "CascadeLimitPolicy",
    "ChangeSummary",
    "create_observer",
    "deliver_all",
    "live_observers",
    # Bindings
    "Binding",
    "BindingResolver",
    # Arrays
    "Splice",
    "project_splices",
    "apply_splices",
    "edit_cost",
    # Paths and values
    "get_value_at_path",
    "set_value_at_path",
    "parse_path",
    "resolve_property",
    "same_value",
    # Sentinel
    "UNDEFINED",
    # Exceptions
    "DeltaWatchError",
    "CascadeLimitError",
    "BindingCycleError",
    # Testing utilities (internal use)
    "_reset_registry",
]
