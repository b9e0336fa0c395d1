"""
DeltaWatch Observer Configuration
=================================

Every knob an observer has lives on ``ObserverConfig``. Configs are immutable;
derive variants with ``ObserverConfig.with_overrides`` or pass keyword
overrides straight to ``Observer``:

```python
strict = ObserverConfig(cascade_limit_policy="raise", reject_binding_cycles=True)
observer = Observer(callback, strict, max_cascade_passes=10)
```
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class CascadeLimitPolicy(Enum):
    """What to do when binding cascades do not settle."""

    WARN = "warn"
    RAISE = "raise"


@dataclass(frozen=True)
class ObserverConfig:
    """
    Observer settings.

    Attributes:
        max_cascade_passes: Upper bound on path/binding passes per delivery
        cascade_limit_policy: Log a warning or raise ``CascadeLimitError``
            when the pass limit is hit
        reject_binding_cycles: Make ``bind`` raise ``BindingCycleError``
            instead of accepting bindings that close a cycle
        redeliver_until_stable: Keep delivering while the callback itself
            produces further changes
        max_delivery_rounds: Upper bound on delivery rounds when
            ``redeliver_until_stable`` is set
        log_callback_errors: Log exceptions raised by the callback
    """

    max_cascade_passes: int = 100
    cascade_limit_policy: CascadeLimitPolicy = CascadeLimitPolicy.WARN
    reject_binding_cycles: bool = False
    redeliver_until_stable: bool = False
    max_delivery_rounds: int = 100
    log_callback_errors: bool = True

    def __post_init__(self) -> None:
        if self.max_cascade_passes < 1:
            raise ValueError(
                f"max_cascade_passes must be at least 1, got {self.max_cascade_passes}"
            )
        if self.max_delivery_rounds < 1:
            raise ValueError(
                f"max_delivery_rounds must be at least 1, got {self.max_delivery_rounds}"
            )
        if not isinstance(self.cascade_limit_policy, CascadeLimitPolicy):
            # Frozen dataclass: coerce through object.__setattr__
            object.__setattr__(
                self,
                "cascade_limit_policy",
                CascadeLimitPolicy(self.cascade_limit_policy),
            )

    def with_overrides(self, **overrides: Any) -> "ObserverConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides) if overrides else self
