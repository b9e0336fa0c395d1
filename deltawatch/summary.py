"""
DeltaWatch Change Summaries
===========================

A ``ChangeSummary`` describes everything that changed on one observed target
during one delivery. Which fields are present depends on how the target is
observed:

- observed as an object: ``added``, ``removed`` and ``changed`` (possibly
  empty dicts)
- paths observed on it: ``path_changed`` (possibly empty)
- observed as an array: ``splices`` (only when the array changed)

Fields that do not apply are ``None``. Old values are not stored per entry;
``get_old_value`` looks them up in the snapshot the delivery replaced.

```python
def callback(summaries):
    for summary in summaries:
        for name, value in summary.changed.items():
            print(name, summary.get_old_value(name), "->", value)
```
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .splices import Splice
from .values import UNDEFINED


@dataclass
class ChangeSummary:
    """Changes detected on one target during one delivery."""

    object: Any
    added: Optional[Dict[str, Any]] = None
    removed: Optional[Dict[str, Any]] = None
    changed: Optional[Dict[str, Any]] = None
    path_changed: Optional[Dict[str, Any]] = None
    splices: Optional[List[Splice]] = None
    _property_old_values: Mapping[str, Any] = field(
        default_factory=dict, repr=False, compare=False
    )
    _path_old_values: Mapping[str, Any] = field(
        default_factory=dict, repr=False, compare=False
    )

    def get_old_value(self, name: str, default: Any = UNDEFINED) -> Any:
        """
        Value ``name`` had before this delivery.

        Args:
            name: A property name or path string appearing in this summary
            default: Returned for names that did not change

        Returns:
            The old value (``UNDEFINED`` for added properties)
        """
        if self.added and name in self.added:
            return UNDEFINED
        if (self.removed and name in self.removed) or (
            self.changed and name in self.changed
        ):
            return self._property_old_values.get(name, UNDEFINED)
        if self.path_changed and name in self.path_changed:
            return self._path_old_values.get(name, UNDEFINED)
        return default

    @property
    def old_values(self) -> Dict[str, Any]:
        """Old values of every reported property and path."""
        names: List[str] = []
        for mapping in (self.added, self.removed, self.changed, self.path_changed):
            if mapping:
                names.extend(mapping)
        return {name: self.get_old_value(name) for name in names}

    def is_empty(self) -> bool:
        """True if nothing changed on the target."""
        return not (
            self.added
            or self.removed
            or self.changed
            or self.path_changed
            or self.splices
        )
