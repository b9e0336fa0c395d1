"""
DeltaWatch Object Change Detector
=================================

Dirty-checks an object's own properties against the snapshot taken at the
previous delivery. Only the actual state is compared: a write that the object
rejected (read-only property, frozen instance) leaves nothing to report.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .snapshot import ObjectSnapshot
from .values import UNDEFINED, own_properties, same_value


@dataclass
class ObjectDiff:
    """
    Property-level difference between a snapshot and the current object.

    ``added`` and ``changed`` map names to their new values, ``removed`` maps
    names to ``UNDEFINED``. ``old_values`` is the replaced snapshot itself; it
    is handed over rather than copied.
    """

    added: Dict[str, Any] = field(default_factory=dict)
    removed: Dict[str, Any] = field(default_factory=dict)
    changed: Dict[str, Any] = field(default_factory=dict)
    old_values: Dict[str, Any] = field(default_factory=dict, repr=False)

    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


def detect_object_changes(
    target: Any, snapshot: ObjectSnapshot
) -> Tuple[ObjectDiff, ObjectSnapshot]:
    """
    Compare ``target`` with ``snapshot``.

    Args:
        target: The observed object
        snapshot: Its state at the last delivery

    Returns:
        The diff and the snapshot to keep for the next delivery
    """
    current = own_properties(target)
    previous = snapshot.properties
    diff = ObjectDiff(old_values=previous)

    for name, value in current.items():
        if name not in previous:
            diff.added[name] = value
        elif not same_value(previous[name], value):
            diff.changed[name] = value

    for name in previous:
        if name not in current:
            diff.removed[name] = UNDEFINED

    return diff, ObjectSnapshot(current)
