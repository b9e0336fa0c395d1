"""
DeltaWatch Snapshots - Per-Target Observation State
===================================================

An observer keeps one ``ObservedTarget`` record per object it watches. The
record holds whatever the observer needs to compute the next diff:

- an ``ObjectSnapshot`` while the target is observed as an object,
- an ``ArraySnapshot`` while it is observed as an array,
- a ``PathTree`` while paths or binding sources are registered on it.

Records live in a ``SnapshotStore`` keyed by object identity and iterate in
first-interest order, which is the order summaries are delivered in.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .path_tree import PathTree
from .values import own_properties


@dataclass(frozen=True)
class ObjectSnapshot:
    """Own properties of an object at the last delivery."""

    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def capture(cls, target: Any) -> "ObjectSnapshot":
        return cls(own_properties(target))


@dataclass(frozen=True)
class ArraySnapshot:
    """Elements of a sequence at the last delivery."""

    elements: List[Any] = field(default_factory=list)

    @classmethod
    def capture(cls, target: Any) -> "ArraySnapshot":
        return cls(list(target))


class ObservedTarget:
    """Observation state for one target under one observer."""

    __slots__ = (
        "target",
        "object_interest",
        "array_interest",
        "object_snapshot",
        "array_snapshot",
        "paths",
    )

    def __init__(self, target: Any) -> None:
        self.target = target
        self.object_interest = 0
        self.array_interest = 0
        self.object_snapshot: Optional[ObjectSnapshot] = None
        self.array_snapshot: Optional[ArraySnapshot] = None
        self.paths: Optional[PathTree] = None

    @property
    def path_tree(self) -> PathTree:
        """The target's path tree, created on first use."""
        if self.paths is None:
            self.paths = PathTree(self.target)
        return self.paths

    @property
    def is_idle(self) -> bool:
        """True once nothing references this target any more."""
        return (
            self.object_interest == 0
            and self.array_interest == 0
            and not self.paths
        )

    def __repr__(self) -> str:
        return (
            f"ObservedTarget({type(self.target).__name__}, "
            f"object={self.object_interest}, array={self.array_interest}, "
            f"paths={self.paths!r})"
        )


class SnapshotStore:
    """
    Identity-keyed registry of observed targets.

    Records hold a strong reference to their target, which keeps the
    ``id()`` keys valid for as long as the record exists.
    """

    def __init__(self) -> None:
        self._records: Dict[int, ObservedTarget] = {}

    def get(self, target: Any) -> Optional[ObservedTarget]:
        return self._records.get(id(target))

    def ensure(self, target: Any) -> ObservedTarget:
        """Return the record for ``target``, creating it if needed."""
        record = self._records.get(id(target))
        if record is None:
            record = ObservedTarget(target)
            self._records[id(target)] = record
        return record

    def release(self, target: Any) -> bool:
        """Drop the record for ``target`` if it is idle."""
        record = self._records.get(id(target))
        if record is None or not record.is_idle:
            return False
        del self._records[id(target)]
        return True

    def records(self) -> List[ObservedTarget]:
        """Records in first-interest order."""
        return list(self._records.values())

    def clear(self) -> None:
        self._records.clear()

    def __iter__(self) -> Iterator[ObservedTarget]:
        return iter(self.records())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, target: Any) -> bool:
        return id(target) in self._records
