"""
DeltaWatch Path Tree - Shared Path Observation
==============================================

All paths observed on one root share a single tree keyed by segment, so
observing ``"a.b.c"`` and ``"a.b.d"`` creates the nodes ``a``, ``a.b``,
``a.b.c`` and ``a.b.d`` once. Every node remembers the value it resolved to
at the last flush and carries two reference counts:

- ``observer_count``: how many ``observe_path`` calls end at this node. Only
  these nodes are reported in a summary.
- ``binding_count``: how many bindings use this node as their source. Changes
  here drive the binding resolver but are not reported on their own.

Nodes are pruned as soon as both counts drop to zero and they have no
children left.

Refreshing walks the tree breadth-first, re-reading each node from its
parent's freshly resolved value. Ancestors are therefore always reported
before descendants. Every node is re-read on each walk: intermediate objects
are mutable, so ``a.b.c`` may change while ``a`` and ``a.b`` keep their
identity.
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple

from .paths import format_path
from .values import resolve_property, same_value


@dataclass(frozen=True, slots=True)
class PathChange:
    """A node whose resolved value changed during a refresh."""

    path: str
    old_value: Any
    new_value: Any
    observed: bool
    bound: bool

    def __repr__(self) -> str:
        return f"PathChange({self.path}: {self.old_value!r} → {self.new_value!r})"


class PathNode:
    """One segment of a shared path tree."""

    __slots__ = (
        "segment",
        "path",
        "parent",
        "children",
        "value",
        "observer_count",
        "binding_count",
    )

    def __init__(
        self, segment: str, path: str, parent: Optional["PathNode"], value: Any
    ) -> None:
        self.segment = segment
        self.path = path
        self.parent = parent
        self.children: Dict[str, "PathNode"] = {}
        self.value = value
        self.observer_count = 0
        self.binding_count = 0

    @property
    def ref_count(self) -> int:
        return self.observer_count + self.binding_count

    @property
    def is_prunable(self) -> bool:
        return self.ref_count == 0 and not self.children

    def __repr__(self) -> str:
        return (
            f"PathNode({self.path!r}, value={self.value!r}, "
            f"observers={self.observer_count}, bindings={self.binding_count})"
        )


class PathTree:
    """
    Reference-counted tree of the paths observed below one root object.

    Example:
        tree = PathTree(model)
        tree.add(("a", "b"))
        model["a"]["b"] = 2
        tree.refresh()  # [PathChange(a.b: 1 → 2)]
    """

    def __init__(self, root: Any) -> None:
        self.root = root
        self._children: Dict[str, PathNode] = {}

    def add(self, segments: Tuple[str, ...], *, binding: bool = False) -> PathNode:
        """
        Register interest in a path, creating missing nodes.

        The terminal node starts out holding the value the path resolves to
        right now unless it already carries interest, so the first refresh
        reports only changes made after this call.

        Args:
            segments: Parsed, non-empty path
            binding: Count the interest as a binding source rather than an
                observed path

        Returns:
            The terminal node of the path
        """
        siblings = self._children
        parent: Optional[PathNode] = None
        current = self.root

        for depth, segment in enumerate(segments):
            current = resolve_property(current, segment)
            node = siblings.get(segment)
            if node is None:
                node = PathNode(
                    segment, format_path(segments[: depth + 1]), parent, current
                )
                siblings[segment] = node
            parent = node
            siblings = node.children

        # A node nobody was interested in may hold a value from an older
        # flush (it was an intermediate, or outlived its last unobserve).
        if parent.ref_count == 0:
            parent.value = current
        if binding:
            parent.binding_count += 1
        else:
            parent.observer_count += 1
        return parent

    def remove(self, segments: Tuple[str, ...], *, binding: bool = False) -> bool:
        """
        Drop one unit of interest in a path and prune nodes nobody needs.

        Args:
            segments: Parsed, non-empty path
            binding: Release a binding source rather than an observed path

        Returns:
            False if there was no such interest to release
        """
        node = self.find(segments)
        if node is None:
            return False
        if binding:
            if node.binding_count == 0:
                return False
            node.binding_count -= 1
        else:
            if node.observer_count == 0:
                return False
            node.observer_count -= 1

        while node is not None and node.is_prunable:
            parent = node.parent
            siblings = self._children if parent is None else parent.children
            del siblings[node.segment]
            node = parent
        return True

    def find(self, segments: Tuple[str, ...]) -> Optional[PathNode]:
        """Return the node for a path, or None if it is not in the tree."""
        siblings = self._children
        node = None
        for segment in segments:
            node = siblings.get(segment)
            if node is None:
                return None
            siblings = node.children
        return node

    def refresh(self) -> List[PathChange]:
        """
        Re-resolve every node breadth-first and store the new values.

        Returns:
            Changes in breadth-first order (ancestors before descendants)
        """
        changes: List[PathChange] = []
        queue: Deque[Tuple[Any, PathNode]] = deque(
            (self.root, node) for node in self._children.values()
        )

        while queue:
            parent_value, node = queue.popleft()
            value = resolve_property(parent_value, node.segment)
            if not same_value(value, node.value):
                changes.append(
                    PathChange(
                        path=node.path,
                        old_value=node.value,
                        new_value=value,
                        observed=node.observer_count > 0,
                        bound=node.binding_count > 0,
                    )
                )
                node.value = value
            queue.extend((value, child) for child in node.children.values())

        return changes

    def nodes(self) -> Iterator[PathNode]:
        """Iterate over all nodes breadth-first."""
        queue: Deque[PathNode] = deque(self._children.values())
        while queue:
            node = queue.popleft()
            yield node
            queue.extend(node.children.values())

    def observed_paths(self) -> List[str]:
        """Paths with at least one observer, breadth-first."""
        return [node.path for node in self.nodes() if node.observer_count]

    @property
    def has_observers(self) -> bool:
        return any(node.observer_count for node in self.nodes())

    def __len__(self) -> int:
        return sum(1 for _ in self.nodes())

    def __bool__(self) -> bool:
        return bool(self._children)

    def __repr__(self) -> str:
        return f"PathTree(root={type(self.root).__name__}, nodes={len(self)})"
