"""
DeltaWatch Bindings - Directional Path-to-Path Propagation
==========================================================

A binding copies the value at ``source_object.source_path`` into
``target_object.target_path`` whenever the source changes. Bindings are
directional; two-way behaviour is two opposite bindings sharing their
endpoints. Chains compose on their own: with ``a -> b`` and ``b -> c``, a
change of ``a`` writes ``b``, the next pass sees ``b`` change and writes
``c``.

The resolver only performs the writes. Change detection on the sources is
done by the observer's path trees, which report which bound endpoints changed
during a pass.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import BindingCycleError
from .paths import get_value_at_path, set_value_at_path
from .util.cycle_detector import BindingGraph
from .values import same_value

logger = logging.getLogger(__name__)

Endpoint = Tuple[int, str]


class Binding:
    """A directed link from one object path to another."""

    __slots__ = ("source_object", "source_path", "target_object", "target_path")

    def __init__(
        self, source_object: Any, source_path: str, target_object: Any, target_path: str
    ) -> None:
        self.source_object = source_object
        self.source_path = source_path
        self.target_object = target_object
        self.target_path = target_path

    @property
    def source(self) -> Endpoint:
        return (id(self.source_object), self.source_path)

    @property
    def target(self) -> Endpoint:
        return (id(self.target_object), self.target_path)

    @property
    def key(self) -> Tuple[Endpoint, Endpoint]:
        return (self.source, self.target)

    def read(self) -> Any:
        """Current value at the source."""
        return get_value_at_path(self.source_object, self.source_path)

    def sync(self) -> bool:
        """
        Copy the live source value into the target if they differ.

        Returns:
            True if a write happened
        """
        value = self.read()
        if same_value(get_value_at_path(self.target_object, self.target_path), value):
            return False
        return set_value_at_path(self.target_object, self.target_path, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Binding):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return (
            f"Binding({type(self.source_object).__name__}.{self.source_path} -> "
            f"{type(self.target_object).__name__}.{self.target_path})"
        )


class BindingResolver:
    """
    Registry of bindings in registration order, with their endpoint graph.

    Example:
        resolver = BindingResolver()
        resolver.add(Binding(model, "a", model, "b"))
        model["a"] = 5
        resolver.propagate([(model, "a")])  # model["b"] == 5
    """

    def __init__(self, reject_cycles: bool = False) -> None:
        self._reject_cycles = reject_cycles
        self._bindings: Dict[Tuple[Endpoint, Endpoint], Binding] = {}
        self._graph: BindingGraph = BindingGraph()

    def add(self, binding: Binding) -> bool:
        """
        Register a binding.

        Args:
            binding: The binding to add

        Returns:
            False if an identical binding was already registered

        Raises:
            BindingCycleError: If the binding closes a cycle and the resolver
                rejects cycles
        """
        if binding.key in self._bindings:
            return False

        if self._graph.add_edge(binding.source, binding.target):
            loop = self._graph.find_cycle(binding.source)
            cycle = " -> ".join(path for _, path in loop)
            if self._reject_cycles:
                self._graph.remove_edge(binding.source, binding.target)
                raise BindingCycleError(
                    f"{binding!r} would create a binding cycle: {cycle}"
                )
            logger.debug("%r closes a binding cycle: %s", binding, cycle)

        self._bindings[binding.key] = binding
        return True

    def remove(self, binding: Binding) -> Optional[Binding]:
        """
        Unregister a binding.

        Returns:
            The registered binding that was removed, or None if unknown
        """
        registered = self._bindings.pop(binding.key, None)
        if registered is None:
            return None

        self._graph.remove_edge(registered.source, registered.target)
        return registered

    def propagate(self, changed: Iterable[Tuple[Any, str]]) -> int:
        """
        Push the live values of changed sources into their targets.

        Bindings run in registration order, each reading its source at the
        moment it runs, so when both ends of a two-way binding changed in the
        same pass the first-registered direction wins.

        Args:
            changed: ``(root, path)`` pairs whose resolved value changed

        Returns:
            Number of writes performed
        """
        sources = {(id(root), path) for root, path in changed}
        writes = 0
        for binding in list(self._bindings.values()):
            if binding.source in sources and binding.sync():
                writes += 1
        return writes

    def bindings(self) -> List[Binding]:
        """All bindings in registration order."""
        return list(self._bindings.values())

    def has_cycle(self) -> bool:
        return self._graph.has_cycle()

    def clear(self) -> None:
        self._bindings.clear()
        self._graph.clear()

    def __len__(self) -> int:
        return len(self._bindings)

    def __contains__(self, binding: Binding) -> bool:
        return binding.key in self._bindings
