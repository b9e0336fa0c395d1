"""
DeltaWatch Observer - Explicit Change Delivery
==============================================

An ``Observer`` watches objects, arrays and paths and reports what changed to
a single callback, but only when asked to: mutations are plain Python writes
and trigger nothing. Calling ``deliver()`` compares everything against the
snapshots taken at the previous delivery, settles bindings, and hands the
callback one ``ChangeSummary`` per changed target.

Basic Usage
-----------

```python
from deltawatch import Observer

def on_changes(summaries):
    for summary in summaries:
        print(summary.path_changed)

observer = Observer(on_changes)
model = {"user": {"name": "Ada"}}
observer.observe_path(model, "user.name")

model["user"]["name"] = "Grace"
observer.deliver()  # {'user.name': 'Grace'}
observer.deliver()  # nothing pending: callback not invoked
```

Delivery
--------

1. Every path tree is walked breadth-first. Changed binding sources push
   their values into their targets, and the walk repeats until a pass makes
   no binding writes (capped by ``max_cascade_passes``).
2. Objects and arrays are diffed against their snapshots.
3. Non-empty summaries are delivered in first-interest order and snapshots
   advance.

The callback runs inside its own error boundary: an exception it raises is
logged and swallowed, so it can neither break ``deliver()`` for the caller nor
prevent other observers (see ``deliver_all``) from delivering.
"""

import itertools
import logging
import weakref
from collections.abc import Sequence
from typing import Any, Callable, Dict, List, Optional, Tuple

from .bindings import Binding, BindingResolver
from .config import CascadeLimitPolicy, ObserverConfig
from .detector import detect_object_changes
from .errors import CascadeLimitError
from .paths import format_path, get_value_at_path, parse_path
from .snapshot import ArraySnapshot, ObjectSnapshot, ObservedTarget, SnapshotStore
from .splices import project_splices
from .summary import ChangeSummary
from .values import is_value_type, same_value

logger = logging.getLogger(__name__)

SummaryCallback = Callable[[List[ChangeSummary]], None]

# path -> [old value, new value] accumulated over the passes of one delivery
_PathDeltas = Dict[str, List[Any]]


class Observer:
    """
    Dirty-checking observer with explicit delivery.

    Args:
        callback: Receives the list of summaries of each delivery
        config: Observer settings; defaults to ``ObserverConfig()``
        **overrides: Individual ``ObserverConfig`` fields overriding ``config``
    """

    def __init__(
        self,
        callback: SummaryCallback,
        config: Optional[ObserverConfig] = None,
        **overrides: Any,
    ) -> None:
        self._callback = callback
        self._config = (config or ObserverConfig()).with_overrides(**overrides)
        self._store = SnapshotStore()
        self._bindings = BindingResolver(
            reject_cycles=self._config.reject_binding_cycles
        )
        self._connected = True
        self._serial = next(_serials)
        _live_observers[self._serial] = self

    @property
    def config(self) -> ObserverConfig:
        return self._config

    @property
    def connected(self) -> bool:
        return self._connected

    # ========================================================================
    # OBJECTS AND ARRAYS
    # ========================================================================

    def observe_object(self, target: Any) -> None:
        """Start reporting added, removed and changed own properties of ``target``."""
        if not self._accepts(target, "observe_object"):
            return
        record = self._store.ensure(target)
        if record.object_interest == 0:
            record.object_snapshot = ObjectSnapshot.capture(target)
        record.object_interest += 1

    def unobserve_object(self, target: Any) -> None:
        """Drop one unit of object interest in ``target``."""
        record = self._store.get(target)
        if record is None or record.object_interest == 0:
            logger.debug("unobserve_object: %r is not observed", type(target).__name__)
            return
        record.object_interest -= 1
        if record.object_interest == 0:
            record.object_snapshot = None
            self._store.release(target)

    def observe_array(self, target: Any) -> None:
        """Start reporting splices of the sequence ``target``."""
        if not self._accepts(target, "observe_array"):
            return
        if not isinstance(target, Sequence):
            logger.debug("observe_array: %r is not a sequence", type(target).__name__)
            return
        record = self._store.ensure(target)
        if record.array_interest == 0:
            record.array_snapshot = ArraySnapshot.capture(target)
        record.array_interest += 1

    def unobserve_array(self, target: Any) -> None:
        """Drop one unit of array interest in ``target``."""
        record = self._store.get(target)
        if record is None or record.array_interest == 0:
            logger.debug("unobserve_array: %r is not observed", type(target).__name__)
            return
        record.array_interest -= 1
        if record.array_interest == 0:
            record.array_snapshot = None
            self._store.release(target)

    # ========================================================================
    # PATHS
    # ========================================================================

    def observe_path(self, root: Any, path: str) -> Any:
        """
        Start reporting changes of the value at ``path`` below ``root``.

        The empty path, malformed paths and scalar roots can never change and
        are not registered.

        Returns:
            The value the path currently resolves to
        """
        value = get_value_at_path(root, path)
        segments = parse_path(path)
        if not segments or is_value_type(root):
            return value
        if not self._accepts(root, "observe_path"):
            return value
        self._store.ensure(root).path_tree.add(segments)
        return value

    def unobserve_path(self, root: Any, path: str) -> None:
        """Drop one unit of interest in ``path`` below ``root``."""
        segments = parse_path(path)
        record = self._store.get(root)
        if not segments or record is None or record.paths is None:
            return
        if not record.paths.remove(segments):
            logger.debug("unobserve_path: %r is not observed", path)
            return
        self._store.release(root)

    # ========================================================================
    # BINDINGS
    # ========================================================================

    def bind(
        self, source_object: Any, source_path: str, target_object: Any, target_path: str
    ) -> Optional[Binding]:
        """
        Keep ``target_object.target_path`` equal to ``source_object.source_path``.

        The target is written immediately and again whenever the source
        changes during a delivery. The binding is one-directional.

        Returns:
            The binding, or None if either path is unusable

        Raises:
            BindingCycleError: If cycles are rejected and this binding closes one
        """
        source_segments = parse_path(source_path)
        target_segments = parse_path(target_path)
        if not source_segments or not target_segments or is_value_type(source_object):
            logger.debug("bind: unusable paths %r -> %r", source_path, target_path)
            return None
        if not self._accepts(source_object, "bind"):
            return None

        binding = Binding(
            source_object,
            format_path(source_segments),
            target_object,
            format_path(target_segments),
        )
        if not self._bindings.add(binding):
            return binding

        self._store.ensure(source_object).path_tree.add(source_segments, binding=True)
        binding.sync()
        return binding

    def bind_two_way(
        self, object_a: Any, path_a: str, object_b: Any, path_b: str
    ) -> Optional[Tuple[Binding, Binding]]:
        """
        Bind ``a -> b`` and ``b -> a``; ``a`` provides the initial value.

        Returns:
            Both bindings, or None if the paths are unusable
        """
        forward = self.bind(object_a, path_a, object_b, path_b)
        if forward is None:
            return None
        backward = self.bind(object_b, path_b, object_a, path_a)
        if backward is None:
            self.unbind(object_a, path_a, object_b, path_b)
            return None
        return forward, backward

    def unbind(
        self, source_object: Any, source_path: str, target_object: Any, target_path: str
    ) -> None:
        """Remove a binding created by ``bind``."""
        source_segments = parse_path(source_path)
        target_segments = parse_path(target_path)
        if not source_segments or not target_segments:
            return
        removed = self._bindings.remove(
            Binding(
                source_object,
                format_path(source_segments),
                target_object,
                format_path(target_segments),
            )
        )
        if removed is None:
            logger.debug("unbind: no binding %r -> %r", source_path, target_path)
            return
        record = self._store.get(source_object)
        if record is not None and record.paths is not None:
            record.paths.remove(source_segments, binding=True)
            self._store.release(source_object)

    def bindings(self) -> List[Binding]:
        """Active bindings in registration order."""
        return self._bindings.bindings()

    # ========================================================================
    # DELIVERY
    # ========================================================================

    def deliver(self) -> None:
        """
        Compute pending changes and hand them to the callback.

        Does nothing, and does not invoke the callback, when nothing changed.
        """
        rounds = 0
        while True:
            summaries = self._collect()
            if not summaries:
                return
            self._dispatch(summaries)
            rounds += 1
            if not self._config.redeliver_until_stable:
                return
            if rounds >= self._config.max_delivery_rounds:
                logger.warning(
                    "Observer callback still producing changes after %d delivery rounds",
                    rounds,
                )
                return

    def disconnect(self) -> Optional[List[ChangeSummary]]:
        """
        Stop observing everything.

        Returns:
            Summaries of the changes still pending, or None if there are none
        """
        if not self._connected:
            return None
        summaries = self._collect()
        self._store.clear()
        self._bindings.clear()
        self._connected = False
        _live_observers.pop(self._serial, None)
        return summaries or None

    def _dispatch(self, summaries: List[ChangeSummary]) -> None:
        try:
            self._callback(summaries)
        except Exception:
            if self._config.log_callback_errors:
                logger.exception("Error in observer callback %r", self._callback)

    def _collect(self) -> List[ChangeSummary]:
        records = self._store.records()
        if not records:
            return []

        path_deltas: Dict[int, _PathDeltas] = {}
        self._settle_paths(records, path_deltas)

        summaries = []
        for record in records:
            summary = self._summarize(record, path_deltas.get(id(record.target)))
            if summary is not None:
                summaries.append(summary)
        return summaries

    def _settle_paths(
        self, records: List[ObservedTarget], path_deltas: Dict[int, _PathDeltas]
    ) -> None:
        """Walk the path trees, letting bindings cascade until nothing is written."""
        limit = self._config.max_cascade_passes
        for _ in range(limit):
            triggered = []
            for record in records:
                if not record.paths:
                    continue
                for change in record.paths.refresh():
                    if change.observed:
                        deltas = path_deltas.setdefault(id(record.target), {})
                        if change.path in deltas:
                            deltas[change.path][1] = change.new_value
                        else:
                            deltas[change.path] = [change.old_value, change.new_value]
                    if change.bound:
                        triggered.append((record.target, change.path))

            if not triggered or not self._bindings.propagate(triggered):
                return

        message = f"Bindings did not settle within {limit} passes"
        if self._config.cascade_limit_policy is CascadeLimitPolicy.RAISE:
            raise CascadeLimitError(message)
        logger.warning(message)

    def _summarize(
        self, record: ObservedTarget, deltas: Optional[_PathDeltas]
    ) -> Optional[ChangeSummary]:
        summary = ChangeSummary(record.target)

        if record.object_snapshot is not None:
            diff, record.object_snapshot = detect_object_changes(
                record.target, record.object_snapshot
            )
            summary.added = diff.added
            summary.removed = diff.removed
            summary.changed = diff.changed
            summary._property_old_values = diff.old_values

        if record.paths is not None and record.paths.has_observers:
            path_changed: Dict[str, Any] = {}
            old_values: Dict[str, Any] = {}
            deltas = deltas or {}
            # Tree order, not the order changes turned up across cascade passes
            for path in record.paths.observed_paths():
                if path not in deltas:
                    continue
                old_value, new_value = deltas[path]
                if same_value(old_value, new_value):
                    continue
                path_changed[path] = new_value
                old_values[path] = old_value
            summary.path_changed = path_changed
            summary._path_old_values = old_values

        if record.array_snapshot is not None:
            current = ArraySnapshot.capture(record.target)
            splices = project_splices(record.array_snapshot.elements, current.elements)
            record.array_snapshot = current
            if splices:
                summary.splices = splices

        return None if summary.is_empty() else summary

    def _accepts(self, target: Any, operation: str) -> bool:
        if not self._connected:
            logger.debug("%s called on a disconnected observer", operation)
            return False
        if is_value_type(target):
            logger.debug("%s: scalar %r cannot be observed", operation, target)
            return False
        return True

    # ========================================================================
    # CONTEXT MANAGER / INTROSPECTION
    # ========================================================================

    def __enter__(self) -> "Observer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def __len__(self) -> int:
        """Number of observed targets."""
        return len(self._store)

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"Observer(targets={len(self._store)}, bindings={len(self._bindings)}, {state})"


# ============================================================================
# LIVE OBSERVER REGISTRY
# ============================================================================

_serials = itertools.count()
_live_observers: "weakref.WeakValueDictionary[int, Observer]" = (
    weakref.WeakValueDictionary()
)


def live_observers() -> List[Observer]:
    """Connected observers that are still referenced, in creation order."""
    return list(_live_observers.values())


def deliver_all() -> None:
    """
    Deliver every live observer.

    Each observer is delivered as an independent unit of work: if one raises
    (only possible with the ``raise`` cascade policy), the error is logged and
    the remaining observers still deliver.
    """
    for observer in live_observers():
        try:
            observer.deliver()
        except Exception:
            logger.exception("Error delivering %r", observer)


def create_observer(callback: SummaryCallback, **kwargs: Any) -> Observer:
    """
    Create an observer with the given settings.

    Args:
        callback: Receives the summaries of each delivery
        **kwargs: ``ObserverConfig`` fields

    Returns:
        Configured Observer instance
    """
    return Observer(callback, ObserverConfig(**kwargs))


def _reset_registry() -> None:
    """Forget all live observers (testing helper)."""
    _live_observers.clear()
