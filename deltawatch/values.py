"""
DeltaWatch Values - Identity and Property Resolution
====================================================

This module holds the two primitives every detector in DeltaWatch is built on:

**Value identity**: ``same_value`` decides whether two observed values are the
"same" for change-detection purposes. Immutable scalars (numbers, strings,
bytes, booleans, ``None``) compare by value; everything else compares by
identity. ``NaN`` is the same as ``NaN`` and ``-0.0`` differs from ``0.0``,
so a ``NaN`` field is never reported as changing on every flush.

**Property resolution**: ``resolve_property`` is an explicit
"own-or-inherited" lookup. Rather than calling ``getattr`` blindly it walks
the same places Python would (data descriptors on the class, the instance
``__dict__``, class attributes along the MRO, ``ChainMap`` layers), and turns
every failure into ``UNDEFINED`` instead of an exception.

Example:
    >>> from collections import ChainMap
    >>> model = ChainMap({}, {"x": 1})
    >>> resolve_property(model, "x")
    1
    >>> resolve_property(model, "missing")
    UNDEFINED
"""

import math
import types
from collections import ChainMap
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, Dict, Hashable, Optional


class _Undefined:
    """Sentinel for a property or path that resolves to nothing.

    Distinct from ``None``: a key holding ``None`` exists, a missing key is
    ``UNDEFINED``.
    """

    __slots__ = ()
    _instance: Optional["_Undefined"] = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Undefined, ())


UNDEFINED = _Undefined()

# Immutable scalars: they carry no properties and compare by value.
VALUE_TYPES = (type(None), bool, int, float, complex, str, bytes, _Undefined)


def is_value_type(value: Any) -> bool:
    """Return True for immutable scalars (the analogue of JS primitives)."""
    return isinstance(value, VALUE_TYPES)


def _float_key(value: float) -> Hashable:
    if math.isnan(value):
        return ("nan",)
    if value == 0.0 and math.copysign(1.0, value) < 0:
        return ("-0",)
    return ("number", value)


def identity_key(value: Any) -> Hashable:
    """
    Map a value to a hashable key such that two values are ``same_value``
    exactly when their keys are equal.

    Used by the splice projector to compare whole sequences in bulk.

    Args:
        value: Any observed value

    Returns:
        A hashable key
    """
    if value is None:
        return ("none",)
    if value is UNDEFINED:
        return ("undefined",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, int):
        return ("number", value)
    if isinstance(value, float):
        return _float_key(value)
    if isinstance(value, complex):
        return ("complex", _float_key(value.real), _float_key(value.imag))
    if isinstance(value, str):
        return ("str", value)
    if isinstance(value, bytes):
        return ("bytes", value)
    if isinstance(value, types.MethodType):
        # Bound methods are rebuilt on every attribute read
        return ("method", id(value.__self__), id(value.__func__))
    return ("ref", id(value))


def same_value(a: Any, b: Any) -> bool:
    """Strict identity comparison used by every detector."""
    return a is b or identity_key(a) == identity_key(b)


# ============================================================================
# PROPERTY RESOLUTION
# ============================================================================


def _instance_dict(obj: Any) -> Optional[Mapping]:
    try:
        instance_dict = object.__getattribute__(obj, "__dict__")
    except (AttributeError, TypeError):
        return None
    return instance_dict if isinstance(instance_dict, Mapping) else None


def _is_data_descriptor(attr: Any) -> bool:
    attr_type = type(attr)
    return hasattr(attr_type, "__get__") and (
        hasattr(attr_type, "__set__") or hasattr(attr_type, "__delete__")
    )


def _bind_descriptor(descriptor: Any, obj: Any) -> Any:
    try:
        return type(descriptor).__get__(descriptor, obj, type(obj))
    except Exception:
        return UNDEFINED


def _class_attribute(obj: Any, name: str) -> Any:
    for klass in type(obj).__mro__:
        if name in klass.__dict__:
            return klass.__dict__[name]
    return UNDEFINED


def _slot_names(obj: Any):
    for klass in type(obj).__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name not in ("__dict__", "__weakref__"):
                yield name


def _is_index(name: str) -> bool:
    return name.isdigit()


def own_properties(target: Any) -> Dict[str, Any]:
    """
    Capture the own properties of ``target`` as a fresh dict.

    Own properties are the first map of a ``ChainMap`` (the remaining maps are
    its inheritance chain), the items of any other mapping, an instance's
    ``__dict__`` and any ``__slots__`` that currently hold a value.

    Args:
        target: The object to inspect

    Returns:
        Mapping of property name to current value
    """
    if is_value_type(target):
        return {}
    if isinstance(target, ChainMap):
        return dict(target.maps[0]) if target.maps else {}
    if isinstance(target, Mapping):
        return dict(target)

    properties: Dict[str, Any] = {}
    for name in _slot_names(target):
        value = _bind_descriptor(_class_attribute(target, name), target)
        if value is not UNDEFINED:
            properties[name] = value
    instance_dict = _instance_dict(target)
    if instance_dict is not None:
        properties.update(instance_dict)
    return properties


def resolve_property(obj: Any, name: str) -> Any:
    """
    Get the effective value of ``name`` on ``obj``, accounting for shadowing.

    Lookup order for plain objects follows Python's own: data descriptors
    defined on the class, then the instance ``__dict__``, then class
    attributes (non-data descriptors are bound). Mappings use key lookup, so a
    ``ChainMap`` falls through its layers. Sequences accept integer segments.

    Never raises: anything missing or failing resolves to ``UNDEFINED``.

    Args:
        obj: Object to read from
        name: Property name (a path segment)

    Returns:
        The resolved value or ``UNDEFINED``
    """
    if is_value_type(obj):
        return UNDEFINED
    if isinstance(obj, Mapping):
        try:
            return obj[name] if name in obj else UNDEFINED
        except Exception:
            return UNDEFINED
    if isinstance(obj, Sequence):
        if not _is_index(name):
            return UNDEFINED
        index = int(name)
        return obj[index] if index < len(obj) else UNDEFINED

    class_attr = _class_attribute(obj, name)
    if class_attr is not UNDEFINED and _is_data_descriptor(class_attr):
        return _bind_descriptor(class_attr, obj)

    instance_dict = _instance_dict(obj)
    if instance_dict is not None and name in instance_dict:
        return instance_dict[name]

    if class_attr is UNDEFINED:
        return UNDEFINED
    if hasattr(type(class_attr), "__get__"):
        return _bind_descriptor(class_attr, obj)
    return class_attr


def assign_property(obj: Any, name: str, value: Any) -> bool:
    """
    Write ``value`` to ``name`` on ``obj`` if the object allows it.

    Read-only mappings, frozen instances, properties without setters and
    immutable scalars reject the write silently.

    Args:
        obj: Object to write to
        name: Property name (a path segment)
        value: Value to assign

    Returns:
        True if the assignment went through
    """
    if is_value_type(obj):
        return False
    if isinstance(obj, MutableMapping):
        try:
            obj[name] = value
        except (KeyError, TypeError):
            return False
        return True
    if isinstance(obj, Mapping):
        return False
    if isinstance(obj, MutableSequence):
        if not _is_index(name):
            return False
        index = int(name)
        if index < len(obj):
            obj[index] = value
        elif index == len(obj):
            obj.append(value)
        else:
            return False
        return True
    if isinstance(obj, Sequence):
        return False
    try:
        setattr(obj, name, value)
    except (AttributeError, TypeError):
        return False
    return True
