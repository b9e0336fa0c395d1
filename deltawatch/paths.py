"""
DeltaWatch Paths - Dotted Path Parsing and Access
=================================================

A path is a dot-delimited sequence of property names, e.g. ``"user.address.city"``
or ``"items.0.title"``. Each segment must be an identifier or a non-negative
integer index; a path with any other segment is malformed and resolves to
``UNDEFINED`` everywhere instead of raising.

Parsed paths are cached in an LRU cache since the same path strings are
observed and resolved over and over.
"""

import re
from typing import Any, Optional, Tuple

from cachetools import LRUCache

from .values import UNDEFINED, assign_property, is_value_type, resolve_property

PATH_CACHE_SIZE = 1024

_SEGMENT = re.compile(r"^(?:[A-Za-z_$][A-Za-z0-9_$]*|[0-9]+)$")

_parse_cache: LRUCache = LRUCache(maxsize=PATH_CACHE_SIZE)
_MISSING = object()


def parse_path(path: Any) -> Optional[Tuple[str, ...]]:
    """
    Split a path string into its segments.

    Args:
        path: Dotted path string; integers are accepted as single index paths

    Returns:
        Tuple of segments (empty for the empty path), or None if malformed
    """
    if isinstance(path, int) and not isinstance(path, bool) and path >= 0:
        path = str(path)
    if not isinstance(path, str):
        return None

    cached = _parse_cache.get(path, _MISSING)
    if cached is not _MISSING:
        return cached

    segments: Optional[Tuple[str, ...]] = tuple(path.split(".")) if path else ()
    if not all(_SEGMENT.match(segment) for segment in segments):
        segments = None
    _parse_cache[path] = segments
    return segments


def format_path(segments: Tuple[str, ...]) -> str:
    """Join segments back into a path string."""
    return ".".join(segments)


def clear_path_cache() -> None:
    """Drop all cached parse results."""
    _parse_cache.clear()


def resolve_segments(root: Any, segments: Tuple[str, ...]) -> Any:
    """Walk already-parsed segments from ``root``."""
    value = root
    for segment in segments:
        value = resolve_property(value, segment)
        if value is UNDEFINED:
            break
    return value


def get_value_at_path(root: Any, path: Any) -> Any:
    """
    Resolve ``path`` against ``root``.

    The empty path yields ``root`` itself, even when it is ``None`` or a
    scalar. Scalars have no properties, so any non-empty path on them yields
    ``UNDEFINED``.

    Args:
        root: Object the path starts from
        path: Dotted path string

    Returns:
        The value at the path, or ``UNDEFINED``
    """
    segments = parse_path(path)
    if segments is None:
        return UNDEFINED
    return resolve_segments(root, segments)


def set_value_at_path(root: Any, path: Any, value: Any) -> bool:
    """
    Assign ``value`` at ``path`` below ``root``.

    A no-op when the path is malformed or empty, when an intermediate segment
    is missing or is not an object, or when the final write is rejected.

    Args:
        root: Object the path starts from
        path: Dotted path string
        value: Value to assign

    Returns:
        True if the value was written
    """
    segments = parse_path(path)
    if not segments:
        return False
    parent = resolve_segments(root, segments[:-1])
    if is_value_type(parent):
        return False
    return assign_property(parent, segments[-1], value)
