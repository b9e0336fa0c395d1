"""
DeltaWatch Splices - Minimal Array Diffs
========================================

Projects the difference between two versions of a sequence onto a minimal
list of splices. A splice says "at ``index``, remove ``removed`` and insert
``added_count`` elements taken from the new sequence"; indices are expressed
in post-mutation coordinates, so replaying the splices in order over a copy of
the old sequence rebuilds the new one:

```python
old = ["a", "b", "c", "d"]
new = ["a", "x", "c", "d", "e"]

splices = project_splices(old, new)
# [Splice(index=1, removed=['b'], added_count=1),
#  Splice(index=4, removed=[], added_count=1)]

copy = list(old)
apply_splices(copy, new, splices)
assert copy == new
```

Algorithm
---------

1. Trim the common prefix and suffix, leaving only the changed window.
2. Fill the edit-distance table for the window (insert and delete cost 1, a
   match costs 0). Rows are computed with NumPy: the left-to-right dependency
   within a row is a running minimum, so each row is one
   ``np.minimum.accumulate``.
3. Backtrack from the last cell, preferring diagonal moves, and merge runs of
   adjacent edits into splices.

The table is quadratic in the window size, which stays small for the
incremental edits observers usually see.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Hashable, List, MutableSequence, Sequence

import numpy as np

from .values import identity_key


@dataclass
class Splice:
    """A single contiguous edit of a sequence."""

    index: int
    removed: List[Any] = field(default_factory=list)
    added_count: int = 0

    @property
    def cost(self) -> int:
        """Number of elements removed plus added."""
        return len(self.removed) + self.added_count


class EditOp(Enum):
    """Single-element steps of an alignment."""

    LEAVE = "leave"
    UPDATE = "update"
    ADD = "add"
    DELETE = "delete"


def _shared_prefix(new_keys: List[Hashable], old_keys: List[Hashable], limit: int) -> int:
    for i in range(limit):
        if new_keys[i] != old_keys[i]:
            return i
    return limit


def _shared_suffix(new_keys: List[Hashable], old_keys: List[Hashable], limit: int) -> int:
    count = 0
    new_index, old_index = len(new_keys), len(old_keys)
    while count < limit:
        new_index -= 1
        old_index -= 1
        if new_keys[new_index] != old_keys[old_index]:
            break
        count += 1
    return count


def _equality_matrix(old_keys: List[Hashable], new_keys: List[Hashable]) -> np.ndarray:
    """Boolean matrix ``eq[i, j]`` telling whether old[i] matches new[j]."""
    codes: Dict[Hashable, int] = {}
    old_codes = np.fromiter(
        (codes.setdefault(key, len(codes)) for key in old_keys),
        dtype=np.int64,
        count=len(old_keys),
    )
    new_codes = np.fromiter(
        (codes.setdefault(key, len(codes)) for key in new_keys),
        dtype=np.int64,
        count=len(new_keys),
    )
    return old_codes[:, None] == new_codes[None, :]


def edit_distances(matches: np.ndarray) -> np.ndarray:
    """
    Compute the insert/delete edit-distance table for a match matrix.

    Args:
        matches: Boolean matrix of shape (old_len, new_len)

    Returns:
        Integer table of shape (old_len + 1, new_len + 1); the last cell is the
        edit distance
    """
    rows, cols = matches.shape
    distances = np.zeros((rows + 1, cols + 1), dtype=np.int64)
    columns = np.arange(cols + 1, dtype=np.int64)
    distances[0] = columns
    no_match = np.int64(rows + cols + 1)

    for i in range(1, rows + 1):
        above = distances[i - 1]
        candidates = np.empty(cols + 1, dtype=np.int64)
        candidates[0] = i
        candidates[1:] = np.minimum(
            above[1:] + 1, np.where(matches[i - 1], above[:-1], no_match)
        )
        # row[j] = min(candidates[j], row[j - 1] + 1)
        distances[i] = np.minimum.accumulate(candidates - columns) + columns
    return distances


def edit_operations(distances: np.ndarray) -> List[EditOp]:
    """Backtrack an edit-distance table into a list of per-element steps."""
    table = distances.tolist()
    i = len(table) - 1
    j = len(table[0]) - 1
    current = table[i][j]
    ops: List[EditOp] = []

    while i > 0 or j > 0:
        if i == 0:
            ops.append(EditOp.ADD)
            j -= 1
            continue
        if j == 0:
            ops.append(EditOp.DELETE)
            i -= 1
            continue

        north_west = table[i - 1][j - 1]
        west = table[i - 1][j]
        north = table[i][j - 1]
        lowest = min(west, north, north_west)

        if lowest == north_west:
            if north_west == current:
                ops.append(EditOp.LEAVE)
            else:
                ops.append(EditOp.UPDATE)
                current = north_west
            i -= 1
            j -= 1
        elif lowest == west:
            ops.append(EditOp.DELETE)
            i -= 1
            current = west
        else:
            ops.append(EditOp.ADD)
            j -= 1
            current = north

    ops.reverse()
    return ops


def _splices_from_operations(
    ops: List[EditOp], old: Sequence, old_start: int, index: int
) -> List[Splice]:
    splices: List[Splice] = []
    splice = None
    old_index = old_start

    for op in ops:
        if op is EditOp.LEAVE:
            if splice is not None:
                splices.append(splice)
                splice = None
            index += 1
            old_index += 1
            continue

        if splice is None:
            splice = Splice(index)
        if op is not EditOp.DELETE:
            splice.added_count += 1
            index += 1
        if op is not EditOp.ADD:
            splice.removed.append(old[old_index])
            old_index += 1

    if splice is not None:
        splices.append(splice)
    return splices


def project_splices(old: Sequence, new: Sequence) -> List[Splice]:
    """
    Compute the minimal ordered splices that turn ``old`` into ``new``.

    Elements are compared with ``same_value`` semantics. The total cost
    (``sum(len(s.removed) + s.added_count)``) equals the insert/delete edit
    distance between the two sequences.

    Args:
        old: Previous contents
        new: Current contents

    Returns:
        Splices ordered by ascending index; empty when nothing changed
    """
    old = list(old)
    new = list(new)
    old_keys = [identity_key(value) for value in old]
    new_keys = [identity_key(value) for value in new]

    limit = min(len(old), len(new))
    prefix = _shared_prefix(new_keys, old_keys, limit)
    suffix = _shared_suffix(new_keys, old_keys, limit - prefix)

    new_start, new_end = prefix, len(new) - suffix
    old_start, old_end = prefix, len(old) - suffix

    if new_start == new_end and old_start == old_end:
        return []
    if new_start == new_end:
        return [Splice(new_start, old[old_start:old_end], 0)]
    if old_start == old_end:
        return [Splice(new_start, [], new_end - new_start)]

    matches = _equality_matrix(
        old_keys[old_start:old_end], new_keys[new_start:new_end]
    )
    ops = edit_operations(edit_distances(matches))
    return _splices_from_operations(ops, old, old_start, new_start)


def apply_splices(
    target: MutableSequence, reference: Sequence, splices: List[Splice]
) -> None:
    """
    Replay ``splices`` on ``target`` in place, copying added elements from
    ``reference`` (the post-mutation sequence the splices were computed for).

    Args:
        target: Sequence holding the pre-mutation contents; mutated
        reference: Post-mutation sequence
        splices: Output of ``project_splices``
    """
    for splice in splices:
        added = list(reference[splice.index : splice.index + splice.added_count])
        target[splice.index : splice.index + len(splice.removed)] = added


def edit_cost(splices: List[Splice]) -> int:
    """Total number of removed plus added elements."""
    return sum(splice.cost for splice in splices)
