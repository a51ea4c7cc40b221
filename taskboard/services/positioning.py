"""Fractional positioning for ordered collections (lists on a board, cards
in a list).

Every ordered entity carries a float `position`; display order is ascending
position. Inserting or moving an entity computes ONE new position from its
neighbours instead of renumbering siblings:

    empty collection     -> DEFAULT_POSITION
    index 0              -> first / 2         (first - GAP when first <= 0)
    index len(siblings)  -> last + GAP
    between two          -> (prev + next) / 2

Repeated midpoint insertion halves the gap every time. Once the candidate no
longer lands strictly between its neighbours, or the gap drops below usable
float resolution, the placement comes back with `rebalanced` set: every
sibling re-spaced GAP apart in display order, the new entity included.
Callers must persist the whole rebalanced sequence, not just `position`.

Pure functions only. The server and the client library both import this
module so a position computed optimistically on a client is the same value
the server would compute.
"""

import math
from typing import List, NamedTuple, Optional, Sequence

GAP = 1024.0
DEFAULT_POSITION = GAP

# Relative spacing under which two neighbours are treated as colliding.
# Doubles carry 52 mantissa bits; leave headroom well before that.
RESOLUTION = 2.0 ** -40

# Explicit client positions outside this range are rejected.
MAX_ABS_POSITION = 1e15


class Placement(NamedTuple):
    """Result of placing one entity among its siblings.

    position:   the entity's new sort key.
    rebalanced: None when only the entity moves; otherwise the complete
                sequence of positions for the siblings + entity in display
                order (len(siblings) + 1 values, entity at `index`).
    """

    position: float
    rebalanced: Optional[List[float]] = None


def rebalance(count: int) -> List[float]:
    """Evenly spaced positions for `count` entities: GAP, 2*GAP, ..."""
    return [GAP * (i + 1) for i in range(count)]


def _too_close(lower: float, upper: float) -> bool:
    """True when no usable float remains between `lower` and `upper`."""
    if not lower < upper:
        return True
    scale = max(abs(lower), abs(upper), 1.0)
    return (upper - lower) <= scale * RESOLUTION


def place(positions: Sequence[float], index: int) -> Placement:
    """Compute the position for an entity inserted at `index`.

    Args:
        positions: Existing sibling positions in ascending order. The entity
            being moved must NOT be included.
        index: Target display index, 0..len(positions) inclusive.

    Returns:
        A Placement. When `rebalanced` is set, `position == rebalanced[index]`.

    Raises:
        IndexError: If index is outside 0..len(positions).
    """
    count = len(positions)
    if index < 0 or index > count:
        raise IndexError(f"target index {index} outside 0..{count}")

    if count == 0:
        return Placement(DEFAULT_POSITION)

    if index == 0:
        first = positions[0]
        candidate = first / 2 if first > 0 else first - GAP
        if candidate < first and not _too_close(candidate, first):
            return Placement(candidate)
    elif index == count:
        last = positions[-1]
        candidate = last + GAP
        if candidate > last:
            return Placement(candidate)
    else:
        prev, nxt = positions[index - 1], positions[index]
        candidate = (prev + nxt) / 2
        if prev < candidate < nxt and not (
            _too_close(prev, candidate) or _too_close(candidate, nxt)
        ):
            return Placement(candidate)

    spaced = rebalance(count + 1)
    return Placement(spaced[index], spaced)


def append_position(positions: Sequence[float]) -> float:
    """Position for appending after every sibling: max + GAP, or the default."""
    if not positions:
        return DEFAULT_POSITION
    return max(positions) + GAP


def is_valid_position(value) -> bool:
    """Numeric, finite and inside the accepted range. Booleans are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        value = float(value)
    except OverflowError:
        return False
    return math.isfinite(value) and abs(value) <= MAX_ABS_POSITION


def index_for_position(positions: Sequence[float], position: float) -> int:
    """Display index an entity at `position` occupies among `positions`.

    Ties go after existing equal positions, matching a stable sort.
    """
    for i, existing in enumerate(positions):
        if existing > position:
            return i
    return len(positions)


def is_strictly_ascending(positions: Sequence[float]) -> bool:
    return all(a < b for a, b in zip(positions, positions[1:]))
