"""
Viewer-side aircraft selection stepping.

SELECT_AIRCRAFT carries only a direction; each viewer applies it to its own
aircraft list. Stepping past either end deselects, and stepping from a
deselected state enters the list at the end you are moving from.
"""
from typing import Iterable, Optional


def next_selection_index(count: int, current: Optional[int], direction: str) -> Optional[int]:
    """Return the next selected index, or None for no selection."""
    if count <= 0:
        return None
    if current is not None and not 0 <= current < count:
        current = None

    if direction == "forward":
        if current is None:
            return 0
        if current == count - 1:
            return None
        return current + 1

    if current is None:
        return count - 1
    if current == 0:
        return None
    return current - 1


def zone_view_order(hexes: Iterable[str]) -> list[str]:
    """Stable ordering used by zone mini-radar views (by ICAO hex)."""
    return sorted({h.lower() for h in hexes if h})


def step_selection(ordered: list[str], selected: Optional[str], direction: str) -> Optional[str]:
    """Apply one selection step to an ordered aircraft list."""
    current = ordered.index(selected) if selected in ordered else None
    index = next_selection_index(len(ordered), current, direction)
    return None if index is None else ordered[index]
