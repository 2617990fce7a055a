"""
Inventory lookups for rail assembly.

The inventory collaborator hands us, per category id, either the list of
currently available events (mappings with an "id" key, or objects with an
`.id` attribute) or a bare available count. Counts cannot be veto-filtered,
so they are taken as-is.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Union

InventoryValue = Union[Sequence[Any], int]
Inventory = Mapping[str, InventoryValue]


class ComputationError(RuntimeError):
    """Unexpected data inside scoring, generation, or assembly."""


def event_id(event: Any) -> str | None:
    """Return an inventory event's id, or None when it has none."""
    if isinstance(event, Mapping):
        value = event.get("id")
    else:
        value = getattr(event, "id", None)
    return None if value is None else str(value)


def usable_events(events: Sequence[Any], excluded: frozenset[str] | set[str]) -> list[Any]:
    """Events whose id is not in `excluded`, original order kept."""
    return [e for e in events if event_id(e) not in excluded]


def usable_inventory(
    category_id: str,
    inventory: Inventory,
    vetoed: frozenset[str] | set[str],
) -> int:
    """
    Available events for a category minus the vetoed ones among them.

    Raises:
        ComputationError when the inventory value is neither a sequence of
        events nor an int.
    """
    available = inventory.get(category_id)
    if available is None:
        return 0
    if isinstance(available, bool):
        raise ComputationError(f"inventory for {category_id!r} is a bool")
    if isinstance(available, int):
        return max(available, 0)
    if isinstance(available, (str, bytes)) or not isinstance(available, Sequence):
        raise ComputationError(
            f"inventory for {category_id!r} must be a list of events or a count, "
            f"got {type(available).__name__}"
        )
    return len(usable_events(available, vetoed))
