"""Data models for resource caches."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

ItemId = Any  # str | int
Item = Dict[str, Any]

# Domain events that change a collection in ways a delta cannot express.
DEFAULT_REFRESH_EVENTS: Dict[str, Tuple[str, ...]] = {
    "stock_adjusted": ("inventory", "stock"),
    "stock_transferred": ("inventory", "stock"),
    "products_imported": ("inventory", "products"),
    "leads_imported": ("leads",),
}

CONTROL_EVENTS: FrozenSet[str] = frozenset(
    {"connection_established", "ping", "pong", "heartbeat"}
)


@dataclass
class CacheConfig:
    """Behaviour switches for a ResourceCache.

    ``refresh_events`` maps a domain event kind to endpoint fragments;
    the event triggers a refetch only on caches whose endpoint contains
    one of the fragments.
    """

    auto_fetch: bool = True
    refresh_on_unrecognized: bool = True
    refresh_events: Dict[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_REFRESH_EVENTS)
    )


@dataclass
class Listing:
    """A normalised GET response."""

    items: List[Item] = field(default_factory=list)
    pagination: Optional[dict] = None


def normalize_listing(result: Any) -> Listing:
    """Accept the three response shapes a resource endpoint may return.

    * a bare list of items
    * an object with a ``data`` or ``items`` field (plus optional
      ``pagination``)
    * a single object, wrapped into a one-element collection
    """
    if result is None:
        return Listing()

    if isinstance(result, list):
        return Listing(items=[item for item in result if item is not None])

    if isinstance(result, dict):
        nested = result.get("data")
        if nested is None:
            nested = result.get("items")
        if nested is not None:
            pagination = result.get("pagination")
            if isinstance(nested, dict):
                nested = [nested]
            elif not isinstance(nested, list):
                nested = []
            return Listing(
                items=[item for item in nested if item is not None],
                pagination=pagination if isinstance(pagination, dict) else None,
            )
        return Listing(items=[result])

    return Listing()


def item_id(item: Any) -> Optional[ItemId]:
    """The ``id`` of a record, or None when it has none."""
    if isinstance(item, dict):
        return item.get("id")
    return None


def same_id(left: ItemId, right: ItemId) -> bool:
    """Compare ids loosely, so ``1`` and ``"1"`` match."""
    if left is None or right is None:
        return False
    return left == right or str(left) == str(right)
