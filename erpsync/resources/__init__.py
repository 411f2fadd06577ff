"""Resource caches: REST collections kept in sync with push deltas."""

from .cache import ResourceCache
from .catalog import MODULE_CATALOGS, CatalogEntry, build_module, close_all, start_all
from .client import ResourceClient
from .events import (
    Control,
    Created,
    Deleted,
    Refresh,
    ResourceEvent,
    Unrecognized,
    Updated,
    classify_event,
    event_payload,
)
from .models import (
    CONTROL_EVENTS,
    DEFAULT_REFRESH_EVENTS,
    CacheConfig,
    Listing,
    item_id,
    normalize_listing,
    same_id,
)

__all__ = [
    # Client
    "ResourceClient",
    # Models
    "CONTROL_EVENTS",
    "DEFAULT_REFRESH_EVENTS",
    "CacheConfig",
    "Listing",
    "item_id",
    "normalize_listing",
    "same_id",
    # Events
    "Control",
    "Created",
    "Deleted",
    "Refresh",
    "ResourceEvent",
    "Unrecognized",
    "Updated",
    "classify_event",
    "event_payload",
    # Cache
    "ResourceCache",
    # Catalog
    "MODULE_CATALOGS",
    "CatalogEntry",
    "build_module",
    "close_all",
    "start_all",
]
