"""Resource cache: one consistent collection per REST endpoint.

The cache reconciles three sources into a single ordered list keyed by
``id``: the bulk fetch, confirmed responses to local mutations, and push
deltas arriving on the endpoint's channel.

Ordering between sources is by arrival only. If a push delta for an id
lands while a fetch is in flight, whichever completes last wins, so a
slow fetch can briefly restore fields that a push had already replaced.
There are no timestamps or version vectors behind this; it is the
accepted behaviour for a UI cache.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Union

from erpsync.logging_config import log_performance
from erpsync.realtime import WILDCARD, ChannelKey, ChannelSession, ConnectionRegistry

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
)
from .models import CacheConfig, Item, ItemId, item_id, normalize_listing, same_id

logger = logging.getLogger(__name__)


class ResourceCache:
    """Consistent, mutable view over one endpoint's collection.

    Example:
        cache = ResourceCache(
            "/crm/contacts",
            client,
            registry=registry,
            channel=ChannelKey("crm", "contacts"),
        )
        await cache.start()          # subscribe + initial fetch
        await cache.create({"name": "Ada"})
        print(cache.items, cache.loading, cache.error)
        await cache.close()
    """

    def __init__(
        self,
        endpoint: str,
        client: ResourceClient,
        registry: Optional[ConnectionRegistry] = None,
        channel: Union[ChannelKey, str, None] = None,
        config: Optional[CacheConfig] = None,
    ):
        if isinstance(channel, str):
            channel = ChannelKey.parse(channel)
        self._endpoint = endpoint
        self._client = client
        self._registry = registry
        self._channel = channel
        self._config = config or CacheConfig()

        self._items: List[Item] = []
        self._loading_count = 0
        self._error: Optional[str] = None
        self._pagination: Optional[dict] = None
        self._last_params: Optional[Dict[str, Any]] = None

        self._session: Optional[ChannelSession] = None
        self._unsubscribe = None
        self._refresh_tasks: Set[asyncio.Task] = set()
        self._refresh_again = False
        self._started = False
        self._closed = False
        self.last_exception: Optional[Exception] = None

    # ── Consumer-facing state ─────────────────────────────────────────

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def channel(self) -> Optional[ChannelKey]:
        return self._channel

    @property
    def items(self) -> List[Item]:
        """Copy of the current collection, in display order."""
        return [dict(item) for item in self._items]

    @property
    def loading(self) -> bool:
        return self._loading_count > 0

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def pagination(self) -> Optional[dict]:
        return self._pagination

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, id: ItemId) -> Optional[Item]:
        index = self._index_of(id)
        return None if index is None else dict(self._items[index])

    def snapshot(self) -> dict:
        """State as one mapping: items, loading, error, pagination."""
        return {
            "items": self.items,
            "loading": self.loading,
            "error": self.error,
            "pagination": self.pagination,
        }

    def set_items(self, items: List[Item]) -> None:
        """Replace the collection by hand (duplicate ids collapse)."""
        self._items = _collapse(items)

    def clear_error(self) -> None:
        self._error = None

    def __len__(self) -> int:
        return len(self._items)

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def start(self) -> "ResourceCache":
        """Subscribe to the channel (if any) and run the initial fetch."""
        if self._closed:
            raise RuntimeError(f"ResourceCache for {self._endpoint} is closed")
        if self._started:
            return self
        self._started = True

        if self._registry is not None and self._channel is not None:
            self._session = self._registry.get_or_create(self._channel)
            self._unsubscribe = self._session.subscribe(WILDCARD, self.apply_push)

        if self._config.auto_fetch:
            await self.fetch()
        return self

    async def close(self) -> None:
        """Stop listening and issuing requests.

        The channel itself is closed once no other subscriber uses it.
        Requests already in flight are not aborted.
        """
        if self._closed:
            return
        self._closed = True

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        session, self._session = self._session, None
        if session is None or self._registry is None:
            return
        # The registry may already hold a newer session for this key
        if self._registry.get(session.key) is session and session.router.subscriber_count == 0:
            await self._registry.close(session.key)

    async def __aenter__(self) -> "ResourceCache":
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ── Request operations ────────────────────────────────────────────

    @log_performance()
    async def fetch(self, params: Optional[Mapping[str, Any]] = None) -> List[Item]:
        """Reload the collection from the endpoint.

        Failures are recorded on ``error`` and logged but never raised,
        so passive refreshes cannot break a view.
        """
        if self._closed:
            logger.debug("Skipping fetch on closed cache %s", self._endpoint)
            return self.items

        self._last_params = dict(params) if params else None
        self._loading_count += 1
        self._error = None
        try:
            result = await self._client.list(self._endpoint, self._last_params)
        except Exception as exc:
            self.last_exception = exc
            self._error = str(exc) or "An error occurred"
            logger.error("Fetch of %s failed: %s", self._endpoint, exc)
        else:
            listing = normalize_listing(result)
            self._items = _collapse(listing.items)
            if listing.pagination is not None:
                self._pagination = listing.pagination
            logger.debug("Fetched %d items from %s", len(self._items), self._endpoint)
        finally:
            self._loading_count -= 1

        return self.items

    async def create(self, item: Mapping[str, Any]) -> Any:
        """POST a new item; the server's copy goes to the front on success."""
        self._ensure_open()
        try:
            created = await self._client.create(self._endpoint, item)
        except Exception as exc:
            self._record_failure(exc, "Failed to create item")
            raise

        if isinstance(created, dict):
            self._upsert_front(created)
        return created

    async def update(self, id: ItemId, patch: Mapping[str, Any]) -> Any:
        """PUT a patch; merge the confirmed fields into the cached item.

        The patch and then the server response are shallow-merged over the
        existing item, so fields neither mentions keep their local values.
        """
        self._ensure_open()
        try:
            updated = await self._client.update(self._endpoint, id, patch)
        except Exception as exc:
            self._record_failure(exc, "Failed to update item")
            raise

        fields = dict(patch)
        if isinstance(updated, dict):
            fields.update(updated)
        self._merge(id, fields)
        return updated

    async def remove(self, id: ItemId) -> bool:
        """DELETE an item; drop it locally on success."""
        self._ensure_open()
        try:
            await self._client.delete(self._endpoint, id)
        except Exception as exc:
            self._record_failure(exc, "Failed to delete item")
            raise

        self._discard(id)
        return True

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"ResourceCache for {self._endpoint} is closed")

    def _record_failure(self, exc: Exception, fallback: str) -> None:
        self.last_exception = exc
        self._error = str(exc) or fallback
        logger.warning("%s on %s: %s", fallback, self._endpoint, exc)

    # ── Push reconciliation ───────────────────────────────────────────

    def apply_push(self, message: Mapping[str, Any]) -> ResourceEvent:
        """Reconcile one push envelope into the collection."""
        event = classify_event(message, self._endpoint, self._config.refresh_events)

        if isinstance(event, Created):
            self._upsert_front(event.item)
        elif isinstance(event, Updated):
            self._merge(event.id, event.item)
        elif isinstance(event, Deleted):
            self._discard(event.id)
        elif isinstance(event, Refresh):
            self._schedule_refresh(event.reason)
        elif isinstance(event, Unrecognized):
            if self._config.refresh_on_unrecognized:
                self._schedule_refresh(f"unrecognized event {event.kind!r}")
            else:
                logger.debug("Unhandled real-time update on %s: %s", self._endpoint, event.kind)
        elif isinstance(event, Control):
            logger.debug("Control event %s on %s", event.kind, self._endpoint)

        return event

    def _schedule_refresh(self, reason: str) -> None:
        if self._closed:
            return
        if self._refresh_tasks:
            # Events after the pending GET went out need one more pass
            self._refresh_again = True
            logger.debug("Refresh of %s already pending (%s)", self._endpoint, reason)
            return

        logger.info("Refreshing %s: %s", self._endpoint, reason)
        task = asyncio.ensure_future(self._refresh())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _refresh(self) -> None:
        self._refresh_again = True
        while self._refresh_again and not self._closed:
            self._refresh_again = False
            await self.fetch(self._last_params)

    async def wait_for_refresh(self) -> None:
        """Wait until scheduled refreshes have completed."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)

    # ── Identity-keyed mutation ───────────────────────────────────────

    def _index_of(self, id: ItemId) -> Optional[int]:
        for index, item in enumerate(self._items):
            if same_id(item_id(item), id):
                return index
        return None

    def _upsert_front(self, item: Item) -> None:
        index = self._index_of(item_id(item))
        if index is None:
            self._items.insert(0, dict(item))
        else:
            self._items[index] = {**self._items[index], **item}

    def _merge(self, id: ItemId, fields: Mapping[str, Any]) -> bool:
        index = self._index_of(id)
        if index is None:
            logger.debug("Update for unknown id %r on %s ignored", id, self._endpoint)
            return False
        self._items[index] = {**self._items[index], **fields}
        return True

    def _discard(self, id: ItemId) -> bool:
        index = self._index_of(id)
        if index is None:
            return False
        del self._items[index]
        return True

    def __repr__(self) -> str:
        return f"ResourceCache({self._endpoint!r}, items={len(self._items)})"


def _collapse(items: List[Any]) -> List[Item]:
    """Keep server order while folding repeated ids into their first slot."""
    collapsed: List[Item] = []
    positions: Dict[str, int] = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        key = item_id(item)
        if key is None:
            collapsed.append(dict(item))
            continue
        position = positions.get(str(key))
        if position is None:
            positions[str(key)] = len(collapsed)
            collapsed.append(dict(item))
        else:
            collapsed[position] = {**collapsed[position], **item}
    return collapsed
