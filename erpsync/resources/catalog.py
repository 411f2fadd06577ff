"""Module catalogs: the ERP's endpoints and the channels that feed them.

Each module (CRM, inventory, HRMS, purchase) names its collections, the
REST endpoint behind each one and the channel carrying its push deltas.
Report and analytics endpoints have no channel and are fetched on demand.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from erpsync.realtime import ChannelKey, ConnectionRegistry

from .cache import ResourceCache
from .client import ResourceClient
from .models import CacheConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    endpoint: str
    channel: Optional[ChannelKey] = None
    auto_fetch: bool = True


def _entry(endpoint: str, resource_type: str = "", resource_id: str = "", auto_fetch: bool = True) -> CatalogEntry:
    channel = ChannelKey(resource_type, resource_id) if resource_type else None
    return CatalogEntry(endpoint=endpoint, channel=channel, auto_fetch=auto_fetch)


MODULE_CATALOGS: Dict[str, Dict[str, CatalogEntry]] = {
    "crm": {
        "dashboard": _entry("/crm/dashboard", "crm", "dashboard"),
        "contacts": _entry("/crm/contacts", "crm", "contacts"),
        "deals": _entry("/crm/deals", "crm", "deals"),
        "analytics.leads": _entry("/crm/analytics/leads", "crm", "analytics"),
        "analytics.pipeline": _entry("/crm/analytics/pipeline", "crm", "analytics"),
        "tasks": _entry("/crm/tasks/upcoming", "crm", "tasks"),
        "activities": _entry("/crm/activities/recent", "crm", "activities"),
    },
    "inventory": {
        "dashboard": _entry("/inventory/dashboard", "inventory", "dashboard"),
        "products": _entry("/inventory/products", "inventory", "products"),
        "warehouses": _entry("/inventory/warehouses", "inventory", "warehouses"),
        "stock": _entry("/inventory/stock", "inventory", "stock"),
        "transactions": _entry("/inventory/transactions", "inventory", "transactions"),
        "alerts.low_stock": _entry("/inventory/alerts/low-stock", "inventory", "alerts"),
        "alerts.expiring": _entry("/inventory/alerts/expiring", "inventory", "alerts"),
        "reports.value": _entry("/inventory/reports/value", auto_fetch=False),
    },
    "hrms": {
        "dashboard": _entry("/hrms/dashboard", "hrms", "dashboard"),
        "employees": _entry("/hrms/employees", "hrms", "employees"),
        "departments": _entry("/hrms/departments", "hrms", "departments"),
        "positions": _entry("/hrms/positions", "hrms", "positions"),
        "attendance": _entry("/hrms/attendance", "hrms", "attendance"),
        "leave_types": _entry("/hrms/leave-types"),
        "leave_requests": _entry("/hrms/leave-requests", "hrms", "leave-requests"),
        "payroll": _entry("/hrms/payroll", "hrms", "payroll"),
    },
    "purchase": {
        "dashboard": _entry("/purchase/dashboard", "purchase", "dashboard"),
        "suppliers": _entry("/purchase/suppliers", "purchase", "suppliers"),
        "requests": _entry("/purchase/requests", "purchase", "requests"),
        "orders": _entry("/purchase/orders", "purchase", "orders"),
        "analytics.top_suppliers": _entry("/purchase/analytics/top-suppliers", auto_fetch=False),
        "analytics.trends": _entry("/purchase/analytics/trends", auto_fetch=False),
        "analytics.category_summary": _entry("/purchase/analytics/category-summary", auto_fetch=False),
    },
}


def build_module(
    name: str,
    client: ResourceClient,
    registry: Optional[ConnectionRegistry] = None,
) -> Dict[str, ResourceCache]:
    """Create the (unstarted) caches for one module, keyed by collection name."""
    try:
        catalog = MODULE_CATALOGS[name]
    except KeyError:
        raise ValueError(f"Unknown module {name!r}; expected one of {sorted(MODULE_CATALOGS)}") from None

    caches = {}
    for collection, entry in catalog.items():
        caches[collection] = ResourceCache(
            entry.endpoint,
            client,
            registry=registry if entry.channel is not None else None,
            channel=entry.channel,
            config=CacheConfig(auto_fetch=entry.auto_fetch),
        )
    return caches


async def start_all(caches: Iterable[ResourceCache]) -> None:
    """Start caches concurrently; fetch failures stay on each cache's error."""
    caches = list(caches)
    await asyncio.gather(*(cache.start() for cache in caches))
    failed = [cache.endpoint for cache in caches if cache.error]
    if failed:
        logger.warning("Initial fetch failed for %d endpoints: %s", len(failed), ", ".join(failed))


async def close_all(caches: Iterable[ResourceCache]) -> None:
    for cache in caches:
        await cache.close()
