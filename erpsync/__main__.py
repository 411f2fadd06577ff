"""Command-line tools for inspecting live channels and endpoints.

Usage:
    python -m erpsync watch crm contacts          # print envelopes as they arrive
    python -m erpsync watch global notifications
    python -m erpsync fetch /crm/contacts --param page=2 --param limit=20
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Dict, List, Optional, Sequence

from erpsync.logging_config import LogFormat, LoggingConfig, LogLevel, configure_logging
from erpsync.realtime import BROADCAST_ID, WILDCARD, ConnectionRegistry, RealtimeConfig
from erpsync.resources import CacheConfig, ResourceCache, ResourceClient
from erpsync.settings import get_settings

logger = logging.getLogger(__name__)


def parse_params(pairs: Optional[Sequence[str]]) -> Dict[str, str]:
    """Turn ``["page=2", "q=ada"]`` into a query mapping."""
    params = {}
    for pair in pairs or ():
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        params[key] = value
    return params


def _print_json(payload) -> None:
    print(json.dumps(payload, default=str), flush=True)


async def watch(resource_type: str, resource_id: str = BROADCAST_ID) -> None:
    """Print every envelope on one channel until cancelled."""
    settings = get_settings()
    async with ConnectionRegistry(RealtimeConfig.from_settings(settings)) as registry:
        session = registry.get_or_create(resource_type, resource_id)
        session.subscribe(WILDCARD, _print_json)
        result = await session.connect()
        if not result.ok:
            logger.warning("Channel %s not available yet: %s", session.key, result.reason)
        logger.info("Watching %s (Ctrl+C to stop)", session.url)
        await asyncio.Event().wait()


async def fetch(endpoint: str, params: Optional[Dict[str, str]] = None) -> List[dict]:
    """Run one fetch through a cache and print the items. Returns them."""
    async with ResourceClient() as client:
        cache = ResourceCache(endpoint, client, config=CacheConfig(auto_fetch=False))
        items = await cache.fetch(params)
        if cache.error:
            raise SystemExit(f"Fetch of {endpoint} failed: {cache.error}")
        _print_json({"items": items, "pagination": cache.pagination})
        return items


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="erpsync", description="Inspect ERP channels and endpoints")
    parser.add_argument("--log-level", default=None, choices=[level.value for level in LogLevel])
    parser.add_argument("--log-format", default=None, choices=[fmt.value for fmt in LogFormat])
    sub = parser.add_subparsers(dest="command", required=True)

    watch_parser = sub.add_parser("watch", help="Tail a push channel")
    watch_parser.add_argument("resource_type", help="Channel resource type (e.g. crm)")
    watch_parser.add_argument("resource_id", nargs="?", default=BROADCAST_ID, help="Resource id (default: all)")

    fetch_parser = sub.add_parser("fetch", help="GET an endpoint and print its items")
    fetch_parser.add_argument("endpoint", help="Endpoint path (e.g. /crm/contacts)")
    fetch_parser.add_argument("--param", action="append", default=[], metavar="KEY=VALUE", help="Query parameter")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = LoggingConfig.from_settings(get_settings())
    if args.log_level:
        config.level = LogLevel(args.log_level)
    if args.log_format:
        config.format = LogFormat(args.log_format)
    configure_logging(config)

    try:
        if args.command == "watch":
            asyncio.run(watch(args.resource_type, args.resource_id))
        else:
            try:
                params = parse_params(args.param)
            except ValueError as exc:
                parser.error(str(exc))
            asyncio.run(fetch(args.endpoint, params))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
