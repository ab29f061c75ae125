#!/usr/bin/env python3
"""
stagecache - Basic Usage Example

Stores a few values, shows that reads see staged changes immediately, and
closes the cache so everything is flushed to disk.

Run:
    CACHE_DIR=/tmp/stagecache-demo python examples/basic_usage.py
"""

import asyncio
from datetime import timedelta

from stagecache.cache import close_all_caches, create_cache
from stagecache.config import get_config
from stagecache.observability import configure_logging


async def main() -> None:
    config = get_config()
    configure_logging(config.log_level, config.log_format)

    cache = create_cache(config.cache)

    await cache.set("answer", 42)
    await cache.set("primes", [2, 3, 5, 7])
    await cache.set("session", {"user": "demo"}, ttl=timedelta(minutes=5))

    print("answer:", await cache.get("answer"))
    print("primes:", await cache.get("primes"))
    print("missing:", await cache.get("missing", "n/a"))

    await cache.delete("answer")
    print("answer after delete:", await cache.has("answer"))

    print("stats:", await cache.get_stats())

    # Persists staged writes and deletes
    await close_all_caches()


if __name__ == "__main__":
    asyncio.run(main())
