"""Redis client management and keyspace layout for NvClip.

This module builds the Redis client with bounded retry/backoff and defines
the key naming used for mappings, counters and uptime state.

Flow Diagram — Redis Operations
=============================
::
    ┌─────────────┐
    │  Service    │
    │  call       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ shared      │
    │ client      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Command fails│──► retry with exponential backoff
    │ (conn/timeout)│    (capped, REDIS_MAX_RETRIES times)
    └─────────────┘

Keyspace
========
::
    clp:<slug>          -> target URL
    clp:total_links     -> decimal counter (INCR)
    clp:total_clicks    -> decimal counter (INCR)
    clp:uptime:start    -> epoch milliseconds
    clp:uptime          -> last computed uptime string

How to Use
===========
**Step 1 — Build keys**::
    keys = Keyspace(settings.KEY_PREFIX)
    await client.get(keys.slug("abc1"))

**Step 2 — Build a client**::
    client = create_redis(settings)
    await client.aclose()  # on shutdown

Key Behaviours
===============
- One client per process, owned by the service manager.
- ``rediss://`` URLs enable TLS.
- Connection and timeout errors are retried by the client itself; anything
  that still fails reaches the caller as a ``RedisError``.

Functions:
    create_redis():  Build a configured client.
"""

from dataclasses import dataclass

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, TimeoutError

from nvclip.config import Settings

__all__ = ["Keyspace", "create_redis"]


@dataclass(frozen=True)
class Keyspace:
    prefix: str = "clp"

    def slug(self, slug: str) -> str:
        return f"{self.prefix}:{slug}"

    @property
    def total_links(self) -> str:
        return f"{self.prefix}:total_links"

    @property
    def total_clicks(self) -> str:
        return f"{self.prefix}:total_clicks"

    @property
    def uptime_start(self) -> str:
        return f"{self.prefix}:uptime:start"

    @property
    def uptime(self) -> str:
        return f"{self.prefix}:uptime"


def create_redis(settings: Settings) -> redis.Redis:
    retry = Retry(
        ExponentialBackoff(
            cap=settings.REDIS_BACKOFF_CAP_SECONDS,
            base=settings.REDIS_BACKOFF_BASE_SECONDS,
        ),
        settings.REDIS_MAX_RETRIES,
    )
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        retry=retry,
        retry_on_error=[ConnectionError, TimeoutError],
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
    )

