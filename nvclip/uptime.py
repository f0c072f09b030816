"""Uptime tracking shared across restarts through the key-value store.

State Machine
=============
::
    ┌───────────────┐  initialize()   ┌───────────────┐
    │ Uninitialized │ ──────────────► │    Running    │◄──┐
    │ (no start key)│                 │ start persisted│   │ reset()
    └───────────────┘                 └───────┬───────┘   │ start := now
                                              │           │ uptime := "0s"
                                              └───────────┘

``initialize()`` resumes from ``clp:uptime:start`` when present so uptime
survives process restarts; otherwise it persists the current time. The start
time is cached in the process and only ``reset()`` changes it afterwards.
Requests refresh ``clp:uptime`` with a freshly formatted string.

Formatting
==========
Elapsed time is bucketed into days/hours/minutes/seconds and rendered with at
most three units::

    >= 1 day     "1d 1h 0m"
    >= 1 hour    "1h 1m 1s"
    >= 1 minute  "1m 30s"
    otherwise    "42s"
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from nvclip.redis import Keyspace

__all__ = ["ResetResult", "UptimeTracker", "calculate_uptime", "format_uptime", "to_iso"]


def format_uptime(elapsed_ms: int) -> str:
    seconds = max(int(elapsed_ms), 0) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d {hours % 24}h {minutes % 60}m"
    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def calculate_uptime(start_ms: Optional[int], now_ms: Optional[int] = None) -> str:
    if not start_ms:
        return "0s"
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return format_uptime(now_ms - start_ms)


def to_iso(epoch_ms: int) -> str:
    """Render epoch milliseconds as an ISO-8601 UTC string, e.g. ``2026-02-02T10:00:00.000Z``."""
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_ms(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass
class ResetResult:
    old_start_ms: Optional[int]
    old_uptime: Optional[str]
    new_start_ms: int
    start_persisted: bool
    uptime_persisted: bool


class UptimeTracker:
    """Process-wide holder of the server start time.

    Reads of ``start_ms`` never block. Writers (``initialize`` and ``reset``)
    are serialized by an asyncio lock, so the last reset wins and in-flight
    requests observe either the old or the new start time.
    """

    def __init__(
        self,
        store: redis.Redis,
        keys: Keyspace,
        logger: logging.Logger | logging.LoggerAdapter,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._keys = keys
        self._logger = logger
        self._clock = clock
        self._write_lock = asyncio.Lock()
        self._start_ms = self.now_ms()
        self._initialized = False

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def start_ms(self) -> int:
        return self._start_ms

    @property
    def initialized(self) -> bool:
        return self._initialized

    def current_uptime(self, start_ms: Optional[int] = None) -> str:
        return calculate_uptime(start_ms if start_ms is not None else self._start_ms, self.now_ms())

    async def initialize(self) -> None:
        """Resume or create persisted uptime state and seed missing counters.

        Store errors are logged and swallowed so the HTTP front can still come
        up; the in-memory start time then stays at process start.
        """
        async with self._write_lock:
            try:
                existing = _parse_ms(await self._store.get(self._keys.uptime_start))
                if existing is None:
                    await self._store.set(self._keys.uptime_start, str(self._start_ms))
                    self._logger.info("Initialized new uptime start time")
                else:
                    self._start_ms = existing
                    self._logger.info(f"Resumed uptime from: {to_iso(existing)}")

                for counter in (self._keys.total_links, self._keys.total_clicks):
                    # NX keeps a concurrently created counter intact.
                    if await self._store.set(counter, "0", nx=True):
                        self._logger.info(f"Initialized counter {counter}")

                if not await self._store.get(self._keys.uptime):
                    uptime = self.current_uptime()
                    await self._store.set(self._keys.uptime, uptime)
                    self._logger.info(f"Initialized uptime: {uptime}")
            except RedisError as exc:
                self._logger.error(f"Error initializing stats: {exc}")
            self._initialized = True

    async def refresh(self, start_ms: Optional[int] = None) -> str:
        uptime = self.current_uptime(start_ms)
        await self._store.set(self._keys.uptime, uptime)
        return uptime

    async def persisted_start_ms(self) -> int:
        stored = _parse_ms(await self._store.get(self._keys.uptime_start))
        return stored if stored is not None else self._start_ms

    async def reset(self) -> ResetResult:
        async with self._write_lock:
            old_start = _parse_ms(await self._store.get(self._keys.uptime_start))
            old_uptime = await self._store.get(self._keys.uptime)

            new_start = self.now_ms()
            self._start_ms = new_start
            await self._store.set(self._keys.uptime_start, str(new_start))
            await self._store.set(self._keys.uptime, "0s")

            verify_start = await self._store.get(self._keys.uptime_start)
            verify_uptime = await self._store.get(self._keys.uptime)

        old_start_iso = to_iso(old_start) if old_start is not None else "none"
        self._logger.info(
            f"Uptime reset: old start={old_start_iso} old uptime={old_uptime or 'none'} new start={to_iso(new_start)}"
        )
        return ResetResult(
            old_start_ms=old_start,
            old_uptime=old_uptime,
            new_start_ms=new_start,
            start_persisted=bool(verify_start),
            uptime_persisted=bool(verify_uptime),
        )
