"""NvClip Service Layer - Slug Allocation and Redirect Resolution

This module holds the core business logic: allocating slugs for new mappings,
resolving slugs for redirects, and the operational stats built on top of the
store counters.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                      ClipService                            │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │ Mapping         │  │ Redirect        │  │ Stats        │ │
    │  │                 │  │                 │  │              │ │
    │  │ • Validate URL  │  │ • Reserved mask │  │ • Counters   │ │
    │  │ • SET NX claim  │  │ • GET mapping   │  │ • Uptime     │ │
    │  │ • Retry on hit  │  │ • INCR clicks   │  │ • Health     │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                                 │
                                 ▼
                      ┌─────────────────────┐
                      │  Redis (clp:* keys) │
                      └─────────────────────┘

Slug Allocation Flow
--------------------
::
    ┌─────────────┐
    │  /new       │
    └──────┬──────┘
           ▼
    ┌─────────────┐   missing  ──► MissingUrl (400)
    │ Check URL   │   invalid  ──► InvalidUrl (400)
    └──────┬──────┘
           ▼
    CUSTOM SLUG?
    ┌─────┴──────────────┐
    │ YES                 │ NO
    ▼                     ▼
┌──────────┐        ┌──────────────┐
│ SET NX   │        │ generate +   │◄─┐ taken, attempts left
│ clp:slug │        │ SET NX       │──┘
└────┬─────┘        └──────┬───────┘
 taken? ──► SlugConflict   │ exhausted ──► plain SET (or AllocationExhausted
     │        (409)        │                in strict mode)
     └─────────┬───────────┘
               ▼
    ┌─────────────────┐
    │ INCR total_links│
    └────────┬────────┘
             ▼
      {APP_DOMAIN}/{slug}

Redirect Flow
-------------
::
    GET /:slug ─► reserved? ─► NotFound (404)
                     │ no
                     ▼
               GET clp:slug ─► missing ─► NotFound (404)
                     │ found
                     ▼
            INCR total_clicks, refresh uptime ─► 302 Location: target

Consistency Notes
=================
- The existence check and the write are one ``SET ... NX`` round trip, so two
  concurrent requests for the same custom slug cannot both succeed.
- Counters use ``INCR`` and never lose concurrent updates; they are usage
  counters, not exact cardinalities.
- Redis errors that survive the client's own retries become
  ``StoreUnavailable``; the detail is logged, not returned.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from prometheus_client import Counter, Histogram
from redis.exceptions import RedisError

from nvclip.enums import AllocationMode, HealthStatus, RequestStatus
from nvclip.errors import (
    AllocationExhausted,
    ClipError,
    InvalidUrl,
    MissingUrl,
    NotFound,
    SlugConflict,
    StoreUnavailable,
)
from nvclip.slugs import generate_slug, is_reserved
from nvclip.uptime import ResetResult, to_iso
from nvclip.validation import is_valid_url

__all__ = ["ClipService", "HealthReport", "StatsSnapshot"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

ALLOCATION_REQUESTS_TOTAL = Counter(
    "nvclip_allocation_requests_total",
    "Total slug allocation requests",
    ["status", "mode"],
)
ALLOCATION_DURATION = Histogram(
    "nvclip_allocation_duration_seconds",
    "Time taken to allocate a slug and persist the mapping",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)
SLUG_COLLISIONS_TOTAL = Counter(
    "nvclip_slug_collisions_total",
    "Generated slug candidates that were already taken",
)
FORCED_ALLOCATIONS_TOTAL = Counter(
    "nvclip_forced_allocations_total",
    "Generated slugs written without a free-slot guarantee after exhausting retries",
)
REDIRECT_REQUESTS_TOTAL = Counter(
    "nvclip_redirect_requests_total",
    "Total redirect lookups",
    ["status"],
)
REDIRECT_DURATION = Histogram(
    "nvclip_redirect_duration_seconds",
    "Time taken to resolve a slug",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
STORE_ERRORS_TOTAL = Counter(
    "nvclip_store_errors_total",
    "Redis operations that failed after client retries",
    ["operation"],
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class StatsSnapshot:
    total_links: int
    total_clicks: int
    uptime: str
    current_time: str
    raw_total_links: Optional[str]
    raw_total_clicks: Optional[str]
    raw_uptime: Optional[str]


@dataclass
class HealthReport:
    status: HealthStatus
    uptime: str
    server_start_time: str
    timestamp: str


def _to_int(value: Optional[str]) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================

class ClipService:
    """Core service class for slug allocation, redirects and stats.

    Example:
        >>> service = ClipService.from_context(ctx)
        >>> short_url = await service.allocate("https://example.com")
        >>> target = await service.resolve(short_url.rsplit("/", 1)[-1])
    """

    def __init__(self, ctx: "RequestContext"):
        self._store = ctx.store
        self._keys = ctx.keys
        self._uptime = ctx.uptime
        self._logger = ctx.logger
        self._settings = ctx.settings

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "ClipService":
        return cls(ctx)

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def allocate(self, target_url: Optional[str], requested_slug: Optional[str] = None) -> str:
        """Create a mapping and return its fully-qualified short URL.

        Args:
            target_url: Absolute URL to redirect to.
            requested_slug: Custom slug; ``None`` or ``""`` generates one.

        Returns:
            str: ``{APP_DOMAIN}/{slug}``

        Raises:
            MissingUrl: ``target_url`` is absent or empty.
            InvalidUrl: ``target_url`` is not an absolute URL.
            SlugConflict: the custom slug is already mapped.
            AllocationExhausted: strict mode and every generated candidate was taken.
            StoreUnavailable: Redis could not be reached.
        """
        start_time = time.perf_counter()
        mode = AllocationMode.CUSTOM if requested_slug else AllocationMode.GENERATED

        try:
            if not target_url:
                raise MissingUrl()
            if not is_valid_url(target_url):
                raise InvalidUrl()

            with self._store_errors("allocate"):
                if requested_slug:
                    slug = await self._claim_custom_slug(requested_slug, target_url)
                else:
                    slug, mode = await self._claim_generated_slug(target_url)
                await self._store.incr(self._keys.total_links)

        except (MissingUrl, InvalidUrl) as exc:
            ALLOCATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR, mode=mode).inc()
            self._logger.warning(f"Allocation rejected: {exc.message}")
            raise
        except SlugConflict:
            ALLOCATION_REQUESTS_TOTAL.labels(status=RequestStatus.CONFLICT, mode=mode).inc()
            self._logger.warning(f"Custom slug already taken: {requested_slug}")
            raise
        except ClipError:
            ALLOCATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR, mode=mode).inc()
            raise
        finally:
            ALLOCATION_DURATION.observe(time.perf_counter() - start_time)

        ALLOCATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, mode=mode).inc()
        self._logger.info(f"Allocated slug {slug} ({mode}) -> {target_url}")
        return self.short_url(slug)

    async def resolve(self, slug: str) -> str:
        """Return the target URL for ``slug`` and count the click.

        Reserved names are always reported as not found, even when a mapping
        exists under that key.
        """
        start_time = time.perf_counter()
        try:
            if is_reserved(slug):
                raise NotFound()

            with self._store_errors("resolve"):
                target_url = await self._store.get(self._keys.slug(slug))
                if not target_url:
                    raise NotFound()
                await self._store.incr(self._keys.total_clicks)
                await self._uptime.refresh()

        except NotFound:
            REDIRECT_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            self._logger.debug(f"Slug not found: {slug}")
            raise
        except ClipError:
            REDIRECT_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            raise
        finally:
            REDIRECT_DURATION.observe(time.perf_counter() - start_time)

        REDIRECT_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        return target_url

    async def collect_stats(self) -> StatsSnapshot:
        with self._store_errors("stats"):
            raw_links = await self._store.get(self._keys.total_links)
            raw_clicks = await self._store.get(self._keys.total_clicks)
            start_ms = await self._uptime.persisted_start_ms()
            uptime = await self._uptime.refresh(start_ms)
            raw_uptime = await self._store.get(self._keys.uptime)

        return StatsSnapshot(
            total_links=_to_int(raw_links),
            total_clicks=_to_int(raw_clicks),
            uptime=uptime,
            current_time=to_iso(self._uptime.now_ms()),
            raw_total_links=raw_links,
            raw_total_clicks=raw_clicks,
            raw_uptime=raw_uptime,
        )

    async def check_health(self) -> HealthReport:
        """Ping the store and refresh the persisted uptime string.

        Raises:
            StoreUnavailable: ping or uptime write failed.
        """
        with self._store_errors("health"):
            await self._store.ping()
            uptime = await self._uptime.refresh()

        return HealthReport(
            status=HealthStatus.HEALTHY,
            uptime=uptime,
            server_start_time=to_iso(self._uptime.start_ms),
            timestamp=to_iso(self._uptime.now_ms()),
        )

    async def reset_uptime(self) -> ResetResult:
        with self._store_errors("reset_uptime"):
            return await self._uptime.reset()

    def short_url(self, slug: str) -> str:
        return f"{self._settings.APP_DOMAIN.rstrip('/')}/{slug}"

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _claim_custom_slug(self, slug: str, target_url: str) -> str:
        claimed = await self._store.set(self._keys.slug(slug), target_url, nx=True)
        if not claimed:
            raise SlugConflict()
        return slug

    async def _claim_generated_slug(self, target_url: str) -> tuple[str, AllocationMode]:
        max_attempts = max(self._settings.SLUG_MAX_ATTEMPTS, 1)
        candidate = generate_slug()
        for attempt in range(1, max_attempts + 1):
            if await self._store.set(self._keys.slug(candidate), target_url, nx=True):
                return candidate, AllocationMode.GENERATED
            SLUG_COLLISIONS_TOTAL.inc()
            self._logger.debug(f"Slug collision on attempt {attempt}: {candidate}")
            candidate = generate_slug()

        if self._settings.SLUG_STRICT_ALLOCATION:
            self._logger.error(f"No free slug after {max_attempts} attempts")
            raise AllocationExhausted()

        # Historical policy: write the last candidate even if it may overwrite.
        FORCED_ALLOCATIONS_TOTAL.inc()
        self._logger.warning(f"No free slug after {max_attempts} attempts, writing {candidate} unconditionally")
        await self._store.set(self._keys.slug(candidate), target_url)
        return candidate, AllocationMode.FORCED

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except RedisError as exc:
            STORE_ERRORS_TOTAL.labels(operation=operation).inc()
            self._logger.error(f"Store error during {operation}: {exc}")
            raise StoreUnavailable() from exc
