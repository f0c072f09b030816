"""FastAPI route definitions for the NvClip REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200) or 500 when Redis is unreachable

    GET  /stats?adminKey=
        └─ StatsResponse (200) or 401

    GET  /clear-uptime?adminKey=
        └─ ClearUptimeResponse (200) or 401

    GET  /new?url=&slug=
    POST /new  {"url": ..., "slug": ...}
        └─ ShortenResponse (200) or 400/409

    GET  /:slug
        └─ 302 Redirect or 404

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Rate limit  │──► 429
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Admin key?  │──► 401 (stats, clear-uptime)
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ ClipService │──► ClipError ─► {"success": false, "error": ...}
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ HTTP        │
    │ Response    │
    └─────────────┘

Key Behaviours
===============
- System routes are registered before ``/{slug}`` so they always win.
- Errors are raised as ``ClipError`` subclasses and rendered by the handler
  installed in ``nvclip.main``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse

from nvclip.auth import require_admin_key
from nvclip.dependencies import RequestContext, get_clip_service, get_request_context
from nvclip.enums import HealthStatus
from nvclip.errors import MissingUrl, StoreUnavailable
from nvclip.schemas import (
    ClearUptimeResponse,
    HealthResponse,
    ResetDetails,
    ResetVerification,
    ShortenRequest,
    ShortenResponse,
    StatsCollections,
    StatsData,
    StatsResponse,
)
from nvclip.service import ClipService
from nvclip.uptime import to_iso

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    service: ClipService = Depends(get_clip_service),
):
    try:
        report = await service.check_health()
    except StoreUnavailable:
        ctx.logger.error("Health check failed: store unreachable")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "status": HealthStatus.UNHEALTHY.value,
                "error": "Store unreachable",
            },
        )

    return HealthResponse(
        status=report.status,
        uptime=report.uptime,
        server_start_time=report.server_start_time,
        timestamp=report.timestamp,
    )


@router.get("/stats", response_model=StatsResponse, tags=["admin"])
async def get_stats(
    _: str = Depends(require_admin_key),
    ctx: RequestContext = Depends(get_request_context),
    service: ClipService = Depends(get_clip_service),
) -> StatsResponse:
    ctx.add_tag("admin")
    snapshot = await service.collect_stats()
    ctx.logger.info(f"Stats served: links={snapshot.total_links} clicks={snapshot.total_clicks}")

    return StatsResponse(
        data=StatsData(
            total_links=snapshot.total_links,
            total_clicks=snapshot.total_clicks,
            uptime=snapshot.uptime,
            current_time=snapshot.current_time,
            collections=StatsCollections(
                clp_total_links=snapshot.raw_total_links,
                clp_total_clicks=snapshot.raw_total_clicks,
                clp_uptime=snapshot.raw_uptime,
            ),
        )
    )


@router.get("/clear-uptime", response_model=ClearUptimeResponse, tags=["admin"])
async def clear_uptime(
    _: str = Depends(require_admin_key),
    ctx: RequestContext = Depends(get_request_context),
    service: ClipService = Depends(get_clip_service),
) -> ClearUptimeResponse:
    ctx.add_tag("admin")
    result = await service.reset_uptime()

    return ClearUptimeResponse(
        details=ResetDetails(
            old_start_time=to_iso(result.old_start_ms) if result.old_start_ms is not None else None,
            old_uptime=result.old_uptime,
            new_start_time=to_iso(result.new_start_ms),
            verification=ResetVerification(
                clp_uptime_start_set=result.start_persisted,
                clp_uptime_set=result.uptime_persisted,
            ),
        )
    )


@router.get("/new", response_model=ShortenResponse, tags=["urls"])
async def shorten_from_query(
    url: Optional[str] = Query(None),
    slug: Optional[str] = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    service: ClipService = Depends(get_clip_service),
) -> ShortenResponse:
    ctx.add_tag("url_creation")
    short_url = await service.allocate(url, slug)
    ctx.logger.info(f"Short URL created: {short_url} in {ctx.get_duration():.1f}ms")
    return ShortenResponse(result=short_url)


@router.post("/new", response_model=ShortenResponse, tags=["urls"])
async def shorten_from_body(
    payload: Optional[ShortenRequest] = None,
    ctx: RequestContext = Depends(get_request_context),
    service: ClipService = Depends(get_clip_service),
) -> ShortenResponse:
    ctx.add_tag("url_creation")
    payload = payload or ShortenRequest()
    try:
        short_url = await service.allocate(payload.url, payload.slug)
    except MissingUrl as exc:
        raise MissingUrl("URL is required in request body") from exc
    ctx.logger.info(f"Short URL created: {short_url} in {ctx.get_duration():.1f}ms")
    return ShortenResponse(result=short_url)


@router.get("/{slug}", tags=["redirect"])
async def redirect_to_url(
    slug: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ClipService = Depends(get_clip_service),
) -> RedirectResponse:
    ctx.add_tag("redirect")
    target_url = await service.resolve(slug)
    ctx.logger.info(f"Redirect: {slug} -> {target_url} for {ctx.client_ip} in {ctx.get_duration():.1f}ms")
    return RedirectResponse(url=target_url, status_code=302)
