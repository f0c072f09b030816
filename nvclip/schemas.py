"""Pydantic schemas for request/response validation in NvClip.

Schema Hierarchy
=================
::
    ShortenRequest (Input, POST /new body)
    ├─ url: str | None
    └─ slug: str | None

    ShortenResponse (Output)
    ├─ success: bool
    └─ result: str (full short URL)

    ErrorResponse (Output, every 4xx/5xx)
    ├─ success: False
    └─ error: str

    HealthResponse / StatsResponse / ClearUptimeResponse (Output)

Key Behaviours
===============
- ``url`` is optional at the schema level so a missing URL becomes a 400
  ``MissingUrl`` from the service instead of a generic 422.
- Empty strings for ``slug`` mean "generate one for me".
"""

from pydantic import BaseModel, Field

from nvclip.enums import HealthStatus

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "ErrorResponse",
    "HealthResponse",
    "StatsCollections",
    "StatsData",
    "StatsResponse",
    "ResetVerification",
    "ResetDetails",
    "ClearUptimeResponse",
]


class ShortenRequest(BaseModel):
    url: str | None = None
    slug: str | None = Field(None, description="Optional custom slug, e.g. 'docs'")


class ShortenResponse(BaseModel):
    success: bool = True
    result: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    success: bool = True
    status: HealthStatus
    uptime: str
    server_start_time: str
    timestamp: str


class StatsCollections(BaseModel):
    clp_total_links: str | None
    clp_total_clicks: str | None
    clp_uptime: str | None


class StatsData(BaseModel):
    total_links: int
    total_clicks: int
    uptime: str
    current_time: str
    collections: StatsCollections


class StatsResponse(BaseModel):
    success: bool = True
    data: StatsData


class ResetVerification(BaseModel):
    clp_uptime_start_set: bool
    clp_uptime_set: bool


class ResetDetails(BaseModel):
    old_start_time: str | None
    old_uptime: str | None
    new_start_time: str
    verification: ResetVerification


class ClearUptimeResponse(BaseModel):
    success: bool = True
    message: str = "Uptime counter reset successfully"
    details: ResetDetails
