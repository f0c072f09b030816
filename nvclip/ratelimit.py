"""Per-client request throttling built on slowapi.

Clients are keyed by remote address and share one application-wide budget
across every route. ``limits`` counts in whole-second windows, so the default
``10/second`` stands in for one request per 100 ms.

How to Use
===========
::
    limiter = install_rate_limiting(app, settings)

Register it before ``CORSMiddleware`` so CORS stays the outer layer and 429
responses still carry ``Access-Control-Allow-Origin``.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from nvclip.config import Settings
from nvclip.schemas import ErrorResponse

__all__ = ["RATE_LIMIT_MESSAGE", "create_limiter", "install_rate_limiting", "rate_limit_exceeded_handler"]

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def create_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        application_limits=[settings.RATE_LIMIT],
        enabled=settings.RATE_LIMIT_ENABLED,
        headers_enabled=False,
    )


# slowapi's middleware calls this synchronously.
def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(status_code=429, content=ErrorResponse(error=RATE_LIMIT_MESSAGE).model_dump())


def install_rate_limiting(app: FastAPI, settings: Settings) -> Limiter:
    limiter = create_limiter(settings)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    return limiter
