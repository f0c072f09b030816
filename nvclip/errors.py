"""Domain errors for slug allocation, redirects and admin endpoints.

Every error carries the HTTP status it maps to and a message that is safe to
return to the client. Routes never build error bodies by hand; the exception
handler registered in ``nvclip.main`` renders ``{"success": false, "error": ...}``.
"""

__all__ = [
    "ClipError",
    "MissingUrl",
    "InvalidUrl",
    "SlugConflict",
    "NotFound",
    "Unauthorized",
    "StoreUnavailable",
    "AllocationExhausted",
]


class ClipError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingUrl(ClipError):
    status_code = 400
    message = "URL parameter is required"


class InvalidUrl(ClipError):
    status_code = 400
    message = "Invalid URL format"


class SlugConflict(ClipError):
    status_code = 409
    message = "Slug already exists"


class NotFound(ClipError):
    status_code = 404
    message = "Short URL not found"


class Unauthorized(ClipError):
    status_code = 401
    message = "Invalid or missing admin key"


class StoreUnavailable(ClipError):
    """The key-value store could not be reached after the client's own retries."""

    status_code = 500
    message = "Internal server error"


class AllocationExhausted(ClipError):
    status_code = 503
    message = "Could not allocate a unique slug"
