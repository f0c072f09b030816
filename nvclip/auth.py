"""Admin key checks for the operational endpoints."""

import hmac

from fastapi import Depends, Query

from nvclip.config import Settings, get_settings
from nvclip.errors import Unauthorized

__all__ = ["is_valid_admin_key", "require_admin_key"]


def is_valid_admin_key(key: str | None, settings: Settings | None = None) -> bool:
    """Return True if ``key`` exactly matches one of the configured admin keys.

    Keys are shared secrets compared as plain strings; they should only be
    sent over TLS.
    """
    if not key:
        return False
    accepted = (settings or get_settings()).admin_keys
    matched = False
    for candidate in accepted:
        if hmac.compare_digest(key.encode("utf-8"), candidate.encode("utf-8")):
            matched = True
    return matched


def require_admin_key(
    admin_key: str | None = Query(default=None, alias="adminKey"),
    settings: Settings = Depends(get_settings),
) -> str:
    if not is_valid_admin_key(admin_key, settings):
        raise Unauthorized()
    return admin_key
