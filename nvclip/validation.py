"""URL validation for incoming shorten requests."""

from pydantic import AnyUrl, TypeAdapter, ValidationError

__all__ = ["is_valid_url"]

_any_url = TypeAdapter(AnyUrl)


def is_valid_url(candidate: str | None) -> bool:
    """Return True if ``candidate`` parses as an absolute URL.

    Any scheme is accepted (``https:``, ``ftp:``, ``mailto:`` ...); reachability
    is not checked. Relative references such as ``"example.com/page"`` or
    ``"not a url"`` are rejected because they carry no scheme.
    """
    if not isinstance(candidate, str) or not candidate:
        return False
    try:
        _any_url.validate_python(candidate)
    except ValidationError:
        return False
    return True
