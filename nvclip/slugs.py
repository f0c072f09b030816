"""Slug generation and reserved route names.

Slugs are nanoid strings over the URL-safe alphabet ``A-Za-z0-9_-`` with a
length drawn uniformly from 4 to 6. With 64 symbols per position that is
roughly 6.9e10 possible slugs, so collisions are rare but possible; callers
are responsible for checking them.
"""

import random

from nanoid import generate

__all__ = [
    "ALPHABET",
    "MIN_SLUG_LENGTH",
    "MAX_SLUG_LENGTH",
    "RESERVED_NAMES",
    "generate_slug",
    "is_reserved",
]

ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
MIN_SLUG_LENGTH = 4
MAX_SLUG_LENGTH = 6

# Path segments owned by system routes; never resolvable as slugs.
RESERVED_NAMES = frozenset({"new", "stats", "health", "clear-uptime"})


def generate_slug() -> str:
    length = random.randint(MIN_SLUG_LENGTH, MAX_SLUG_LENGTH)
    return generate(ALPHABET, length)


def is_reserved(slug: str) -> bool:
    return slug in RESERVED_NAMES
