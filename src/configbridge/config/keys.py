"""
Configuration key helpers.

Keys are ':'-delimited paths such as ``AppSettings:MyConfig``. Comparison is
case-insensitive everywhere; the original casing is kept for display and for
writes into legacy sections.
"""

from __future__ import annotations

KEY_DELIMITER = ":"


def normalize(key: str) -> str:
    """Case-folded form used for lookups."""
    return key.casefold()


def split(key: str) -> list[str]:
    return key.split(KEY_DELIMITER) if key else []


def combine(*segments: str) -> str:
    return KEY_DELIMITER.join(segment for segment in segments if segment)


def last_segment(key: str) -> str:
    return key.rsplit(KEY_DELIMITER, 1)[-1]


def parent(key: str) -> str:
    """Parent path, or "" for a top-level key."""
    if KEY_DELIMITER not in key:
        return ""
    return key.rsplit(KEY_DELIMITER, 1)[0]


def child_segment(key: str, prefix: str) -> str | None:
    """Return the segment directly below ``prefix`` if ``key`` lives under it.

    >>> child_segment("AppSettings:Feature:Enabled", "appsettings")
    'Feature'
    >>> child_segment("Logging:Level", "AppSettings") is None
    True
    """
    if not prefix:
        return split(key)[0] if key else None

    head = prefix + KEY_DELIMITER
    if normalize(key[: len(head)]) != normalize(head):
        return None
    rest = key[len(head) :]
    if not rest:
        return None
    return rest.split(KEY_DELIMITER, 1)[0]
