"""Date normalization for Dynamics timestamp values.

Dynamics sends raw attributes in ISO form but formatted values in the
organisation's locale (day/month/year). Both end up in the same canonical
year-first string. Anything unrecognised passes through untouched: a bad
date must never abort ingestion of an otherwise valid record.
"""

from __future__ import annotations

import re

_ISO_PREFIX = re.compile(r"^\d{4}-")
_DAY_FIRST = re.compile(r"^(\d{2})/(\d{2})/(\d{4})\s+(\d{2}:\d{2}(?::\d{2})?)$")


def normalize_date(value: str | None) -> str | None:
    """Rewrite ``DD/MM/YYYY HH:MM[:SS]`` to ``YYYY-MM-DDTHH:MM[:SS]``.

    >>> normalize_date("05/03/2024 14:30")
    '2024-03-05T14:30'
    >>> normalize_date("2024-03-05T14:30:00Z")
    '2024-03-05T14:30:00Z'
    """
    if not value:
        return None
    if _ISO_PREFIX.match(value):
        return value
    match = _DAY_FIRST.match(value)
    if match:
        day, month, year, clock = match.groups()
        return f"{year}-{month}-{day}T{clock}"
    return value
