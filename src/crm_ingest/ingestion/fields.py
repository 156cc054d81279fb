"""Field resolution over arbitrarily shaped Dynamics payloads.

Dynamics exposes the same logical attribute under several physical keys
(``leadid``, ``_originatingleadid_value``, ``msdyn_...``) and ships option-set
and lookup attributes twice: once as the raw code and once as an OData
"formatted value" sibling key. FieldSource hides that behind ordered pattern
lists so mapper code never guesses keys itself.

Resolution order for ``resolve(*patterns)``:
1. Exact key match.
2. Case-insensitive suffix match (keys prefixed with lookup markers).
3. Case-insensitive substring match (last resort, intentionally loose).

Each pass scans every pattern before the next pass starts, so a loose match
for the first pattern never beats an exact match for the second one.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Protocol

from src.crm_ingest.ingestion.dates import normalize_date

DISPLAY_VALUE_SUFFIX = "@OData.Community.Display.V1.FormattedValue"

_TRUE_CODES = frozenset({"true", "yes", "1"})
_FALSE_CODES = frozenset({"false", "no", "0"})


class FieldSource(Protocol):
    """Capability for locating logical fields in an untyped payload."""

    def resolve(self, *patterns: str) -> str | None: ...

    def resolve_exact(self, *patterns: str) -> str | None: ...

    def resolve_display(self, field: str, *fallbacks: str) -> str | None: ...

    def resolve_number(self, *patterns: str) -> float | None: ...

    def resolve_date(self, *patterns: str) -> str | None: ...


def _stringify(value: Any) -> str | None:
    """Scalar to string; None and empty strings count as absent."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    return text if text != "" else None


class FieldResolver:
    """FieldSource implementation over one raw payload.

    Args:
        payload: Flat mapping of upstream keys to scalar values.
    """

    def __init__(self, payload: Mapping[str, Any]) -> None:
        self._payload = payload
        self._lowered = [(key, key.lower()) for key in payload]

    @property
    def keys(self) -> list[str]:
        return list(self._payload)

    def resolve(self, *patterns: str) -> str | None:
        """Return the first non-empty value matching any pattern, else None."""
        found = self.resolve_exact(*patterns)
        if found is not None:
            return found

        for pattern in patterns:
            needle = pattern.lower()
            for key, lowered in self._lowered:
                if lowered.endswith(needle):
                    value = _stringify(self._payload[key])
                    if value is not None:
                        return value

        for pattern in patterns:
            needle = pattern.lower()
            for key, lowered in self._lowered:
                if needle in lowered:
                    value = _stringify(self._payload[key])
                    if value is not None:
                        return value

        return None

    def resolve_exact(self, *patterns: str) -> str | None:
        """Exact key match only.

        Used for reference identifiers, where the substring pass would happily
        return the display-value sibling instead of the identifier.
        """
        for pattern in patterns:
            if pattern in self._payload:
                value = _stringify(self._payload[pattern])
                if value is not None:
                    return value
        return None

    def resolve_display(self, field: str, *fallbacks: str) -> str | None:
        """Prefer the human-readable formatted value of ``field``.

        Checks ``field@...FormattedValue``, then the lookup variant
        ``_field_value@...FormattedValue``, then falls back to the raw
        resolver over ``field``, ``_field_value`` and any extra fallbacks.
        """
        display = self.resolve_exact(
            f"{field}{DISPLAY_VALUE_SUFFIX}",
            f"_{field}_value{DISPLAY_VALUE_SUFFIX}",
        )
        if display is not None:
            return display
        return self.resolve(field, f"_{field}_value", *fallbacks)

    def resolve_number(self, *patterns: str) -> float | None:
        """Float value of the resolved field; None when it does not parse."""
        raw = self.resolve(*patterns)
        if raw is None:
            return None
        try:
            number = float(raw)
        except ValueError:
            return None
        if math.isnan(number):
            return None
        return number

    def resolve_date(self, *patterns: str) -> str | None:
        return normalize_date(self.resolve(*patterns))


def translate_flag(raw: str | None, true_label: str, false_label: str) -> str | None:
    """Translate a boolean-coded value to a label.

    Unexpected codes are passed through as-is rather than rejected.
    """
    if raw is None:
        return None
    code = raw.strip().lower()
    if code in _TRUE_CODES:
        return true_label
    if code in _FALSE_CODES:
        return false_label
    return raw
