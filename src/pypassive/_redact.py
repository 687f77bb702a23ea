"""Redaction of identifying data in debug logs.

Rows read from the call and message logs carry raw phone numbers,
addresses, bodies and contact lookups; location fixes carry absolute
coordinates. :func:`redact_for_log` masks those before they reach a log
handler. Field names are matched regardless of case and separators, so
``cached_lookup_uri`` and ``cachedLookupUri`` are treated alike, and
long digit runs inside any remaining string are masked as well.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

_REDACTED = "<redacted>"

_IDENTIFYING_FIELDS: frozenset[str] = frozenset(
    {
        "number",
        "address",
        "body",
        "person",
        "lookup",
        "cachedlookupuri",
        "salt",
        "hashsalt",
        "latitude",
        "longitude",
        "altitude",
    }
)

# Six or more digits, optionally prefixed by "+": phone numbers, ids.
_DIGIT_RUN = re.compile(r"\+?\d{6,}")

_MAX_DEPTH = 16


def _field_name(key: object) -> str:
    return re.sub(r"[_\-.\s]", "", str(key)).lower()


def _mask_digits(text: str) -> str:
    return _DIGIT_RUN.sub(lambda m: f"<digits:{len(m.group())}>", text)


def redact_for_log(value: Any, *, max_string: int = 128, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to log.

    Mappings keep their keys; identifying fields become ``"<redacted>"``.
    Strings are truncated to *max_string* characters and digit runs are
    masked. Bytes are replaced by their length.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        masked = _mask_digits(value)
        if len(masked) > max_string:
            return f"{masked[:max_string]}…<truncated>"
        return masked

    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        return {
            str(k): _REDACTED
            if _field_name(k) in _IDENTIFYING_FIELDS
            else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }

    if isinstance(value, (Sequence, set, frozenset)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return f"<{type(value).__name__}>"
