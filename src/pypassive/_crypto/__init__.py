"""Keyed hashing primitives for identifier anonymization."""

from __future__ import annotations

from pypassive._crypto.hashing import (
    HashGenerator,
    IdentityHasher,
    normalize_phone_number,
    numeric_phone_number,
)

__all__ = [
    "HashGenerator",
    "IdentityHasher",
    "normalize_phone_number",
    "numeric_phone_number",
]
