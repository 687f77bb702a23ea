"""Salted one-way hashing of identifying fields.

Phone numbers and contact identifiers are turned into fixed-width
HMAC-SHA256 keys. The salt is generated once per installation and
persisted; the same identifier always maps to the same key for one
salt, and keys from different installations cannot be linked.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets
import threading

from cryptography.hazmat.primitives import hashes, hmac

from pypassive._constants import PHONE_SUFFIX_MODULUS, SALT_KEY, SALT_NBYTES
from pypassive.exceptions import HashingError, StoreError
from pypassive.state.store import KeyValueStore

_logger = logging.getLogger(__name__)

_IS_NUMBER = re.compile(r"[+-]?[0-9]+")

#: Width of every anonymized key, in bytes.
KEY_NBYTES = 32


def numeric_phone_number(target: str) -> int | None:
    """Return *target* as an integer if it is a (signed) digit string.

    Returns ``None`` for names such as ``"Dropbox"`` or ``"Google"``.
    """
    if _IS_NUMBER.fullmatch(target) is None:
        return None
    try:
        return int(target)
    except ValueError:
        # Past the interpreter's int conversion limit; hashed as text.
        return None


def normalize_phone_number(number: int) -> int | None:
    """Keep the last 9 digits of *number*.

    Strips international and area prefixes so ``+31612345678`` and
    ``0612345678`` both become ``612345678``. Negative numbers are the
    "unknown/withheld" sentinel and have no key.
    """
    if number < 0:
        return None
    return number % PHONE_SUFFIX_MODULUS


class HashGenerator:
    """HMAC-SHA256 keyed on a persisted per-installation salt.

    Parameters
    ----------
    store : KeyValueStore
        Where the salt is persisted.
    key : str
        Store key of the salt.
    """

    def __init__(self, store: KeyValueStore, *, key: str = SALT_KEY) -> None:
        self._store = store
        self._key = key
        self._salt: bytes | None = None
        self._lock = threading.Lock()

    def _load_or_create_salt(self) -> bytes:
        stored = self._store.get(self._key)
        if stored is not None:
            if not isinstance(stored, str):
                raise HashingError(f"Persisted salt under {self._key!r} has type {type(stored).__name__}")
            try:
                salt = base64.b64decode(stored, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise HashingError(f"Persisted salt under {self._key!r} is not base64") from exc
            if not salt:
                raise HashingError(f"Persisted salt under {self._key!r} is empty")
            return salt

        salt = secrets.token_bytes(SALT_NBYTES)
        try:
            self._store.set(self._key, base64.b64encode(salt).decode("ascii"))
        except StoreError as exc:
            raise HashingError("Could not persist a new salt") from exc
        _logger.info("Generated new hashing salt")
        return salt

    @property
    def salt(self) -> bytes:
        """The salt, generated and persisted on first use."""
        with self._lock:
            if self._salt is None:
                self._salt = self._load_or_create_salt()
            return self._salt

    def create_hash(self, value: str | int) -> bytes:
        """Hash a string (UTF-8) or a 32-bit integer (big-endian).

        Raises
        ------
        HashingError
            If the salt is unusable or hashing fails.
        """
        if isinstance(value, int):
            try:
                data = value.to_bytes(4, "big", signed=True)
            except OverflowError as exc:
                raise HashingError("integer does not fit in 32 bits") from exc
        else:
            data = value.encode("utf-8")

        salt = self.salt
        try:
            mac = hmac.HMAC(salt, hashes.SHA256())
            mac.update(data)
            return mac.finalize()
        except Exception as exc:
            raise HashingError(f"HMAC computation failed: {exc}") from exc


class IdentityHasher:
    """Classifies, normalizes and hashes call/message targets."""

    def __init__(self, generator: HashGenerator) -> None:
        self._generator = generator

    def hash(self, raw: str) -> bytes | None:
        """Anonymized key for *raw*, or ``None`` for withheld numbers.

        Non-numeric targets are hashed as text; numeric targets are
        reduced to their 9-digit suffix first.
        """
        number = numeric_phone_number(raw)
        if number is None:
            return self._generator.create_hash(raw)
        return self.hash_number(number)

    def hash_number(self, number: int) -> bytes | None:
        suffix = normalize_phone_number(number)
        if suffix is None:
            return None
        return self._generator.create_hash(suffix)
