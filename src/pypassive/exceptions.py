"""Custom exception hierarchy for pypassive."""

from __future__ import annotations


class PassiveError(Exception):
    """Base exception for all pypassive errors."""


class PassiveConfigError(PassiveError):
    """Invalid or missing configuration."""


class PassiveCryptoError(PassiveError):
    """Salt generation or keyed hashing failure."""


class HashingError(PassiveCryptoError):
    """An identifier could not be anonymized.

    Callers must treat this as fatal for the current cycle: the raw
    identifier is never emitted as a fallback.
    """


class StoreError(PassiveError):
    """Key-value store could not be read or written."""


class SourceQueryError(PassiveError):
    """A record source failed to answer a query."""

    def __init__(
        self,
        message: str,
        *,
        source: str = "",
    ) -> None:
        self.source = source
        super().__init__(message)


class ProviderUnavailableError(PassiveError):
    """A location provider is missing or not permitted.

    The sampling controller treats the affected provider as permanently
    off; other providers are unaffected.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
    ) -> None:
        self.provider = provider
        super().__init__(message)


class LifecycleError(PassiveError):
    """Operation not allowed in the current lifecycle state."""


class DiscoveryTimeoutError(PassiveError):
    """A one-shot discovery did not complete within its timeout."""


class SinkError(PassiveError):
    """A sink failed to deliver records."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message)
