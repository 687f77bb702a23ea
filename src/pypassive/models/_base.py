"""Base model and enum for published records.

Every record model inherits from :class:`PassiveBaseModel` which
provides:

* ``alias_generator=to_camel`` so snake_case fields are published
  with the camelCase names downstream consumers expect.
* ``ser_json_bytes="base64"`` so anonymized keys survive JSON encoding.
* :meth:`PassiveBaseModel.to_payload`, the sink-facing dict.

Closed enums inherit from :class:`PassiveEnum` which resolves any value
without a mapped member to an explicit fallback member instead of
raising ``ValueError``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PassiveEnum(StrEnum):
    """Base for closed record enums.

    Every subclass **must** define an ``UNKNOWN`` or ``OTHER`` member.
    Values without a mapped member resolve to it.
    """

    @classmethod
    def _missing_(cls, value: object) -> PassiveEnum:
        for name in ("UNKNOWN", "OTHER"):
            if name in cls.__members__:
                return cls.__members__[name]
        # Fallback: return first member
        return next(iter(cls))


class PassiveBaseModel(BaseModel):
    """Base for published records."""

    TOPIC: ClassVar[str] = ""
    """Sink topic records of this type are published to."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        ser_json_bytes="base64",
    )

    def to_payload(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
