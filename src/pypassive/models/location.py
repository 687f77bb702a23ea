"""Raw location fix model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pypassive.ingestion.normalize import safe_float, safe_int


class LocationFix(BaseModel):
    """An absolute location fix as delivered by a provider.

    Optional fields are ``None`` when the provider did not report them;
    they are never defaulted to zero.

    Parameters
    ----------
    provider : str
        Provider name (``"gps"``, ``"network"``, ...).
    time : int
        Fix time in epoch milliseconds.
    latitude : float or None
        Latitude in degrees. May be NaN; sanitized downstream.
    longitude : float or None
        Longitude in degrees.
    altitude : float or None
        Altitude in metres.
    accuracy : float or None
        Horizontal accuracy in metres.
    speed : float or None
        Speed in m/s.
    bearing : float or None
        Bearing in degrees.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    provider: str = ""
    time: int = Field(..., validation_alias=AliasChoices("time", "timestamp", "fixTime"))
    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lng", "lon"))
    altitude: float | None = None
    accuracy: float | None = None
    speed: float | None = None
    bearing: float | None = Field(default=None, validation_alias=AliasChoices("bearing", "heading", "course"))

    @field_validator("latitude", "longitude", "altitude", "accuracy", "speed", "bearing", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        # NaN is kept as-is here; the relative transform maps it to absent.
        if isinstance(value, float):
            return value
        return safe_float(value)

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> int | None:
        return safe_int(value)
