"""Adaptive sampling state models."""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SamplingFrequency(IntEnum):
    """Location sampling level, ordered from least to most power use."""

    OFF = 1
    REDUCED = 2
    NORMAL = 3


class SamplingParameters(BaseModel):
    """Intervals (seconds) and battery thresholds driving the controller."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    gps_interval: int = 15 * 60
    gps_interval_reduced: int = 4 * 15 * 60
    network_interval: int = 5 * 60
    network_interval_reduced: int = 4 * 5 * 60
    battery_level_minimum: float = Field(default=0.15, ge=0.0, le=1.0)
    battery_level_reduced: float = Field(default=0.30, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_thresholds(self) -> SamplingParameters:
        if self.battery_level_minimum > self.battery_level_reduced:
            raise ValueError("battery_level_minimum must not exceed battery_level_reduced")
        return self

    def intervals_for(self, frequency: SamplingFrequency) -> tuple[int, int]:
        """``(gps, network)`` intervals for a non-off *frequency*."""
        if frequency == SamplingFrequency.NORMAL:
            return self.gps_interval, self.network_interval
        return self.gps_interval_reduced, self.network_interval_reduced


class SamplingState(BaseModel):
    """Current level plus the parameters it was computed from.

    ``frequency`` is ``None`` before the first computation and after a
    configuration change, which forces the next event to resubscribe.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    frequency: SamplingFrequency | None = None
    parameters: SamplingParameters = Field(default_factory=SamplingParameters)
