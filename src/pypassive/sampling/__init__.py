"""Battery-driven location sampling and the relative-coordinate transform."""

from pypassive.sampling.controller import AdaptiveSamplingController, LocationSubscriber
from pypassive.sampling.policy import compute_frequency
from pypassive.sampling.reference import ReferencePoint, RelativeLocationTransform

__all__ = [
    "AdaptiveSamplingController",
    "LocationSubscriber",
    "ReferencePoint",
    "RelativeLocationTransform",
    "compute_frequency",
]
