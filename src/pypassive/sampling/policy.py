"""Deterministic sampling policy.

This module contains *no* provider handling; it only maps a power
observation to a :class:`SamplingFrequency`.
"""

from __future__ import annotations

from pypassive.models.sampling import SamplingFrequency


def compute_frequency(
    level: float,
    is_plugged: bool,
    *,
    minimum: float,
    reduced: float,
) -> SamplingFrequency:
    """Target frequency for a battery observation.

    Policy:
    - Charging, or ``level >= reduced``: NORMAL.
    - ``minimum <= level < reduced``: REDUCED.
    - Otherwise: OFF.

    Both boundaries are inclusive towards the higher level, so a level
    that keeps touching a threshold never flips state.
    """
    if is_plugged or level >= reduced:
        return SamplingFrequency.NORMAL
    if level >= minimum:
        return SamplingFrequency.REDUCED
    return SamplingFrequency.OFF
