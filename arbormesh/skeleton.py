"""
Value types for the recursive branch skeleton.

A branch is described by a BranchGenState and sampled into an ordered list
of SectionData rings while its mesh is built. Both are plain frozen values:
each recursion frame owns its own state and ring list, nothing is shared
between frames and nothing refers back to a parent.
"""

from dataclasses import dataclass

import numpy as np
from scipy.spatial.transform import Rotation

from arbormesh import rotation
from arbormesh.config import TreeSettings

# Radius forced on tip rings: effectively zero, but never exactly zero
MIN_TIP_RADIUS = 2.0**-23


@dataclass(frozen=True)
class BranchGenState:
    """
    Everything needed to build one branch.

    `level` selects the per-level parameter tier; `recursion_count` counts
    recursive frames including same-level trunk continuations.
    """

    origin: np.ndarray
    orientation: Rotation
    length: float
    start_radius: float
    taper: float
    twist: float
    gnarliness: float
    level: int
    recursion_count: int
    sections: int
    segments: int


@dataclass(frozen=True)
class SectionData:
    """One sampled ring along a branch."""

    origin: np.ndarray
    orientation: Rotation
    radius: float


def trunk_state(settings: TreeSettings) -> BranchGenState:
    """Initial state: trunk at the model origin, pointing up, level-0 parameters."""
    branch = settings.branch
    return BranchGenState(
        origin=np.zeros(3),
        orientation=rotation.identity(),
        length=branch.length[0],
        start_radius=branch.trunk_base_radius,
        taper=branch.taper[0],
        twist=branch.twist[0],
        gnarliness=branch.gnarliness[0],
        level=0,
        recursion_count=0,
        sections=branch.sections[0],
        segments=branch.segments[0],
    )


def interpolate_sections(
    sections: list[SectionData], fraction: float
) -> SectionData:
    """
    Sample a point `fraction` of the way along a branch.

    The fraction is mapped onto the gap between two adjacent rings; origin and
    radius are interpolated linearly from the lower ring; orientation is
    interpolated spherically from the upper ring toward the lower one.
    """
    if not sections:
        raise ValueError("Cannot interpolate an empty section list")
    last = len(sections) - 1
    position = min(max(fraction, 0.0), 1.0) * last
    index = min(int(np.floor(position)), last)
    t = min(max(position - index, 0.0), 1.0)

    lower = sections[index]
    upper = sections[min(index + 1, last)]
    return SectionData(
        origin=lower.origin + t * (upper.origin - lower.origin),
        orientation=rotation.slerp(upper.orientation, lower.orientation, t),
        radius=lower.radius + t * (upper.radius - lower.radius),
    )
