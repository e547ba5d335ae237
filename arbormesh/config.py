"""
Configuration and type definitions for procedural tree meshes.

This module defines the parameter model consumed by the mesh generator.
Every value is a frozen dataclass: immutable, hashable and comparable, so a
settings object can be shared between generations, used as a cache key and
diffed against a previous value.

Per-level parameters:
    BranchParams stores one entry per recursion tier in tuples indexed
    0..=levels, where level 0 is the trunk. Tuples may be longer than
    levels + 1 (unused tiers are ignored) but never longer than
    MAX_LEVELS + 1.

Validation happens at construction and raises ValueError; the generator
itself never clamps or repairs settings.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum

# Deepest supported recursion tier (trunk = 0)
MAX_LEVELS = 3


class TreeType(Enum):
    """Selects the length-distribution and taper strategy."""

    DECIDUOUS = "deciduous"
    EVERGREEN = "evergreen"


class LeafBillboard(Enum):
    """Number of crossed quads emitted per leaf."""

    SINGLE = "single"
    DOUBLE = "double"


def _check_levels_tuple(name: str, values: tuple, levels: int) -> None:
    if not isinstance(values, tuple):
        raise ValueError(f"{name} must be a tuple, got {type(values).__name__}")
    if len(values) < levels + 1:
        raise ValueError(
            f"{name} needs {levels + 1} entries for levels={levels}, got {len(values)}"
        )
    if len(values) > MAX_LEVELS + 1:
        raise ValueError(f"{name} has more than {MAX_LEVELS + 1} entries")


@dataclass(frozen=True)
class BranchForce:
    """
    Directional bias (gravity, light) applied to branch orientation.

    Orientation is blended toward `direction` with a strength that fades
    linearly to zero as the branch radius approaches `radius_cutoff`, so thin
    branches bend and the trunk stays upright.
    """

    direction: tuple[float, float, float] = (0.0, 1.0, 0.0)
    strength: float = 0.01
    radius_cutoff: float = 0.5  # Radius at and above which no force applies

    def __post_init__(self) -> None:
        if not isinstance(self.direction, tuple):
            raise ValueError(
                f"Force direction must be a tuple, got {type(self.direction).__name__}"
            )
        if len(self.direction) != 3:
            raise ValueError("Force direction must have three components")
        if not all(math.isfinite(c) for c in self.direction):
            raise ValueError("Force direction must be finite")
        if self.strength < 0:
            raise ValueError("Force strength must be nonnegative")
        if self.radius_cutoff <= 0:
            raise ValueError("Force radius_cutoff must be positive")


@dataclass(frozen=True)
class BranchParams:
    """
    Shape of the branch skeleton.

    All tuples are indexed by recursion level (0 = trunk). Angles in `angle`
    are degrees, `twist` is radians per section.
    """

    levels: int = 3
    angle: tuple[float, ...] = (0.0, 70.0, 60.0, 60.0)  # Child tilt from parent axis
    children: tuple[int, ...] = (7, 7, 5, 0)  # Children spawned by a branch at this tier
    gnarliness: tuple[float, ...] = (0.15, 0.2, 0.3, 0.02)
    length: tuple[float, ...] = (20.0, 8.0, 6.0, 1.5)
    radius_factor: tuple[float, ...] = (1.0, 0.7, 0.7, 0.7)  # Child radius vs parent
    sections: tuple[int, ...] = (12, 10, 8, 6)  # Rings - 1 per branch
    segments: tuple[int, ...] = (8, 6, 4, 3)  # Vertices around each ring
    start: tuple[float, ...] = (0.0, 0.3, 0.3, 0.3)  # Lowest start fraction on parent
    taper: tuple[float, ...] = (0.7, 0.7, 0.7, 0.7)
    twist: tuple[float, ...] = (0.0, 0.0, 0.0, 0.0)
    trunk_base_radius: float = 1.5
    force: BranchForce = field(default_factory=BranchForce)

    def __post_init__(self) -> None:
        if not isinstance(self.levels, int) or not 0 <= self.levels <= MAX_LEVELS:
            raise ValueError(f"levels must be an integer in [0, {MAX_LEVELS}]")
        for name in (
            "angle",
            "children",
            "gnarliness",
            "length",
            "radius_factor",
            "sections",
            "segments",
            "start",
            "taper",
            "twist",
        ):
            _check_levels_tuple(name, getattr(self, name), self.levels)

        if any(c < 0 for c in self.children):
            raise ValueError("Child counts must be nonnegative")
        if any(s < 1 for s in self.sections):
            raise ValueError("Section counts must be at least 1")
        if any(s < 3 for s in self.segments):
            raise ValueError("Segment counts must be at least 3")
        if any(v < 0 for v in self.length):
            raise ValueError("Branch lengths must be nonnegative")
        if any(v < 0 for v in self.radius_factor):
            raise ValueError("Radius factors must be nonnegative")
        if any(not 0.0 <= v <= 1.0 for v in self.start):
            raise ValueError("Start fractions must lie in [0, 1]")
        # taper == 1 would collapse every ring after the first to zero radius
        if any(not 0.0 <= v < 1.0 for v in self.taper):
            raise ValueError("Taper must lie in [0, 1)")
        if self.trunk_base_radius <= 0:
            raise ValueError("Trunk base radius must be positive")


@dataclass(frozen=True)
class LeafParams:
    """Billboard foliage emitted at terminal branches."""

    billboard: LeafBillboard = LeafBillboard.DOUBLE
    angle: float = 30.0  # Tilt of extra cluster leaves from the branch axis (degrees)
    count: int = 1  # Leaves per terminal branch; the first sits at the tip
    start: float = 0.5  # Lowest placement fraction for extra cluster leaves
    size: float = 2.5
    size_variance: float = 0.7  # Max signed fraction applied to size

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError("Leaf count must be nonnegative")
        if not 0.0 <= self.start <= 1.0:
            raise ValueError("Leaf start fraction must lie in [0, 1]")
        if self.size < 0:
            raise ValueError("Leaf size must be nonnegative")
        if self.size_variance < 0:
            raise ValueError("Leaf size variance must be nonnegative")


@dataclass(frozen=True)
class TreeSettings:
    """Complete, resolved configuration for one tree."""

    tree_type: TreeType = TreeType.DECIDUOUS
    branch: BranchParams = field(default_factory=BranchParams)
    leaves: LeafParams = field(default_factory=LeafParams)

    def with_changes(self, **changes) -> "TreeSettings":
        """Copy with some top-level fields replaced."""
        return replace(self, **changes)

    @classmethod
    def deciduous(cls) -> "TreeSettings":
        """A broad deciduous tree: segmented trunk, three branch tiers."""
        return cls()

    @classmethod
    def evergreen(cls) -> "TreeSettings":
        """A conical evergreen: many short whorled branches up one trunk."""
        return cls(
            tree_type=TreeType.EVERGREEN,
            branch=BranchParams(
                levels=2,
                angle=(0.0, 110.0, 40.0),
                children=(24, 3, 0),
                gnarliness=(0.02, 0.05, 0.1),
                length=(30.0, 12.0, 3.0),
                radius_factor=(1.0, 0.35, 0.5),
                sections=(16, 6, 4),
                segments=(8, 4, 3),
                start=(0.0, 0.2, 0.3),
                taper=(0.7, 0.7, 0.7),
                twist=(0.0, 0.0, 0.0),
                trunk_base_radius=1.2,
                force=BranchForce(direction=(0.0, -1.0, 0.0), strength=0.2),
            ),
            leaves=LeafParams(
                billboard=LeafBillboard.SINGLE,
                angle=10.0,
                count=1,
                start=0.0,
                size=1.5,
                size_variance=0.3,
            ),
        )

    @classmethod
    def bare_trunk(cls) -> "TreeSettings":
        """A single trunk with no branch tiers and one leaf cluster at its tip."""
        return cls(
            branch=BranchParams(
                levels=0,
                angle=(0.0,),
                children=(0,),
                gnarliness=(0.1,),
                length=(10.0,),
                radius_factor=(1.0,),
                sections=(8,),
                segments=(6,),
                start=(0.0,),
                taper=(0.7,),
                twist=(0.0,),
            ),
        )
