"""
Placement of child branches along a parent branch.

Siblings share one random angular offset and are then spread evenly around
the parent, which keeps a whorl of children fanned out instead of letting
independent draws cluster them on one side.
"""

import math

from arbormesh import rotation
from arbormesh.config import TreeSettings, TreeType
from arbormesh.draw import DrawSource
from arbormesh.skeleton import BranchGenState, SectionData, interpolate_sections


def place_children(
    count: int,
    level: int,
    parent_sections: list[SectionData],
    settings: TreeSettings,
    draw: DrawSource,
) -> list[BranchGenState]:
    """
    Build the states of `count` children at parameter tier `level`.

    Args:
        count: Number of children to place
        level: Tier of the children (parent tier + 1)
        parent_sections: Rings of the parent branch, base to tip
        settings: Tree configuration
        draw: Draw source; consumes 1 + count draws

    Returns:
        One BranchGenState per child, in placement order
    """
    if count == 0 or not parent_sections:
        return []

    branch = settings.branch
    radial_offset = draw.random()
    tilt = rotation.axis_angle(rotation.RIGHT, math.radians(branch.angle[level]))

    children = []
    for i in range(count):
        start_fraction = branch.start[level] + (1.0 - branch.start[level]) * draw.random()
        anchor = interpolate_sections(parent_sections, start_fraction)

        radial_angle = 2.0 * math.pi * (radial_offset + i / count)
        spin = rotation.axis_angle(rotation.UP, radial_angle)

        length = branch.length[level]
        if settings.tree_type is TreeType.EVERGREEN:
            # Higher children are shorter, giving a conical silhouette
            length *= 1.0 - start_fraction

        children.append(
            BranchGenState(
                origin=anchor.origin,
                orientation=anchor.orientation * spin * tilt,
                length=length,
                start_radius=branch.radius_factor[level] * anchor.radius,
                taper=branch.taper[level],
                twist=branch.twist[level],
                gnarliness=branch.gnarliness[level],
                level=level,
                recursion_count=level,
                sections=branch.sections[level],
                segments=branch.segments[level],
            )
        )
    return children
