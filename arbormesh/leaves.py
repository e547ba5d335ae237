"""
Billboard foliage.

A leaf is a flat quad whose stem sits at the bottom centre of the quad.
DOUBLE billboards add a second quad turned a quarter turn around the branch
axis so the foliage reads from every viewing angle.
"""

import math

import numpy as np
from scipy.spatial.transform import Rotation

from arbormesh import rotation
from arbormesh.buffers import MeshBuffers
from arbormesh.config import LeafBillboard, TreeSettings
from arbormesh.draw import DrawSource
from arbormesh.skeleton import SectionData, interpolate_sections

LEAF_UVS = np.array([[0.0, 1.0], [0.0, 0.0], [1.0, 0.0], [1.0, 1.0]])
LEAF_TRIANGLES = (0, 1, 2, 0, 2, 3)

BILLBOARD_TURNS = {
    LeafBillboard.SINGLE: (0.0,),
    LeafBillboard.DOUBLE: (0.0, math.pi / 2),
}


def generate_leaf(
    settings: TreeSettings,
    origin: np.ndarray,
    orientation: Rotation,
    draw: DrawSource,
    buffers: MeshBuffers,
) -> int:
    """
    Emit one leaf at `origin`, oriented by `orientation`.

    Consumes a single draw for the size variation. Returns the number of
    quads written.
    """
    leaves = settings.leaves
    variance = (2.0 * draw.random() - 1.0) * leaves.size_variance
    size = leaves.size * (1.0 + variance)
    half = size / 2.0
    corners = np.array(
        [
            [-half, size, 0.0],
            [-half, 0.0, 0.0],
            [half, 0.0, 0.0],
            [half, size, 0.0],
        ]
    )

    turns = BILLBOARD_TURNS[leaves.billboard]
    for turn in turns:
        leaf_orientation = orientation * rotation.axis_angle(rotation.UP, turn)
        base = buffers.reserve(4)

        positions = leaf_orientation.apply(corners) + origin
        normal = rotation.normalize(leaf_orientation.apply(rotation.FORWARD))
        buffers.add_vertices(positions, np.tile(normal, (4, 1)), LEAF_UVS)
        buffers.add_triangles(base + i for i in LEAF_TRIANGLES)
    return len(turns)


def generate_leaf_cluster(
    settings: TreeSettings,
    sections: list[SectionData],
    draw: DrawSource,
    buffers: MeshBuffers,
) -> int:
    """
    Emit the foliage of one terminal branch.

    The first leaf sits on the tip ring. Further leaves (count > 1) are
    spread around the branch like child branches: between `leaves.start` and
    the tip, tilted by `leaves.angle` and fanned evenly around the axis.
    Returns the number of quads written.
    """
    count = settings.leaves.count
    if count == 0 or not sections:
        return 0

    tip = sections[-1]
    quads = generate_leaf(settings, tip.origin, tip.orientation, draw, buffers)
    extra = count - 1
    if extra == 0:
        return quads

    radial_offset = draw.random()
    start = settings.leaves.start
    tilt = rotation.axis_angle(rotation.RIGHT, math.radians(settings.leaves.angle))
    for i in range(extra):
        fraction = start + (1.0 - start) * draw.random()
        anchor = interpolate_sections(sections, fraction)
        spin = rotation.axis_angle(
            rotation.UP, 2.0 * math.pi * (radial_offset + i / extra)
        )
        quads += generate_leaf(
            settings, anchor.origin, anchor.orientation * spin * tilt, draw, buffers
        )
    return quads
