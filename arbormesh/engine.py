"""
Recursive branch and leaf mesh generation.

This module walks the branch skeleton depth first. For each branch it:
    1. samples `sections + 1` rings, bending the branch between rings
       (gnarl, twist and force blending) and tapering its radius
    2. writes the rings and their triangles into the branch buffers
    3. continues a deciduous trunk with another trunk piece, spawns child
       branches via the placement sampler, or, at the deepest tier, grows
       a leaf cluster

Recursion depth is bounded by `levels + 1` frames. All randomness comes from
the draw source handed in by the caller, so identical (settings, seed)
pairs produce identical buffers.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import NamedTuple

import numpy as np
from scipy.spatial.transform import Rotation

from arbormesh import rotation
from arbormesh.buffers import GeometryOverflowError, IndexWidth, MeshBuffers
from arbormesh.children import place_children
from arbormesh.config import TreeSettings, TreeType
from arbormesh.draw import DrawSource, make_draw_source
from arbormesh.leaves import generate_leaf_cluster
from arbormesh.skeleton import (
    MIN_TIP_RADIUS,
    BranchGenState,
    SectionData,
    trunk_state,
)

logger = logging.getLogger(__name__)

# Scales gnarliness so values in [0, 1] give natural looking crookedness
GNARL_SCALE = 0.4
# Halves the configured force strength per section
FORCE_SCALE = 0.5

# Debug colors keyed by recursion count: red, green, blue, cyan
LEVEL_COLORS = (
    (1.0, 0.0, 0.0, 1.0),
    (0.0, 1.0, 0.0, 1.0),
    (0.0, 0.0, 1.0, 1.0),
    (0.0, 1.0, 1.0, 1.0),
)


class TreeMesh(NamedTuple):
    """The two finished buffer sets of one tree."""

    branches: MeshBuffers
    leaves: MeshBuffers


@dataclass
class GenerationStats:
    """Counters collected while a tree is generated."""

    branches: int = 0  # Branch frames, trunk continuations included
    continuations: int = 0
    leaf_clusters: int = 0
    leaf_quads: int = 0
    max_depth: int = 0


@dataclass
class _Growth:
    """Per-call traversal context threaded through the recursion."""

    settings: TreeSettings
    draw: DrawSource
    branches: MeshBuffers
    leaves: MeshBuffers
    stats: GenerationStats = field(default_factory=GenerationStats)
    force_orientation: Rotation | None = None


def level_color(recursion_count: int) -> tuple[float, float, float, float]:
    """Debug color for a recursion count; wraps after four tiers."""
    return LEVEL_COLORS[recursion_count % len(LEVEL_COLORS)]


def section_length_factor(settings: TreeSettings, state: BranchGenState) -> float:
    """
    Share of the requested length given to each section of this frame.

    A deciduous trunk is built from `levels + 1` pieces; lower pieces get
    proportionally more length and all pieces together add up to the
    configured trunk length.
    """
    if state.level > 0 or settings.tree_type is TreeType.EVERGREEN:
        return 1.0
    levels = settings.branch.levels
    pieces = sum(range(1, levels + 2))
    return (levels - state.recursion_count + 1) / pieces


def taper_multiplier(settings: TreeSettings, state: BranchGenState) -> float:
    """Per-section radius multiplier reaching `1 - taper` over the branch."""
    exponent = 1.0 / state.sections
    if settings.tree_type is TreeType.DECIDUOUS and state.level == 0:
        # The whole segmented trunk reaches the taper, not each piece
        exponent /= settings.branch.levels + 1
    return (1.0 - state.taper) ** exponent


def is_terminal(settings: TreeSettings, state: BranchGenState) -> bool:
    """Whether this branch ends in a tip (and so its last ring collapses)."""
    return (
        state.recursion_count == settings.branch.levels
        or settings.tree_type is TreeType.EVERGREEN
    )


def _emit_ring(
    growth: _Growth,
    state: BranchGenState,
    ring: int,
    section: SectionData,
) -> None:
    segments = state.segments
    growth.branches.reserve(segments + 1)

    angles = 2.0 * np.pi * np.arange(segments) / segments
    directions = np.stack([np.cos(angles), np.zeros(segments), np.sin(angles)], axis=1)

    positions = section.orientation.apply(directions * section.radius) + section.origin
    normals = section.orientation.apply(directions)
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)

    v = 0.0 if ring % 2 == 0 else 1.0
    uvs = np.stack([np.arange(segments) / segments, np.full(segments, v)], axis=1)

    # Close the seam with a copy of the first vertex at U = 1
    positions = np.vstack([positions, positions[:1]])
    normals = np.vstack([normals, normals[:1]])
    uvs = np.vstack([uvs, [[1.0, v]]])
    colors = np.tile(level_color(state.recursion_count), (segments + 1, 1))

    growth.branches.add_vertices(positions, normals, uvs, colors)


def _bend(
    growth: _Growth,
    state: BranchGenState,
    section: SectionData,
    section_length: float,
    taper: float,
) -> SectionData:
    """Advance one section: gnarl, twist, force blend, taper, then move along."""
    force = growth.settings.branch.force

    gnarl = state.gnarliness * GNARL_SCALE / math.sqrt(max(section.radius, MIN_TIP_RADIUS))
    dx = (growth.draw.random() - 0.5) * gnarl
    dz = (growth.draw.random() - 0.5) * gnarl
    twist = rotation.axis_angle(rotation.UP, state.twist)
    orientation = rotation.gnarl_rotation(dx, dz) * section.orientation * twist

    # Force fades out linearly as the radius grows toward the cutoff
    radius_factor = 1.0 - min(max(section.radius / force.radius_cutoff, 0.0), 1.0)
    strength = min(max(force.strength * radius_factor * FORCE_SCALE, 0.0), 1.0)
    orientation = rotation.slerp(orientation, growth.force_orientation, strength)

    up = orientation.apply(rotation.UP)
    return SectionData(
        origin=section.origin + up * section_length,
        orientation=orientation,
        radius=section.radius * taper,
    )


def _recurse_branch(growth: _Growth, state: BranchGenState, depth: int) -> None:
    settings = growth.settings
    stats = growth.stats
    stats.branches += 1
    stats.max_depth = max(stats.max_depth, depth)

    indices_start = growth.branches.vertex_count
    section_length = state.length / state.sections * section_length_factor(settings, state)
    taper = taper_multiplier(settings, state)
    terminal = is_terminal(settings, state)

    sections: list[SectionData] = []
    section = SectionData(
        origin=state.origin, orientation=state.orientation, radius=state.start_radius
    )
    for ring in range(state.sections + 1):
        if ring == state.sections and terminal:
            section = replace(section, radius=MIN_TIP_RADIUS)
        _emit_ring(growth, state, ring, section)
        sections.append(section)
        if ring < state.sections:
            section = _bend(growth, state, section, section_length, taper)

    stride = state.segments + 1
    triangles = []
    for i in range(state.sections):
        for j in range(state.segments):
            a = indices_start + i * stride + j
            b = a + 1
            c = a + stride
            d = b + stride
            triangles.extend((a, c, b, b, c, d))
    growth.branches.add_triangles(triangles)

    logger.debug(
        "Branch level=%d count=%d rings=%d radius=%.4f",
        state.level,
        state.recursion_count,
        len(sections),
        state.start_radius,
    )

    levels = settings.branch.levels
    tip = sections[-1]
    if (
        settings.tree_type is TreeType.DECIDUOUS
        and state.level == 0
        and state.recursion_count < levels
    ):
        # Next trunk piece grows from this piece's last ring
        stats.continuations += 1
        continuation = replace(
            state,
            origin=tip.origin,
            orientation=tip.orientation,
            start_radius=tip.radius,
            recursion_count=state.recursion_count + 1,
        )
        _recurse_branch(growth, continuation, depth + 1)

    if state.recursion_count == levels:
        stats.leaf_clusters += 1
        stats.leaf_quads += generate_leaf_cluster(
            settings, sections, growth.draw, growth.leaves
        )
        return

    for child in place_children(
        settings.branch.children[state.recursion_count],
        state.recursion_count + 1,
        sections,
        settings,
        growth.draw,
    ):
        _recurse_branch(growth, child, depth + 1)


def grow_tree(
    settings: TreeSettings,
    draw: DrawSource,
    index_width: IndexWidth = IndexWidth.U16,
    stats: GenerationStats | None = None,
) -> TreeMesh:
    """
    Generate branch and leaf meshes using an explicit draw source.

    Args:
        settings: Resolved tree configuration
        draw: Source of uniform draws in [0, 1); consumed, never seeded here
        index_width: Integer width the triangle indices must fit in
        stats: Optional counters filled in during generation

    Returns:
        TreeMesh(branches, leaves)

    Raises:
        GeometryOverflowError: if either buffer would need more vertices
            than `index_width` can address
    """
    growth = _Growth(
        settings=settings,
        draw=draw,
        branches=MeshBuffers(index_width=index_width, with_colors=True),
        leaves=MeshBuffers(index_width=index_width),
        stats=stats if stats is not None else GenerationStats(),
        force_orientation=rotation.rotation_arc(
            rotation.UP, rotation.normalize(settings.branch.force.direction)
        ),
    )
    try:
        _recurse_branch(growth, trunk_state(settings), depth=1)
    except GeometryOverflowError as e:
        logger.warning("Tree generation aborted: %s", e)
        raise

    logger.info(
        "Generated %s tree: %d branches (%d trunk continuations), "
        "%d branch vertices, %d leaf quads",
        settings.tree_type.value,
        growth.stats.branches,
        growth.stats.continuations,
        growth.branches.vertex_count,
        growth.stats.leaf_quads,
    )
    return TreeMesh(branches=growth.branches, leaves=growth.leaves)


def generate(
    settings: TreeSettings,
    seed: int,
    index_width: IndexWidth = IndexWidth.U16,
) -> TreeMesh:
    """Generate a tree from settings and a 64-bit seed."""
    return grow_tree(settings, make_draw_source(seed), index_width)
