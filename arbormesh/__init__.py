"""
Arbormesh Procedural Tree Module

Deterministic generation of tree geometry (tapered, bent branch meshes plus
billboard foliage) from a declarative parameter set and a seed.

Modules:
    config: Tree, branch and leaf parameters
    draw: Deterministic uniform draw sources
    rotation: Orientation helpers (scipy rotations)
    buffers: Mesh buffers, index widths and overflow errors
    skeleton: Branch state and ring sampling values
    children: Child branch placement
    leaves: Billboard leaf generation
    engine: Recursive mesh generation
    host: Settings override resolution for hosted trees
    export: Wavefront OBJ export
    preview: matplotlib preview rendering
"""

from arbormesh.buffers import GeometryOverflowError, IndexWidth, MeshArrays, MeshBuffers
from arbormesh.children import place_children
from arbormesh.config import (
    MAX_LEVELS,
    BranchForce,
    BranchParams,
    LeafBillboard,
    LeafParams,
    TreeSettings,
    TreeType,
)
from arbormesh.draw import DrawSource, SequenceDrawSource, make_draw_source
from arbormesh.engine import GenerationStats, TreeMesh, generate, grow_tree
from arbormesh.export import format_obj, write_obj
from arbormesh.host import TreeInstance, build_instance, resolve_settings
from arbormesh.leaves import generate_leaf, generate_leaf_cluster
from arbormesh.skeleton import MIN_TIP_RADIUS, BranchGenState, SectionData

__all__ = [
    # Config
    "MAX_LEVELS",
    "BranchForce",
    "BranchParams",
    "LeafBillboard",
    "LeafParams",
    "TreeSettings",
    "TreeType",
    # Randomness
    "DrawSource",
    "SequenceDrawSource",
    "make_draw_source",
    # Buffers
    "GeometryOverflowError",
    "IndexWidth",
    "MeshArrays",
    "MeshBuffers",
    # Generation
    "MIN_TIP_RADIUS",
    "BranchGenState",
    "SectionData",
    "GenerationStats",
    "TreeMesh",
    "generate",
    "grow_tree",
    "place_children",
    "generate_leaf",
    "generate_leaf_cluster",
    # Hosting and export
    "TreeInstance",
    "build_instance",
    "resolve_settings",
    "format_obj",
    "write_obj",
]
