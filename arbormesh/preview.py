"""
Quick matplotlib preview of generated tree meshes.

This is a debugging aid, not a renderer: triangles are drawn flat, branch
faces are tinted by their recursion-level debug colors and leaves are drawn
as translucent green quads. The generator is y-up while matplotlib's 3D axes
are z-up, so y and z are swapped for display.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from mpl_toolkits.mplot3d.art3d import Poly3DCollection

from arbormesh.buffers import MeshBuffers
from arbormesh.engine import TreeMesh

LEAF_COLOR = (0.24, 0.63, 0.35, 0.8)


def _triangles(buffers: MeshBuffers) -> np.ndarray:
    """[m, 3, 3] triangle corners in display (z-up) coordinates."""
    arrays = buffers.to_arrays()
    display = arrays.positions[:, [0, 2, 1]]
    return display[arrays.indices.astype(np.int64).reshape(-1, 3)]


def _face_colors(buffers: MeshBuffers) -> np.ndarray:
    arrays = buffers.to_arrays()
    corners = arrays.colors[arrays.indices.astype(np.int64).reshape(-1, 3)]
    return corners.mean(axis=1)


def render_tree_mesh(
    mesh: TreeMesh,
    show_leaves: bool = True,
    figsize: tuple = (8, 8),
    elevation: float = 15.0,
    azimuth: float = 45.0,
) -> tuple[plt.Figure, plt.Axes]:
    """
    Render a tree mesh into a new 3D figure.

    Args:
        mesh: Generated branch and leaf buffers
        show_leaves: Draw the leaf quads
        figsize: Figure size in inches
        elevation: Camera elevation in degrees
        azimuth: Camera azimuth in degrees

    Returns:
        (figure, axes) tuple
    """
    fig = plt.figure(figsize=figsize)
    ax = fig.add_subplot(projection="3d")

    collections = []
    if mesh.branches.triangle_count:
        branch_faces = Poly3DCollection(
            _triangles(mesh.branches),
            facecolors=_face_colors(mesh.branches),
            linewidths=0.0,
        )
        collections.append(branch_faces)
    if show_leaves and mesh.leaves.triangle_count:
        leaf_faces = Poly3DCollection(
            _triangles(mesh.leaves), facecolors=LEAF_COLOR, linewidths=0.0
        )
        collections.append(leaf_faces)
    for collection in collections:
        ax.add_collection3d(collection)

    points = [np.asarray(mesh.branches.positions)[:, [0, 2, 1]]]
    if show_leaves and mesh.leaves.vertex_count:
        points.append(np.asarray(mesh.leaves.positions)[:, [0, 2, 1]])
    points = np.vstack(points)
    lo, hi = points.min(axis=0), points.max(axis=0)
    center = (lo + hi) / 2
    half = max(float((hi - lo).max()) / 2, 1e-3)
    ax.set_xlim(center[0] - half, center[0] + half)
    ax.set_ylim(center[1] - half, center[1] + half)
    ax.set_zlim(lo[2], lo[2] + 2 * half)

    ax.view_init(elev=elevation, azim=azimuth)
    ax.set_axis_off()
    return fig, ax


def save_tree_mesh(
    filepath: str | Path, mesh: TreeMesh, dpi: int = 150, **kwargs
) -> None:
    """Render and save a tree mesh preview to file."""
    fig, _ = render_tree_mesh(mesh, **kwargs)
    fig.savefig(filepath, dpi=dpi, bbox_inches="tight", pad_inches=0.1)
    plt.close(fig)
