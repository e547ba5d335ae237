"""
Wavefront OBJ export of generated tree meshes.

Branches and leaves are written as two groups of one file. Vertex indices
in OBJ are 1-based and global, so the leaf group is offset by the number of
branch vertices.
"""

from pathlib import Path

from arbormesh.buffers import MeshBuffers
from arbormesh.engine import TreeMesh


def _format_group(name: str, buffers: MeshBuffers, vert_offset: int) -> list[str]:
    lines = [f"g {name}"]
    for x, y, z in buffers.positions:
        lines.append(f"v {x:.6f} {y:.6f} {z:.6f}")
    for u, v in buffers.uvs:
        lines.append(f"vt {u:.6f} {v:.6f}")
    for x, y, z in buffers.normals:
        lines.append(f"vn {x:.6f} {y:.6f} {z:.6f}")
    indices = buffers.indices
    for k in range(0, len(indices), 3):
        a, b, c = [idx + vert_offset + 1 for idx in indices[k:k + 3]]
        lines.append(f"f {a}/{a}/{a} {b}/{b}/{b} {c}/{c}/{c}")
    return lines


def format_obj(mesh: TreeMesh) -> str:
    """OBJ text for both buffers of a tree."""
    lines = ["# arbormesh tree"]
    vert_offset = 0
    for name, buffers in (("branches", mesh.branches), ("leaves", mesh.leaves)):
        lines.extend(_format_group(name, buffers, vert_offset))
        vert_offset += buffers.vertex_count
    return "\n".join(lines) + "\n"


def write_obj(path: str | Path, mesh: TreeMesh) -> None:
    """Write a tree to an OBJ file."""
    with open(path, "w") as f:
        f.write(format_obj(mesh))
