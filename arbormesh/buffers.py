"""
Append-only mesh buffers shared by the whole recursive traversal.

Two independent MeshBuffers are filled per generation: one for branches
(with per-vertex debug colors) and one for leaves. Every index written is
checked against the chosen index width before the vertices it refers to are
emitted, so an oversized tree fails loudly instead of wrapping indices.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

import numpy as np


class IndexWidth(Enum):
    """Integer width of triangle indices in the finished buffers."""

    U16 = 16
    U32 = 32

    @property
    def max_index(self) -> int:
        return 2**self.value - 1

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(np.uint16 if self is IndexWidth.U16 else np.uint32)


class GeometryOverflowError(ValueError):
    """Raised when a mesh would need more vertices than its indices can address."""

    def __init__(self, vertex_count: int, index_width: IndexWidth) -> None:
        self.vertex_count = vertex_count
        self.index_width = index_width
        super().__init__(
            f"Mesh needs {vertex_count} vertices but {index_width.name} indices "
            f"address at most {index_width.max_index + 1}: reduce levels, "
            "sections, segments or leaf count, or widen the index type"
        )


class MeshArrays(NamedTuple):
    """Finished buffers as numpy arrays, ready for upload by a host renderer."""

    positions: np.ndarray  # [n, 3] float32
    normals: np.ndarray  # [n, 3] float32
    uvs: np.ndarray  # [n, 2] float32
    indices: np.ndarray  # [m] uint16 or uint32
    colors: np.ndarray | None  # [n, 4] float32 (branches only)


@dataclass
class MeshBuffers:
    """
    Vertex attributes and triangle indices accumulated during generation.

    Attributes are stored as plain tuples of Python floats so two
    generations can be compared element for element.
    """

    index_width: IndexWidth = IndexWidth.U16
    with_colors: bool = False
    positions: list[tuple[float, float, float]] = field(default_factory=list)
    normals: list[tuple[float, float, float]] = field(default_factory=list)
    uvs: list[tuple[float, float]] = field(default_factory=list)
    indices: list[int] = field(default_factory=list)
    colors: list[tuple[float, float, float, float]] = field(default_factory=list)

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    def reserve(self, count: int) -> int:
        """
        Check that `count` more vertices stay addressable.

        Returns the index the first of them will get.
        """
        total = self.vertex_count + count
        if total - 1 > self.index_width.max_index:
            raise GeometryOverflowError(total, self.index_width)
        return self.vertex_count

    def add_vertices(
        self,
        positions: np.ndarray,
        normals: np.ndarray,
        uvs: np.ndarray,
        colors: np.ndarray | None = None,
    ) -> None:
        """Append rows of positions [n, 3], normals [n, 3], uvs [n, 2] (and colors [n, 4])."""
        n = len(positions)
        if len(normals) != n or len(uvs) != n:
            raise ValueError("Vertex attribute arrays must have equal length")
        if self.with_colors != (colors is not None):
            raise ValueError(
                "Colors are required for colored buffers and rejected otherwise"
            )
        self.reserve(n)
        self.positions.extend(tuple(p) for p in np.asarray(positions, dtype=float).tolist())
        self.normals.extend(tuple(v) for v in np.asarray(normals, dtype=float).tolist())
        self.uvs.extend(tuple(uv) for uv in np.asarray(uvs, dtype=float).tolist())
        if colors is not None:
            self.colors.extend(tuple(c) for c in np.asarray(colors, dtype=float).tolist())

    def add_triangles(self, indices) -> None:
        """Append triangle indices; each must refer to an already emitted vertex."""
        indices = [int(i) for i in indices]
        if len(indices) % 3:
            raise ValueError("Triangle indices must come in groups of three")
        if indices and (min(indices) < 0 or max(indices) >= self.vertex_count):
            raise ValueError("Triangle index refers to a vertex not yet emitted")
        self.indices.extend(indices)

    def to_arrays(self) -> MeshArrays:
        """Pack the buffers into numpy arrays."""
        n = self.vertex_count
        return MeshArrays(
            positions=np.asarray(self.positions, dtype=np.float32).reshape(n, 3),
            normals=np.asarray(self.normals, dtype=np.float32).reshape(n, 3),
            uvs=np.asarray(self.uvs, dtype=np.float32).reshape(n, 2),
            indices=np.asarray(self.indices, dtype=self.index_width.dtype),
            colors=(
                np.asarray(self.colors, dtype=np.float32).reshape(n, 4)
                if self.with_colors
                else None
            ),
        )
