"""Triangle meshes of simple solids, with normals, texture coordinates and tangents."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

_MAX_INDEX = np.iinfo(np.uint16).max


@dataclass
class Mesh:
    """Per-vertex attributes of a triangle mesh.

    ``indices`` lists the vertices of each triangle in turn; when it is
    ``None`` the vertices themselves are taken three at a time.
    """

    vertices: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray | None = None
    tangents: np.ndarray | None = None
    bitangents: np.ndarray | None = None

    @property
    def n_elements(self) -> int:
        """Number of vertices drawn: index count, or vertex count without indices."""
        return len(self.vertices) if self.indices is None else len(self.indices)

    def triangles(self) -> np.ndarray:
        """Vertex positions grouped into an (m, 3, 3) array of triangles."""
        order = np.arange(len(self.vertices)) if self.indices is None else self.indices
        return self.vertices[np.asarray(order, dtype=np.int64)].reshape(-1, 3, 3)


def _check_size(size: float) -> float:
    if size <= 0.0:
        raise ValueError(f"size must be positive, got {size}")
    return float(size)


def _as_indices(values) -> np.ndarray:
    arr = np.asarray(values, dtype=np.int64)
    if arr.size and arr.max() > _MAX_INDEX:
        raise ValueError("mesh has too many vertices for 16-bit indices")
    return arr.astype(np.uint16)


def _grid_indices(rows: int, cols: int) -> np.ndarray:
    """Two triangles per cell of a (rows + 1) x (cols + 1) vertex grid."""
    i, j = np.meshgrid(np.arange(rows), np.arange(cols), indexing="ij")
    v0 = i * (cols + 1) + j
    v1 = (i + 1) * (cols + 1) + j
    v2 = (i + 1) * (cols + 1) + (j + 1)
    v3 = i * (cols + 1) + (j + 1)
    return np.stack([v0, v1, v2, v0, v2, v3], axis=-1).reshape(-1)


_CUBE_VERTICES = np.array(
    [
        [-1, -1, -1], [-1, -1, 1], [1, -1, 1], [1, -1, -1],   # bottom
        [-1, 1, -1], [-1, 1, 1], [1, 1, 1], [1, 1, -1],       # top
        [-1, -1, -1], [-1, 1, -1], [1, 1, -1], [1, -1, -1],   # back
        [-1, -1, 1], [-1, 1, 1], [1, 1, 1], [1, -1, 1],       # front
        [-1, -1, -1], [-1, -1, 1], [-1, 1, 1], [-1, 1, -1],   # left
        [1, -1, -1], [1, -1, 1], [1, 1, 1], [1, 1, -1],       # right
    ],
    dtype=float,
)

_CUBE_INDICES = np.array(
    [
        0, 2, 1, 0, 3, 2,
        4, 5, 6, 4, 6, 7,
        8, 9, 10, 8, 10, 11,
        12, 15, 14, 12, 14, 13,
        16, 17, 18, 16, 18, 19,
        20, 23, 22, 20, 22, 21,
    ],
    dtype=np.uint16,
)

_CUBE_NORMALS = np.repeat(
    np.array(
        [[0, -1, 0], [0, 1, 0], [0, 0, -1], [0, 0, 1], [-1, 0, 0], [1, 0, 0]],
        dtype=float,
    ),
    4,
    axis=0,
)

_CUBE_UVS = np.array(
    [
        [0, 0], [0, 1], [1, 1], [1, 0],
        [0, 1], [0, 0], [1, 0], [1, 1],
        [1, 0], [1, 1], [0, 1], [0, 0],
        [0, 0], [0, 1], [1, 1], [1, 0],
        [0, 0], [1, 0], [1, 1], [0, 1],
        [1, 0], [0, 0], [0, 1], [1, 1],
    ],
    dtype=float,
)


def cube(size: float = 1.0) -> Mesh:
    """Axis-aligned cube spanning ``-size`` to ``size``, four vertices per face."""
    size = _check_size(size)
    return Mesh(
        vertices=_CUBE_VERTICES * size,
        normals=_CUBE_NORMALS.copy(),
        uvs=_CUBE_UVS.copy(),
        indices=_CUBE_INDICES.copy(),
    )


def sphere(size: float = 1.0, slices: int = 30, parallels: int = 15) -> Mesh:
    """Sphere of radius ``size`` built from ``slices`` x ``parallels`` quads."""
    size = _check_size(size)
    if slices < 1 or parallels < 1:
        raise ValueError("slices and parallels must be at least 1")
    step = 2.0 * math.pi / slices
    i, j = np.meshgrid(np.arange(parallels + 1), np.arange(slices + 1), indexing="ij")
    unit = np.stack(
        [
            np.sin(step * i) * np.sin(step * j),
            np.cos(step * i),
            np.sin(step * i) * np.cos(step * j),
        ],
        axis=-1,
    ).reshape(-1, 3)
    normals = unit / np.linalg.norm(unit, axis=1, keepdims=True)
    uvs = np.stack([j / slices, 1.0 - i / parallels], axis=-1).reshape(-1, 2)
    return Mesh(
        vertices=unit * size,
        normals=normals,
        uvs=uvs.astype(float),
        indices=_as_indices(_grid_indices(parallels, slices)),
    )


def torus(
    inner_radius: float, outer_radius: float, slices: int = 30, stacks: int = 15
) -> Mesh:
    """Torus around the z axis between ``inner_radius`` and ``outer_radius``."""
    if inner_radius <= 0.0 or outer_radius <= 0.0:
        raise ValueError("radii must be positive")
    if inner_radius >= outer_radius:
        raise ValueError("inner radius must be smaller than outer radius")
    if slices < 1 or stacks < 1:
        raise ValueError("slices and stacks must be at least 1")

    center_radius = outer_radius - inner_radius
    tube_radius = center_radius / 2.0
    s = np.arange(slices + 1) / slices
    t = np.arange(stacks + 1) / stacks
    ss, tt = np.meshgrid(s, t, indexing="ij")
    cos_s, sin_s = np.cos(2 * math.pi * ss), np.sin(2 * math.pi * ss)
    cos_t, sin_t = np.cos(2 * math.pi * tt), np.sin(2 * math.pi * tt)

    ring = center_radius + tube_radius * cos_t
    vertices = np.stack([ring * cos_s, ring * sin_s, tube_radius * sin_t], axis=-1)
    normals = np.stack([cos_t * cos_s, cos_t * sin_s, sin_t], axis=-1)
    uvs = np.stack([ss, tt], axis=-1)
    return Mesh(
        vertices=vertices.reshape(-1, 3),
        normals=normals.reshape(-1, 3),
        uvs=uvs.reshape(-1, 2),
        indices=_as_indices(_grid_indices(slices, stacks)),
    )


_PLANE_VERTICES = np.array(
    [[-1, 1, 0], [-1, -1, 0], [1, -1, 0], [-1, 1, 0], [1, -1, 0], [1, 1, 0]],
    dtype=float,
)
_PLANE_UVS = np.array(
    [[0, 1], [0, 0], [1, 0], [0, 1], [1, 0], [1, 1]], dtype=float
)


def plane(size: float = 1.0) -> Mesh:
    """Square in the z = 0 plane facing +z, as two unindexed triangles with tangents."""
    size = _check_size(size)
    vertices = _PLANE_VERTICES * size
    normals = np.tile([0.0, 0.0, 1.0], (len(vertices), 1))
    uvs = _PLANE_UVS.copy()
    tangents, bitangents = compute_tangent_basis(vertices, uvs, normals)
    return Mesh(vertices, normals, uvs, None, tangents, bitangents)


def compute_tangent_basis(vertices, uvs, normals) -> tuple[np.ndarray, np.ndarray]:
    """Per-vertex tangents and bitangents of an unindexed triangle list.

    Tangents are made orthogonal to the normal, of unit length, and flipped so
    that ``cross(normal, tangent)`` points along the bitangent.
    """
    v = np.asarray(vertices, dtype=float)
    uv = np.asarray(uvs, dtype=float)
    n = np.asarray(normals, dtype=float)
    if v.ndim != 2 or v.shape[1] != 3 or len(v) % 3:
        raise ValueError("vertices must be an (n, 3) array with n a multiple of 3")
    if uv.shape != (len(v), 2) or n.shape != v.shape:
        raise ValueError("uvs and normals must match the vertices in number")

    tri = v.reshape(-1, 3, 3)
    tri_uv = uv.reshape(-1, 3, 2)
    dp1 = tri[:, 1] - tri[:, 0]
    dp2 = tri[:, 2] - tri[:, 0]
    duv1 = tri_uv[:, 1] - tri_uv[:, 0]
    duv2 = tri_uv[:, 2] - tri_uv[:, 0]

    det = duv1[:, 0] * duv2[:, 1] - duv1[:, 1] * duv2[:, 0]
    if np.any(det == 0):
        raise ValueError("a triangle has degenerate texture coordinates")
    r = (1.0 / det)[:, None]
    tangent = (dp1 * duv2[:, 1:2] - dp2 * duv1[:, 1:2]) * r
    bitangent = (dp2 * duv2[:, 0:1] - dp1 * duv1[:, 0:1]) * r

    tangents = np.repeat(tangent, 3, axis=0)
    bitangents = np.repeat(bitangent, 3, axis=0)

    tangents = tangents - n * np.sum(n * tangents, axis=1, keepdims=True)
    lengths = np.linalg.norm(tangents, axis=1, keepdims=True)
    if np.any(lengths == 0):
        raise ValueError("a tangent is parallel to its normal")
    tangents = tangents / lengths
    flip = np.sum(np.cross(n, tangents) * bitangents, axis=1) < 0.0
    tangents[flip] *= -1.0
    return tangents, bitangents