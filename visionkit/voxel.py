"""Voxel carving of a grid against silhouettes seen through projective cameras."""

from __future__ import annotations

from dataclasses import dataclass, field
from os import PathLike

import numpy as np

FLT_MAX = float(np.finfo(np.float32).max)


@dataclass
class VoxelGrid:
    """Voxel centres with a colour (BGR) and the nearest depth at which each was seen."""

    voxel_size: float = 1.0
    grid: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    colors: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.uint8))
    depths: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        self.grid = np.asarray(self.grid, dtype=float).reshape(-1, 3)
        self.colors = np.asarray(self.colors, dtype=np.uint8).reshape(-1, 3)
        self.depths = np.asarray(self.depths, dtype=float).reshape(-1)
        if not len(self.grid) == len(self.colors) == len(self.depths):
            raise ValueError("grid, colours and depths must have equal length")

    def __len__(self) -> int:
        return len(self.grid)

    @classmethod
    def regular(cls, x_div: int, y_div: int, z_div: int, voxel_size: float, origin) -> VoxelGrid:
        """A full grid of ``x_div * y_div * z_div`` voxels starting at ``origin``.

        Voxels are ordered with x outermost and z innermost.
        """
        if min(x_div, y_div, z_div) < 0:
            raise ValueError("grid divisions must not be negative")
        offsets = np.indices((x_div, y_div, z_div)).reshape(3, -1).T
        grid = np.asarray(origin, dtype=float) + offsets * float(voxel_size)
        n = len(grid)
        return cls(
            voxel_size=float(voxel_size),
            grid=grid,
            colors=np.zeros((n, 3), dtype=np.uint8),
            depths=np.full(n, FLT_MAX),
        )

    def carve(self, images, masks, projections) -> None:
        """Keep only voxels that project inside every mask's foreground.

        Each visible voxel takes the colour of the nearest view that saw it.
        """
        images, masks, projections = list(images), list(masks), list(projections)
        if not len(images) == len(masks) == len(projections):
            raise ValueError("images, masks and projections must be given in equal number")

        for image, mask, projection in zip(images, masks, projections):
            img = np.asarray(image)
            msk = np.asarray(mask)
            proj = np.asarray(projection, dtype=float)
            if proj.shape != (3, 4):
                raise ValueError(f"expected a 3x4 projection matrix, got shape {proj.shape}")
            if msk.ndim != 2:
                raise ValueError("masks must be two-dimensional")
            if img.ndim != 3 or img.shape[2] != 3 or img.shape[:2] != msk.shape:
                raise ValueError("each image must be three-channel and match its mask in size")
            rows, cols = msk.shape

            homog = np.hstack([self.grid, np.ones((len(self.grid), 1))])
            projected = homog @ proj.T
            w = projected[:, 2]
            with np.errstate(divide="ignore", invalid="ignore"):
                u = np.trunc(projected[:, 0] / w)
                v = np.trunc(projected[:, 1] / w)
            inside = (
                np.isfinite(u) & np.isfinite(v)
                & (u >= 0) & (u < cols) & (v >= 0) & (v < rows)
            )
            xs = np.where(inside, u, 0).astype(np.int64)
            ys = np.where(inside, v, 0).astype(np.int64)

            keep = inside.copy()
            keep[inside] = msk[ys[inside], xs[inside]] != 0

            depths = self.depths.copy()
            colors = self.colors.copy()
            closer = keep & (w < depths)
            depths[closer] = w[closer]
            colors[closer] = img[ys[closer], xs[closer]]

            self.grid = self.grid[keep]
            self.colors = colors[keep]
            self.depths = depths[keep]

    def subdivide_and_refine(self, sub_division: int, images, masks, projections) -> None:
        """Add the interior points of each voxel at a finer size, carve them, and append the survivors."""
        if sub_division < 1:
            raise ValueError("sub_division must be at least 1")
        new_size = self.voxel_size / sub_division
        offsets = (np.indices((sub_division - 1,) * 3).reshape(3, -1).T + 1) * new_size
        count = len(offsets)
        finer = VoxelGrid(
            voxel_size=new_size,
            grid=(self.grid[:, None, :] + offsets[None, :, :]).reshape(-1, 3),
            colors=np.repeat(self.colors, count, axis=0),
            depths=np.full(len(self.grid) * count, FLT_MAX),
        )
        finer.carve(images, masks, projections)
        self.grid = np.vstack([self.grid, finer.grid])
        self.colors = np.vstack([self.colors, finer.colors])
        self.depths = np.concatenate([self.depths, finer.depths])

    def normalize(self) -> None:
        """Rescale the voxel coordinates so each axis spans -1 to 1."""
        if len(self.grid) == 0:
            raise ValueError("cannot normalize an empty grid")
        lo = self.grid.min(axis=0)
        length = (self.grid.max(axis=0) - lo) * 0.5
        if np.any(length == 0):
            raise ValueError("grid has no extent along some axis")
        self.grid = (self.grid - lo) / length - 1.0

    def save_ply(self, path: str | PathLike[str]) -> None:
        """Write the voxels as coloured vertices of an ASCII PLY file."""
        size = len(self.grid)
        lines = [
            "ply",
            "format ascii 1.0",
            f"element vertex {size}",
            "property float x",
            "property float y",
            "property float z",
            "property uchar red",
            "property uchar green",
            "property uchar blue",
            f"element face {size // 3}",
            "property list uchar int vertex_indices",
            "end_header",
        ]
        lines.extend(
            f"{x:g} {y:g} {z:g} {int(c[2])} {int(c[1])} {int(c[0])}"
            for (x, y, z), c in zip(self.grid, self.colors)
        )
        lines.extend(f"3 {i} {i + 1} {i + 2}" for i in range(0, size - size % 3, 3))
        with open(path, "w", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")


def _leading_floats(text: str) -> list[float]:
    values = []
    for token in text.split():
        try:
            values.append(float(token))
        except ValueError:
            break
    return values


def read_calib_file(path: str | PathLike[str]) -> list[np.ndarray]:
    """Read the 3x4 projection matrices from lines starting with ``proj``."""
    matrices = []
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            line = line.rstrip("\r\n")
            if not line.startswith("proj"):
                continue
            start = line.find("[")
            if start < 0:
                raise ValueError(f"projection line without '[': {line!r}")
            end = line.find("]")
            body = line[start + 2:] if end < 0 else line[start + 2:end]
            values = _leading_floats(body.replace(";", ""))
            if len(values) < 12:
                raise ValueError(f"projection needs 12 values, got {len(values)}: {line!r}")
            matrices.append(np.array(values[:12], dtype=float).reshape(3, 4))
    return matrices