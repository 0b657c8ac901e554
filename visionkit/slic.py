"""SLIC superpixels: k-means clustering in combined CIELab and image space."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

_RGB_TO_XYZ = np.array(
    [
        [0.412453, 0.357580, 0.180423],
        [0.212671, 0.715160, 0.072169],
        [0.019334, 0.119193, 0.950227],
    ]
)
_WHITE = np.array([0.950456, 1.0, 1.088754])


def bgr_to_lab(image) -> np.ndarray:
    """Convert an 8-bit BGR image to 8-bit CIELab.

    L is scaled to [0, 255]; a and b are offset by 128.
    """
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise ValueError(f"expected an (h, w, 3) image, got shape {arr.shape}")
    if arr.dtype != np.uint8:
        raise ValueError(f"expected an 8-bit image, got {arr.dtype}")

    rgb = arr[..., ::-1].astype(float) / 255.0
    linear = np.where(rgb <= 0.04045, rgb / 12.92, ((rgb + 0.055) / 1.055) ** 2.4)
    xyz = (linear @ _RGB_TO_XYZ.T) / _WHITE
    f = np.where(xyz > 0.008856, np.cbrt(xyz), 7.787 * xyz + 16.0 / 116.0)
    y = xyz[..., 1]
    lightness = np.where(y > 0.008856, 116.0 * f[..., 1] - 16.0, 903.3 * y)
    a = 500.0 * (f[..., 0] - f[..., 1])
    b = 200.0 * (f[..., 1] - f[..., 2])
    lab = np.stack([lightness * 255.0 / 100.0, a + 128.0, b + 128.0], axis=-1)
    return np.clip(np.rint(lab), 0, 255).astype(np.uint8)


@dataclass
class ColorRep:
    """A five-dimensional point: Lab colour and x, y position."""

    l: float = 0.0
    a: float = 0.0
    b: float = 0.0
    x: float = 0.0
    y: float = 0.0

    def add(self, color, x: float, y: float) -> None:
        """Add a colour and a position to this one."""
        self.l += float(color[0])
        self.a += float(color[1])
        self.b += float(color[2])
        self.x += float(x)
        self.y += float(y)

    def div(self, divisor: float) -> None:
        """Divide colour and position by ``divisor``."""
        self.l /= divisor
        self.a /= divisor
        self.b /= divisor
        self.x /= divisor
        self.y /= divisor

    def color_dist(self, other: ColorRep) -> float:
        """Squared distance between the colours."""
        return (
            (self.l - other.l) ** 2 + (self.a - other.a) ** 2 + (self.b - other.b) ** 2
        )

    def coord_dist(self, other: ColorRep) -> float:
        """Squared distance between the positions."""
        return (self.x - other.x) ** 2 + (self.y - other.y) ** 2


class SlicSuperpixel:
    """Superpixel segmentation of a BGR image.

    ``s`` is the grid interval, ``m`` the compactness, ``image`` the Lab image,
    ``clusters`` the per-pixel cluster index (-1 when unassigned) and
    ``centers`` the cluster centres.
    """

    def __init__(
        self, image, n_superpixels: int, m: int = 10, max_iterations: int = 10
    ) -> None:
        if n_superpixels <= 0:
            raise ValueError("the number of superpixels must be positive")
        self.image = bgr_to_lab(image)
        rows, cols = self.image.shape[:2]
        self.k = n_superpixels
        self.s = int(math.sqrt(rows * cols / n_superpixels))
        if self.s < 1:
            raise ValueError("more superpixels requested than the image can hold")
        self.m = m
        self.max_iterations = max_iterations

        self.centers: list[ColorRep] = []
        for y in range(self.s, rows - self.s // 2, self.s):
            for x in range(self.s, cols - self.s // 2, self.s):
                my, mx = self._local_minimum(x, y)
                l, a, b = (float(v) for v in self.image[my, mx])
                self.centers.append(ColorRep(l, a, b, float(mx), float(my)))

        self.clusters = np.full((rows, cols), -1, dtype=np.int64)
        self.distances = np.full((rows, cols), np.inf)
        self.center_counts = np.zeros(len(self.centers), dtype=np.int64)

    def _local_minimum(self, x: int, y: int) -> tuple[int, int]:
        """Position (y, x) of the lowest lightness gradient in the 3x3 neighbourhood."""
        lum = self.image[..., 0].astype(float)
        rows, cols = lum.shape

        def clip_y(v: int) -> int:
            return min(max(v, 0), rows - 1)

        def clip_x(v: int) -> int:
            return min(max(v, 0), cols - 1)

        def gradient(pos: tuple[int, int]) -> float:
            yy, xx = pos
            here = lum[yy, xx]
            return abs(lum[clip_y(yy + 1), xx] - here) + abs(lum[yy, clip_x(xx + 1)] - here)

        candidates = [
            (clip_y(yy), clip_x(xx))
            for yy in range(y - 1, y + 2)
            for xx in range(x - 1, x + 2)
        ]
        return min(candidates, key=gradient)

    def generate(self) -> None:
        """Run the clustering for ``max_iterations`` rounds."""
        rows, cols = self.clusters.shape
        lab = self.image.astype(float)
        s = self.s
        ratio = (self.m * self.m) / (s * s)

        for _ in range(self.max_iterations):
            self.distances.fill(np.inf)
            for k, center in enumerate(self.centers):
                y0 = max(int(center.y - s), 0)
                y1 = min(math.ceil(center.y + s), rows)
                x0 = max(int(center.x - s), 0)
                x1 = min(math.ceil(center.x + s), cols)
                if y0 >= y1 or x0 >= x1:
                    continue
                region = lab[y0:y1, x0:x1]
                d_lab = ((region - (center.l, center.a, center.b)) ** 2).sum(axis=-1)
                ys = np.arange(y0, y1)[:, None]
                xs = np.arange(x0, x1)[None, :]
                d_xy = (center.x - xs) ** 2 + (center.y - ys) ** 2
                dist = np.sqrt(d_lab + d_xy * ratio)
                best = self.distances[y0:y1, x0:x1]
                labels = self.clusters[y0:y1, x0:x1]
                better = dist < best
                best[better] = dist[better]
                labels[better] = k
            self._update_centers(lab)

    def _update_centers(self, lab: np.ndarray) -> None:
        """Move every centre to the mean of its pixels; empty clusters keep their centre."""
        n = len(self.centers)
        assigned = self.clusters >= 0
        ids = self.clusters[assigned]
        ys, xs = np.nonzero(assigned)
        colours = lab[assigned]
        counts = np.bincount(ids, minlength=n)
        totals = [
            np.bincount(ids, weights=values, minlength=n)
            for values in (colours[:, 0], colours[:, 1], colours[:, 2], xs, ys)
        ]
        self.center_counts = counts
        self.centers = [
            old if counts[k] == 0
            else ColorRep(*(float(total[k]) / counts[k] for total in totals))
            for k, old in enumerate(self.centers)
        ]

    def cluster_centers(self) -> list[tuple[int, int]]:
        """Integer (x, y) position of every cluster centre."""
        return [(int(c.x), int(c.y)) for c in self.centers]

    def contours(self) -> list[tuple[int, int]]:
        """Pixels (x, y) that separate clusters, scanned row by row."""
        labels = self.clusters
        rows, cols = labels.shape

        def differs(dx: int, dy: int) -> np.ndarray:
            out = np.zeros((rows, cols), dtype=bool)
            src = (
                slice(max(0, -dy), rows - max(0, dy)),
                slice(max(0, -dx), cols - max(0, dx)),
            )
            dst = (
                slice(max(0, dy), rows + min(0, dy)),
                slice(max(0, dx), cols + min(0, dx)),
            )
            out[src] = labels[src] != labels[dst]
            return out

        later = (
            differs(1, 0).astype(int)
            + differs(1, 1)
            + differs(0, 1)
            + differs(-1, 1)
        )
        left = differs(-1, 0)
        up_left = differs(-1, -1)
        up = differs(0, -1)
        up_right = differs(1, -1)

        result: list[tuple[int, int]] = []
        taken_prev = np.zeros(cols, dtype=bool)
        for y in range(rows):
            count = later[y].copy()
            if y > 0:
                prev_left = np.concatenate([[False], taken_prev[:-1]])
                prev_right = np.concatenate([taken_prev[1:], [False]])
                count += up_left[y] & ~prev_left
                count += up[y] & ~taken_prev
                count += up_right[y] & ~prev_right
            taken = np.zeros(cols, dtype=bool)
            for x in range(cols):
                total = count[x]
                if x > 0 and left[y, x] and not taken[x - 1]:
                    total += 1
                if total > 1:
                    taken[x] = True
                    result.append((x, y))
            taken_prev = taken
        return result

    def recolor(self) -> np.ndarray:
        """Lab image with each cluster painted in its mean colour."""
        out = self.image.copy()
        assigned = self.clusters >= 0
        ids = self.clusters[assigned]
        n = len(self.centers)
        counts = np.bincount(ids, minlength=n)
        lab = self.image.astype(float)
        sums = np.stack(
            [np.bincount(ids, weights=lab[..., ch][assigned], minlength=n) for ch in range(3)],
            axis=1,
        )
        with np.errstate(divide="ignore", invalid="ignore"):
            means = sums / counts[:, None]
        out[assigned] = np.trunc(means[ids]).astype(np.uint8)
        return out