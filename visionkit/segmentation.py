"""Spectral clustering of SLIC superpixels into image segments."""

from __future__ import annotations

import numpy as np

from .slic import ColorRep


def degree_matrix(adjacency) -> np.ndarray:
    """Degree of every node: the sum of each column of ``adjacency``."""
    adj = np.asarray(adjacency, dtype=float)
    if adj.ndim != 2:
        raise ValueError("adjacency must be a two-dimensional matrix")
    return adj.sum(axis=0)


def _features(points) -> np.ndarray:
    reps = list(points)
    if not reps:
        raise ValueError("at least one cluster centre is required")
    return np.array([[c.l, c.a, c.b, c.x, c.y] for c in reps], dtype=float)


def _kmeans(
    data: np.ndarray,
    k: int,
    rng: np.random.Generator,
    attempts: int = 2,
    max_iter: int = 1000,
    eps: float = 1e-5,
) -> np.ndarray:
    """k-means with random centres drawn inside the data's bounding box.

    Runs ``attempts`` times and returns the labels of the most compact result.
    """
    lo, hi = data.min(axis=0), data.max(axis=0)
    best_labels = None
    best_compactness = np.inf

    for _ in range(attempts):
        centers = rng.uniform(lo, hi, size=(k, data.shape[1]))
        for _ in range(max_iter):
            dist = ((data[:, None, :] - centers[None, :, :]) ** 2).sum(axis=-1)
            labels = dist.argmin(axis=1)
            new_centers = centers.copy()
            for j in range(k):
                members = data[labels == j]
                if len(members):
                    new_centers[j] = members.mean(axis=0)
                else:
                    # Empty cluster: take the point farthest from its own centre.
                    own = dist[np.arange(len(data)), labels]
                    far = int(own.argmax())
                    new_centers[j] = data[far]
                    labels[far] = j
            shift = float(((new_centers - centers) ** 2).sum(axis=1).max())
            centers = new_centers
            if shift <= eps * eps:
                break

        dist = ((data[:, None, :] - centers[None, :, :]) ** 2).sum(axis=-1)
        labels = dist.argmin(axis=1)
        compactness = float(dist[np.arange(len(data)), labels].sum())
        if compactness < best_compactness:
            best_compactness = compactness
            best_labels = labels

    return best_labels


class SuperpixelSegmentation:
    """Groups superpixels by the eigenvectors of their normalized graph Laplacian.

    ``image_size`` is (width, height). ``cluster_mask`` holds the segment label
    of every pixel after :meth:`apply_segmentation`.
    """

    def __init__(self, image_size, sigma: float = 1.0) -> None:
        width, height = (int(v) for v in image_size)
        if width <= 0 or height <= 0:
            raise ValueError("image size must be positive")
        if sigma == 0:
            raise ValueError("sigma must not be zero")
        self.sigma = float(sigma)
        self.cluster_mask = np.zeros((height, width), dtype=np.uint8)
        self.eigenvalues: np.ndarray | None = None
        self.eigenvectors: np.ndarray | None = None

    def create_adjacency(self, points, slic_s: int, slic_m: int) -> np.ndarray:
        """Gaussian similarity of cluster centres in combined Lab and image space.

        The diagonal is zero.
        """
        if slic_s == 0:
            raise ValueError("grid interval must not be zero")
        feats = _features(points)
        ratio = (slic_m * slic_m) / (slic_s * slic_s)
        colour = feats[:, :3]
        coord = feats[:, 3:]
        d_lab = ((colour[:, None, :] - colour[None, :, :]) ** 2).sum(axis=-1)
        d_xy = ((coord[:, None, :] - coord[None, :, :]) ** 2).sum(axis=-1)
        adjacency = np.exp(-np.sqrt(d_lab + d_xy * ratio) / (2.0 * self.sigma * self.sigma))
        np.fill_diagonal(adjacency, 0.0)
        return adjacency

    def calculate_eigenvectors(self, centers, slic_s: int, slic_m: int) -> None:
        """Eigen-decompose the normalized Laplacian of the superpixel graph.

        Eigenvectors are stored as rows, ordered by descending eigenvalue.
        """
        adjacency = self.create_adjacency(centers, slic_s, slic_m)
        degree = degree_matrix(adjacency)
        if np.any(degree <= 0):
            raise ValueError("a superpixel has no similarity to any other")
        inv_sqrt = degree ** -0.5
        laplacian = np.diag(degree) - adjacency
        laplacian = inv_sqrt[:, None] * laplacian * inv_sqrt[None, :]
        values, vectors = np.linalg.eigh(laplacian)
        self.eigenvalues = values[::-1].copy()
        self.eigenvectors = vectors[:, ::-1].T.copy()

    def apply_segmentation(self, n_clusters: int, clusters_index, seed: int | None = 0) -> np.ndarray:
        """Cluster the superpixels into ``n_clusters`` segments and return the pixel mask.

        ``clusters_index`` gives the superpixel index of every pixel.
        """
        if n_clusters < 1:
            raise ValueError("the number of clusters must be at least 1")
        if self.eigenvectors is None:
            raise RuntimeError("calculate_eigenvectors must be called first")
        n_points = self.eigenvectors.shape[0]
        if n_clusters > n_points:
            raise ValueError(f"cannot form {n_clusters} clusters from {n_points} superpixels")

        index = np.asarray(clusters_index)
        if index.shape != self.cluster_mask.shape:
            raise ValueError(
                f"cluster index has shape {index.shape}, expected {self.cluster_mask.shape}"
            )
        if index.size and (index.min() < 0 or index.max() >= n_points):
            raise ValueError("cluster index refers to an unknown superpixel")

        embedding = self.eigenvectors[n_points - n_clusters:].T
        labels = _kmeans(embedding, n_clusters, np.random.default_rng(seed))
        self.cluster_mask = labels[index.astype(np.int64)].astype(np.uint8)
        return self.cluster_mask.copy()


__all__ = ["ColorRep", "SuperpixelSegmentation", "degree_matrix"]