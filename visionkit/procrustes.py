"""Ordinary and generalized Procrustes analysis of 2-D point sets."""

from __future__ import annotations

import itertools
import math

import numpy as np


def _as_points(points) -> np.ndarray:
    arr = np.asarray(points, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"expected an (n, 2) array of points, got shape {arr.shape}")
    if len(arr) == 0:
        raise ValueError("point set is empty")
    return arr


def _align(shape: np.ndarray, mean_shape: np.ndarray) -> np.ndarray:
    u, _, vt = np.linalg.svd(mean_shape.T @ shape)
    return shape @ vt.T @ u.T


class Procrustes:
    """Superimposes one point set onto another by translation, rotation and scale.

    After :meth:`procrustes` the attributes ``y_prime`` (transformed second set),
    ``rotation``, ``translation``, ``scale`` and ``error`` describe the result.
    """

    def __init__(self, scaling: bool = True, best_reflection: bool = True) -> None:
        self.scaling = scaling
        self.best_reflection = best_reflection
        self.scale = 1.0
        self.error = 0.0
        self.rotation: np.ndarray | None = None
        self.translation: np.ndarray | None = None
        self.y_prime: np.ndarray | None = None

    def procrustes(self, x, y) -> float:
        """Fit ``y`` onto ``x`` and return the squared error of the fit."""
        x_arr = _as_points(x)
        y_arr = _as_points(y)
        n, m = len(x_arr), len(y_arr)
        if m > n:
            raise ValueError("second point set may not have more points than the first")

        mu_x = x_arr.mean(axis=0)
        mu_y = y_arr.mean(axis=0)
        x0 = x_arr - mu_x
        y0 = y_arr - mu_y

        ss_x = float(np.sum(x0 ** 2))
        ss_y = float(np.sum(y0 ** 2))
        if ss_x == 0.0 or ss_y == 0.0:
            raise ValueError("point sets must not be degenerate")
        norm_x = math.sqrt(ss_x)
        norm_y = math.sqrt(ss_y)
        x0 /= norm_x
        y0 /= norm_y

        if m < n:
            y0 = np.vstack([y0, np.zeros((n - m, 2))])

        u, s, vt = np.linalg.svd(x0.T @ y0)
        v = vt.T.copy()
        rotation = v @ u.T

        if not self.best_reflection and np.linalg.det(rotation) < 0:
            v[:, -1] *= -1
            s[-1] *= -1
            rotation = v @ u.T

        rotated_y0 = y0 @ rotation
        trace_ta = float(s.sum())

        if self.scaling:
            self.scale = trace_ta * norm_x / norm_y
            self.error = 1.0 - trace_ta * trace_ta
            self.y_prime = norm_x * trace_ta * rotated_y0 + mu_x
        else:
            self.error = 1.0 + ss_y / ss_x - 2.0 * trace_ta * norm_x / norm_y
            self.y_prime = norm_y * rotated_y0 + mu_x

        if m < n:
            rotation = rotation[:m]

        self.rotation = rotation
        self.translation = mu_x - self.scale * (mu_y @ rotation)
        return self.error

    def generalized_procrustes(
        self, shapes, itol: int = 1000, ftol: float = 1e-6
    ) -> tuple[list[np.ndarray], np.ndarray]:
        """Align all shapes to a common mean shape.

        Returns the aligned shapes (centred and of unit norm) and the mean shape.
        """
        current = [_as_points(shape) for shape in shapes]
        if not current:
            raise ValueError("at least one shape is required")
        if any(shape.shape != current[0].shape for shape in current):
            raise ValueError("all shapes must have the same number of points")

        mean_shape = current[0]
        for iteration in itertools.count():
            current = [shape - shape.mean(axis=0) for shape in current]
            current = [shape / np.linalg.norm(shape) for shape in current]
            current = [_align(shape, mean_shape) for shape in current]

            new_mean = sum(current) / len(current)
            new_mean = new_mean / np.linalg.norm(new_mean)

            diff = float(np.linalg.norm(new_mean - mean_shape))
            if iteration > itol or diff <= ftol:
                break
            mean_shape = new_mean

        return current, mean_shape


def generate_test_data(size: int = 2, seed: int | None = 0) -> list[np.ndarray]:
    """Generate a random 40-point shape and jittered similarity transforms of it."""
    rng = np.random.default_rng(seed)
    base = rng.normal(250.0, 80.0, size=(40, 2))
    result = [base]

    for _ in range(1, size):
        scale = (int(rng.integers(100)) + 25) / 100.0
        translation = np.array(
            [int(rng.integers(600)) + 100, int(rng.integers(300))], dtype=float
        )
        angle = int(rng.integers(90)) * 180.0 / math.pi
        rot = np.array(
            [[math.cos(angle), -math.sin(angle)], [math.sin(angle), math.cos(angle)]]
        )
        moved = (scale * base) @ rot.T + translation
        moved = moved + rng.normal(0.0, 5.0, size=moved.shape)
        result.append(moved)

    return result