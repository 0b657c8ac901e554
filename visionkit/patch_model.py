"""Correlation-based patch experts trained by stochastic gradient descent."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

_RGB_TO_GRAY = np.array([0.299, 0.587, 0.114])
_EPS = np.finfo(float).eps


def _normalize_minmax(a: np.ndarray, lo: float = 0.0, hi: float = 1.0) -> np.ndarray:
    smin, smax = float(a.min()), float(a.max())
    span = smax - smin
    scale = (hi - lo) / span if span > _EPS else 0.0
    return a * scale + (lo - smin * scale)


def convert_image(image) -> np.ndarray:
    """Convert an image to a float grey image and apply ``log(1 + x)``.

    Three-channel images are taken to be in RGB order.
    """
    arr = np.asarray(image)
    if arr.ndim == 2:
        gray = arr.astype(float)
    elif arr.ndim == 3 and arr.shape[2] == 1:
        gray = arr[:, :, 0].astype(float)
    elif arr.ndim == 3 and arr.shape[2] == 3:
        gray = arr.astype(float) @ _RGB_TO_GRAY
        if arr.dtype == np.uint8:
            gray = np.rint(gray)
    else:
        raise ValueError(f"unsupported image shape {arr.shape}")
    return np.log(gray + 1.0)


def match_template(image, template) -> np.ndarray:
    """Normalized correlation coefficient of ``template`` at every position in ``image``."""
    img = np.asarray(image, dtype=float)
    tpl = np.asarray(template, dtype=float)
    if img.ndim != 2 or tpl.ndim != 2:
        raise ValueError("image and template must be two-dimensional")
    if tpl.shape[0] > img.shape[0] or tpl.shape[1] > img.shape[1]:
        raise ValueError("template is larger than the image")

    tpl_c = tpl - tpl.mean()
    tpl_ss = float(np.sum(tpl_c ** 2))
    windows = sliding_window_view(img, tpl.shape)
    count = tpl.size

    numer = np.einsum("ijkl,kl->ij", windows, tpl_c)
    sums = windows.sum(axis=(2, 3))
    sq_sums = (windows ** 2).sum(axis=(2, 3))
    window_ss = np.clip(sq_sums - sums ** 2 / count, 0.0, None)
    denom = np.sqrt(window_ss * tpl_ss)

    out = np.zeros_like(numer)
    magnitude = np.abs(numer)
    inside = magnitude < denom
    out[inside] = numer[inside] / denom[inside]
    near = ~inside & (magnitude < denom * 1.125)
    out[near] = np.where(numer[near] > 0, 1.0, -1.0)
    return out


def _training_windows(image, patch_h: int, patch_w: int, dy: int, dx: int) -> np.ndarray:
    converted = convert_image(image)
    windows = sliding_window_view(converted, (patch_h, patch_w))[:dy, :dx]
    centered = windows - windows.mean(axis=(2, 3), keepdims=True)
    norms = np.sqrt((centered ** 2).sum(axis=(2, 3), keepdims=True))
    return np.divide(centered, norms, out=np.zeros_like(centered), where=norms > _EPS)


@dataclass
class PatchModel:
    """A single linear patch expert ``p`` matched by normalized correlation."""

    p: np.ndarray | None = None

    def _patch(self) -> np.ndarray:
        if self.p is None:
            raise ValueError("patch model has not been trained or loaded")
        return self.p

    def patch_size(self) -> tuple[int, int]:
        """Size of the patch as (width, height)."""
        height, width = self._patch().shape
        return width, height

    def calc_response(self, image, sum_to_one: bool = False) -> np.ndarray:
        """Response map of the patch over ``image``.

        With ``sum_to_one`` the map is scaled to [0, 1] and then to unit sum.
        """
        response = match_template(convert_image(image), self._patch())
        if sum_to_one:
            response = _normalize_minmax(response)
            with np.errstate(divide="ignore", invalid="ignore"):
                response = response / response.sum()
        return response

    def train(
        self,
        images,
        patch_size,
        variance: float = 1.0,
        lam: float = 1e-6,
        mu_init: float = 1e-3,
        n_samples: int = 1000,
        seed: int | None = 0,
    ) -> None:
        """Learn the patch from aligned windows centred on the feature.

        ``patch_size`` is (width, height); every image is a search window of
        the same size, larger than the patch.
        """
        frames = [np.asarray(image) for image in images]
        if not frames:
            raise ValueError("at least one training image is required")
        if n_samples <= 0:
            raise ValueError("n_samples must be positive")
        patch_w, patch_h = patch_size
        win_h, win_w = frames[0].shape[:2]
        if any(frame.shape[:2] != (win_h, win_w) for frame in frames):
            raise ValueError("all training images must have the same size")
        dx, dy = win_w - patch_w, win_h - patch_h
        if dx <= 0 or dy <= 0:
            raise ValueError("training images must be larger than the patch")

        vy = int((dy - 1) / 2) - np.arange(dy)
        vx = int((dx - 1) / 2) - np.arange(dx)
        ideal = np.exp(-0.5 * (vx[None, :] ** 2 + vy[:, None] ** 2) / variance)
        ideal = _normalize_minmax(ideal)

        patch = np.zeros((patch_h, patch_w))
        rng = np.random.default_rng(seed)
        mu = mu_init
        rate = (1e-8 / mu_init) ** (1.0 / n_samples)
        cache: dict[int, np.ndarray] = {}

        for _ in range(n_samples):
            index = int(rng.integers(len(frames)))
            if index not in cache:
                cache[index] = _training_windows(frames[index], patch_h, patch_w, dy, dx)
            windows = cache[index]
            predicted = np.einsum("yxij,ij->yx", windows, patch)
            gradient = np.einsum("yx,yxij->ij", ideal - predicted, windows)
            patch = patch + mu * (gradient - lam * patch)
            mu *= rate

        self.p = patch