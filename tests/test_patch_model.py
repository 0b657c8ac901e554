import numpy as np
import pytest

from visionkit.patch_model import PatchModel, convert_image, match_template


def _blob_images(count=5, seed=4):
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[0:21, 0:21]
    blob = 200.0 * np.exp(-((xx - 10) ** 2 + (yy - 10) ** 2) / (2 * 3.0 ** 2))
    return [blob + rng.uniform(0, 5, blob.shape) for _ in range(count)]


def test_match_template_finds_cut_out_patch():
    rng = np.random.default_rng(0)
    image = rng.uniform(0, 255, (30, 40))
    template = image[5:10, 7:13]
    result = match_template(image, template)
    assert result.shape == (26, 35)
    assert np.unravel_index(np.argmax(result), result.shape) == (5, 7)
    assert result[5, 7] == pytest.approx(1.0)
    assert np.all(np.abs(result) <= 1.0 + 1e-9)


def test_match_template_on_flat_image_is_zero():
    result = match_template(np.full((10, 10), 3.0), np.arange(9.0).reshape(3, 3))
    assert np.all(result == 0)


def test_match_template_rejects_large_template():
    with pytest.raises(ValueError):
        match_template(np.zeros((4, 4)), np.zeros((5, 2)))


def test_convert_image_applies_log():
    gray = np.array([[0.0, 1.0], [9.0, 99.0]])
    assert np.allclose(convert_image(gray), np.log1p(gray))


def test_convert_image_grey_rgb_agree():
    gray = np.random.default_rng(1).uniform(0, 255, (6, 5))
    rgb = np.stack([gray, gray, gray], axis=2)
    assert np.allclose(convert_image(rgb), convert_image(gray))


def test_convert_image_rejects_two_channels():
    with pytest.raises(ValueError):
        convert_image(np.zeros((4, 4, 2)))


def test_patch_size_is_width_height():
    model = PatchModel(np.zeros((3, 7)))
    assert model.patch_size() == (7, 3)


def test_response_without_patch_raises():
    with pytest.raises(ValueError):
        PatchModel().calc_response(np.zeros((5, 5)))


def test_response_sums_to_one():
    rng = np.random.default_rng(2)
    image = rng.uniform(0, 255, (20, 20))
    model = PatchModel(rng.normal(size=(5, 5)))
    response = model.calc_response(image, sum_to_one=True)
    assert response.shape == (16, 16)
    assert response.sum() == pytest.approx(1.0)
    assert response.min() == pytest.approx(0.0)


def test_training_peaks_at_ideal_offset():
    images = _blob_images()
    model = PatchModel()
    model.train(images, (11, 11), n_samples=100, seed=3)
    assert model.patch_size() == (11, 11)
    response = model.calc_response(images[0])
    assert np.unravel_index(np.argmax(response), response.shape) == (4, 4)


def test_training_is_deterministic_for_seed():
    images = _blob_images()
    first, second = PatchModel(), PatchModel()
    first.train(images, (11, 11), n_samples=20, seed=5)
    second.train(images, (11, 11), n_samples=20, seed=5)
    assert np.array_equal(first.p, second.p)
    assert np.any(first.p != 0)


def test_training_rejects_small_windows():
    with pytest.raises(ValueError):
        PatchModel().train([np.zeros((11, 11))], (11, 11), n_samples=5)