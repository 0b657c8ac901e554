import math

import numpy as np
import pytest

from visionkit.segmentation import SuperpixelSegmentation, degree_matrix
from visionkit.slic import ColorRep


def _two_groups():
    group_a = [ColorRep(10.0, 128.0, 128.0, float(x), 1.0) for x in (1, 2, 3)]
    group_b = [ColorRep(200.0, 128.0, 128.0, float(x), 3.0) for x in (1, 2, 3)]
    return group_a + group_b


def test_degree_matrix_column_sums():
    adj = np.array([[0.0, 1.0], [1.0, 0.0]])
    np.testing.assert_allclose(degree_matrix(adj), [1.0, 1.0])


def test_degree_matrix_matches_sum_of_columns():
    rng = np.random.default_rng(3)
    adj = rng.random((5, 5))
    np.testing.assert_allclose(degree_matrix(adj), adj.sum(axis=0))


def test_adjacency_symmetric_with_zero_diagonal():
    seg = SuperpixelSegmentation((3, 2), sigma=5.0)
    adj = seg.create_adjacency(_two_groups(), 10, 10)
    assert adj.shape == (6, 6)
    np.testing.assert_allclose(adj, adj.T)
    np.testing.assert_allclose(np.diag(adj), 0.0)
    off = adj[~np.eye(6, dtype=bool)]
    assert np.all((off > 0) & (off <= 1))


def test_adjacency_identical_points_are_fully_similar():
    seg = SuperpixelSegmentation((2, 2))
    points = [ColorRep(5.0, 6.0, 7.0, 1.0, 1.0), ColorRep(5.0, 6.0, 7.0, 1.0, 1.0)]
    adj = seg.create_adjacency(points, 4, 4)
    assert adj[0, 1] == pytest.approx(1.0)


def test_adjacency_gaussian_of_distance():
    seg = SuperpixelSegmentation((2, 2), sigma=1.0)
    points = [ColorRep(0.0, 0.0, 0.0, 0.0, 0.0), ColorRep(2.0, 0.0, 0.0, 0.0, 0.0)]
    adj = seg.create_adjacency(points, 1, 1)
    assert adj[0, 1] == pytest.approx(math.exp(-1.0))


def test_adjacency_requires_points():
    seg = SuperpixelSegmentation((2, 2))
    with pytest.raises(ValueError):
        seg.create_adjacency([], 1, 1)


def test_eigenvectors_orthonormal_and_smallest_eigenvalue_zero():
    seg = SuperpixelSegmentation((3, 2), sigma=5.0)
    seg.calculate_eigenvectors(_two_groups(), 10, 10)
    vecs = seg.eigenvectors
    np.testing.assert_allclose(vecs @ vecs.T, np.eye(6), atol=1e-9)
    assert seg.eigenvalues[-1] == pytest.approx(0.0, abs=1e-9)
    assert np.all(np.diff(seg.eigenvalues) <= 1e-12)


def test_segmentation_separates_groups():
    seg = SuperpixelSegmentation((3, 2), sigma=5.0)
    seg.calculate_eigenvectors(_two_groups(), 10, 10)
    index = np.array([[0, 1, 2], [3, 4, 5]])
    mask = seg.apply_segmentation(2, index)
    assert mask.shape == (2, 3)
    assert len(set(mask[0].tolist())) == 1
    assert len(set(mask[1].tolist())) == 1
    assert mask[0, 0] != mask[1, 0]
    assert set(mask.ravel().tolist()) == {0, 1}


def test_cluster_mask_kept_and_returned_as_copy():
    seg = SuperpixelSegmentation((3, 2), sigma=5.0)
    seg.calculate_eigenvectors(_two_groups(), 10, 10)
    mask = seg.apply_segmentation(2, np.array([[0, 1, 2], [3, 4, 5]]))
    np.testing.assert_array_equal(seg.cluster_mask, mask)
    mask[:] = 99
    assert not np.any(seg.cluster_mask == 99)


def test_segmentation_requires_eigenvectors():
    seg = SuperpixelSegmentation((3, 2))
    with pytest.raises(RuntimeError):
        seg.apply_segmentation(2, np.zeros((2, 3), dtype=int))


def test_segmentation_rejects_zero_clusters():
    seg = SuperpixelSegmentation((3, 2), sigma=5.0)
    seg.calculate_eigenvectors(_two_groups(), 10, 10)
    with pytest.raises(ValueError):
        seg.apply_segmentation(0, np.zeros((2, 3), dtype=int))


def test_segmentation_rejects_wrong_index_shape():
    seg = SuperpixelSegmentation((3, 2), sigma=5.0)
    seg.calculate_eigenvectors(_two_groups(), 10, 10)
    with pytest.raises(ValueError):
        seg.apply_segmentation(2, np.zeros((3, 3), dtype=int))


def test_segmentation_rejects_unknown_superpixel():
    seg = SuperpixelSegmentation((3, 2), sigma=5.0)
    seg.calculate_eigenvectors(_two_groups(), 10, 10)
    with pytest.raises(ValueError):
        seg.apply_segmentation(2, np.array([[0, 1, 2], [3, 4, 9]]))