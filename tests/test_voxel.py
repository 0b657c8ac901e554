import numpy as np
import pytest

from visionkit.voxel import FLT_MAX, VoxelGrid, read_calib_file

ORTHO = np.array([[1.0, 0, 0, 0], [0, 1.0, 0, 0], [0, 0, 0, 1.0]])


def _image(value=7):
    img = np.zeros((4, 4, 3), dtype=np.uint8)
    for y in range(4):
        for x in range(4):
            img[y, x] = (x, y, value)
    return img


def test_regular_grid_layout():
    grid = VoxelGrid.regular(2, 3, 4, 0.5, (1.0, 2.0, 3.0))
    assert len(grid) == 24
    np.testing.assert_allclose(grid.grid[0], [1.0, 2.0, 3.0])
    np.testing.assert_allclose(grid.grid[1], [1.0, 2.0, 3.5])
    np.testing.assert_allclose(grid.grid[-1], [1.5, 3.0, 4.5])
    assert np.all(grid.depths == FLT_MAX)
    assert np.all(grid.colors == 0)


def test_regular_rejects_negative_division():
    with pytest.raises(ValueError):
        VoxelGrid.regular(-1, 2, 2, 1.0, (0, 0, 0))


def test_carve_keeps_foreground_voxels():
    grid = VoxelGrid.regular(4, 4, 1, 1.0, (0, 0, 0))
    mask = np.zeros((4, 4), dtype=np.uint8)
    mask[0:2, 0:2] = 255
    grid.carve([_image()], [mask], [ORTHO])
    kept = {tuple(p) for p in grid.grid.tolist()}
    assert kept == {(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (1.0, 1.0, 0.0)}
    for point, color in zip(grid.grid, grid.colors):
        assert tuple(color) == (int(point[0]), int(point[1]), 7)
    np.testing.assert_allclose(grid.depths, 1.0)


def test_carve_drops_voxels_outside_image():
    grid = VoxelGrid.regular(2, 2, 1, 1.0, (0, 0, 0))
    shifted = ORTHO.copy()
    shifted[0, 3] = -10.0
    grid.carve([_image()], [np.full((4, 4), 255, dtype=np.uint8)], [shifted])
    assert len(grid) == 0


def test_carve_keeps_colour_of_nearest_view():
    grid = VoxelGrid.regular(2, 2, 1, 1.0, (0, 0, 0))
    mask = np.full((4, 4), 255, dtype=np.uint8)
    grid.carve([_image(7), _image(99)], [mask, mask], [ORTHO, 2 * ORTHO])
    assert len(grid) == 4
    assert np.all(grid.colors[:, 2] == 7)
    np.testing.assert_allclose(grid.depths, 1.0)


def test_carve_rejects_mismatched_inputs():
    grid = VoxelGrid.regular(1, 1, 1, 1.0, (0, 0, 0))
    with pytest.raises(ValueError):
        grid.carve([_image()], [], [ORTHO])


def test_subdivide_adds_interior_points():
    grid = VoxelGrid.regular(2, 2, 1, 2.0, (0, 0, 0))
    mask = np.full((4, 4), 255, dtype=np.uint8)
    mask[3, 3] = 0
    grid.subdivide_and_refine(2, [_image()], [mask], [ORTHO])
    points = {tuple(p) for p in grid.grid.tolist()}
    assert len(grid) == 7
    assert (1.0, 1.0, 1.0) in points
    assert (3.0, 3.0, 1.0) not in points
    assert len(grid.colors) == len(grid.depths) == 7


def test_subdivide_rejects_zero():
    grid = VoxelGrid.regular(1, 1, 1, 1.0, (0, 0, 0))
    with pytest.raises(ValueError):
        grid.subdivide_and_refine(0, [], [], [])


def test_normalize_spans_unit_cube():
    grid = VoxelGrid.regular(3, 4, 5, 2.0, (-10.0, 5.0, 0.0))
    grid.normalize()
    np.testing.assert_allclose(grid.grid.min(axis=0), [-1.0, -1.0, -1.0])
    np.testing.assert_allclose(grid.grid.max(axis=0), [1.0, 1.0, 1.0])


def test_normalize_empty_grid_raises():
    with pytest.raises(ValueError):
        VoxelGrid().normalize()


def test_save_ply_writes_header_vertices_and_faces(tmp_path):
    grid = VoxelGrid(
        voxel_size=1.0,
        grid=[[0.0, 0.0, 0.0], [1.0, 0.5, 0.0], [0.0, 1.0, 2.0]],
        colors=[[1, 2, 3], [4, 5, 6], [7, 8, 9]],
        depths=[1.0, 1.0, 1.0],
    )
    path = tmp_path / "out.ply"
    grid.save_ply(path)
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "ply"
    assert "element vertex 3" in lines
    assert "element face 1" in lines
    body = lines[lines.index("end_header") + 1:]
    assert body[1] == "1 0.5 0 6 5 4"
    assert body[3] == "3 0 1 2"
    assert len(body) == 4


def test_read_calib_file(tmp_path):
    path = tmp_path / "camera0.m"
    path.write_text(
        "% calibration\n"
        "proj = [ 1 2 3 4; 5 6 7 8; 9 10 11 12 ];\n"
        "other = [ 0 ];\n"
        "\n"
        "proj2 = [ 12 11 10 9; 8 7 6 5; 4 3 2 1 ];\n",
        encoding="utf-8",
    )
    matrices = read_calib_file(path)
    assert len(matrices) == 2
    np.testing.assert_allclose(matrices[0], np.arange(1, 13).reshape(3, 4))
    np.testing.assert_allclose(matrices[1], np.arange(12, 0, -1).reshape(3, 4))


def test_read_calib_file_too_few_values(tmp_path):
    path = tmp_path / "bad.m"
    path.write_text("proj = [ 1 2 3 ];\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_calib_file(path)


def test_read_calib_file_missing(tmp_path):
    with pytest.raises(OSError):
        read_calib_file(tmp_path / "missing.m")