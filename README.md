# visionkit

A collection of classic computer-vision algorithms written in plain NumPy.
Everything works on NumPy arrays, so it fits any pipeline that can produce
images and point sets as arrays.

## What is inside

| Module | What it gives you |
| --- | --- |
| `visionkit.procrustes` | `Procrustes`: ordinary and generalized Procrustes analysis of 2-D point sets; `generate_test_data` |
| `visionkit.muct` | `MuctLandmark` and `read_csv` for MUCT face-landmark annotation files |
| `visionkit.patch_model` | `PatchModel`, a correlation-based patch expert trained by stochastic gradient descent; `convert_image`, `match_template` |
| `visionkit.slic` | `SlicSuperpixel` (SLIC superpixels), `ColorRep`, `bgr_to_lab` |
| `visionkit.segmentation` | `SuperpixelSegmentation`, spectral clustering of superpixels; `degree_matrix` |
| `visionkit.voxel` | `VoxelGrid` for silhouette-based voxel carving and ASCII PLY export; `read_calib_file` |
| `visionkit.arcball` | `Arcball`, a mouse-driven arcball rotation controller; `rotation_matrix` |
| `visionkit.shapes` | `Mesh` and the generators `cube`, `sphere`, `torus`, `plane`, plus `compute_tangent_basis` |

Images are NumPy arrays: grey images as 2-D arrays, colour images as
`(height, width, 3)` arrays. `bgr_to_lab`, `SlicSuperpixel` and `VoxelGrid`
take colour images in BGR order; `convert_image` takes them in RGB order.

## Installation

```
pip install visionkit
```

For running the test suite:

```
pip install "visionkit[test]"
pytest
```

## Examples

### Aligning two shapes

```python
from visionkit.procrustes import Procrustes, generate_test_data

x, y = generate_test_data(2, seed=0)
proc = Procrustes(scaling=True, best_reflection=True)
error = proc.procrustes(x, y)
print(error, proc.scale, proc.rotation, proc.translation)
aligned_y = proc.y_prime
```

With `best_reflection=False` a reflection is never allowed in the fitted
rotation. The second point set may have fewer points than the first, but not
more.

### Finding a mean shape

```python
from visionkit.procrustes import Procrustes, generate_test_data

shapes = generate_test_data(6, seed=1)
aligned, mean_shape = Procrustes().generalized_procrustes(shapes, itol=1000, ftol=1e-6)
```

The aligned shapes and the mean shape come back centred and of unit norm.

### Reading landmark annotations

```python
from visionkit.muct import read_csv

landmarks = read_csv("muct76-opencv.csv")
first = landmarks[0]
print(first.filename, first.tag, len(first.points))
```

The header line is skipped; mirrored images and cameras `d` and `e` are left
out, as are annotations with fewer points than the most complete ones or with
any coordinate that is not positive.

### Training a patch expert

```python
from visionkit.patch_model import PatchModel

# windows: grey images of equal size, each centred on the same feature
model = PatchModel()
model.train(windows, (11, 11), variance=1.0, lam=1e-6, mu_init=1e-3, n_samples=1000, seed=0)
response = model.calc_response(windows[0], sum_to_one=True)
```

`patch_size` is given as (width, height) and must be smaller than the windows.

### Superpixels and spectral segmentation

```python
from visionkit.slic import SlicSuperpixel
from visionkit.segmentation import SuperpixelSegmentation

slic = SlicSuperpixel(bgr_image, 400, m=10, max_iterations=10)
slic.generate()
borders = slic.contours()        # (x, y) pixels between superpixels
lab_mean = slic.recolor()        # Lab image painted with each cluster's mean colour

height, width = bgr_image.shape[:2]
segmenter = SuperpixelSegmentation((width, height), sigma=1.0)
segmenter.calculate_eigenvectors(slic.centers, slic.s, slic.m)
mask = segmenter.apply_segmentation(2, slic.clusters, seed=0)
```

`mask` holds the segment label of every pixel. `recolor` returns a Lab image;
there is no conversion back to BGR.

### Voxel carving

```python
from visionkit.voxel import VoxelGrid, read_calib_file

projections = read_calib_file("calib/camera0.m")
grid = VoxelGrid.regular(100, 100, 100, 8.0, (-100.0, -100.0, -100.0))
grid.carve(images, masks, projections)
grid.subdivide_and_refine(2, images, masks, projections)
grid.normalize()
grid.save_ply("model.ply")
```

`read_calib_file` reads a 3x4 projection matrix from every line that starts
with `proj`. Each image needs a 2-D mask of the same size; non-zero mask
pixels are foreground.

### Arcball rotation

```python
from visionkit.arcball import Arcball

ball = Arcball(800, 600, roll_speed=2.0)
ball.mouse_button(True)
ball.cursor(400, 300)
ball.cursor(450, 300)
view_rotation = ball.view_rotation_matrix()   # 4x4
```

### Meshes

```python
from visionkit.shapes import cube, plane, sphere, torus

mesh = sphere(1.0, slices=30, parallels=15)
triangles = mesh.triangles()      # (m, 3, 3) vertex positions
flat = plane(2.0)                 # carries tangents and bitangents
```

## What it does not do

visionkit has no face detector, shape model or face tracker: the patch
experts and landmark reader are building blocks, not a tracking pipeline. It
has no Hough line detector. It does not read or write image or video files,
open windows or draw, and the meshes are plain arrays with no rendering. There
is no command-line tool; everything is used from Python.