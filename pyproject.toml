[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "visionkit"
version = "0.1.0"
description = "Classic computer-vision algorithms in NumPy: Procrustes analysis, patch experts, SLIC superpixels, spectral segmentation, voxel carving, arcball rotation and simple meshes."
requires-python = ">=3.10"
keywords = [
    "computer-vision",
    "procrustes",
    "patch-expert",
    "muct",
    "superpixels",
    "slic",
    "spectral-clustering",
    "voxel-carving",
    "arcball",
    "mesh",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy>=1.23",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
]

[tool.hatch.build.targets.wheel]
packages = ["visionkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
