"""Procrustes analysis, patch experts, SLIC superpixels, spectral segmentation, voxel carving, arcball rotation and simple meshes, in NumPy."""

__version__ = "0.1.0"