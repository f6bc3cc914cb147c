"""COLMAP scene loading, camera geometry helpers and a scene upload server for Gaussian splat training data."""

__version__ = "0.1.0"