"""Small dense linear algebra used to orient a reconstructed scene."""

import math

import numpy as np


def solve_cubic(a, b, c, d):
    """Real roots of ``a x^3 + b x^2 + c x + d`` in descending order.

    Assumes three real roots, as for the characteristic polynomial of a
    symmetric matrix.
    """
    with np.errstate(all="ignore"):
        a, b, c, d = (np.float64(v) for v in (a, b, c, d))
        p = (3.0 * a * c - b * b) / (3.0 * a * a)
        q = (2.0 * b * b * b - 9.0 * a * b * c + 27.0 * a * a * d) / (27.0 * a * a * a)
        cos_arg = -q / (2.0 * np.sqrt(-(p * p * p) / 27.0))
        phi = np.arccos(np.clip(cos_arg, -1.0, 1.0))
        radius = 2.0 * np.sqrt(-p / 3.0)
        shift = b / (3.0 * a)
        roots = [
            float(radius * np.cos((phi + turn * math.pi) / 3.0) - shift)
            for turn in (0.0, 2.0, 4.0)
        ]
    return tuple(sorted(roots, reverse=True))


def find_eigenvector(matrix, eigenvalue):
    """Unit eigenvector of a 3x3 matrix for a known eigenvalue."""
    m = np.array(matrix, dtype=np.float64) - eigenvalue * np.eye(3)
    with np.errstate(all="ignore"):
        for col in range(2):
            pivot = col + int(np.argmax(np.abs(m[col:, col])))
            if pivot != col:
                m[[col, pivot]] = m[[pivot, col]]
            factors = -m[col + 1:, col] / m[col, col]
            m[col + 1:, col + 1:] += factors[:, None] * m[col, col + 1:]
            m[col + 1:, col] = 0.0

        x = np.array([0.0, 0.0, 1.0])
        if abs(m[1, 1]) > 1e-10:
            x[1] = -m[1, 2] / m[1, 1]
        if abs(m[0, 0]) > 1e-10:
            x[0] = -(m[0, 1] * x[1] + m[0, 2] * x[2]) / m[0, 0]
        return x / np.linalg.norm(x)


def compute_sorted_eigenvectors(matrix):
    """Eigenvectors of a symmetric 3x3 matrix, by descending eigenvalue."""
    m = np.asarray(matrix, dtype=np.float64)
    if m.shape != (3, 3):
        raise ValueError(f"expected a 3x3 matrix, got shape {m.shape}")
    b = m[0, 0] + m[1, 1] + m[2, 2]
    c = (
        m[2, 1] * m[1, 2]
        + m[2, 0] * m[0, 2]
        + m[1, 0] * m[0, 1]
        - m[0, 0] * m[1, 1]
        - m[1, 1] * m[2, 2]
        - m[0, 0] * m[2, 2]
    )
    d = (
        m[0, 0] * m[1, 1] * m[2, 2]
        + m[1, 0] * m[2, 1] * m[0, 2]
        + m[2, 0] * m[0, 1] * m[1, 2]
        - m[0, 0] * m[2, 1] * m[1, 2]
        - m[1, 0] * m[0, 1] * m[2, 2]
        - m[2, 0] * m[1, 1] * m[0, 2]
    )
    eigenvalues = solve_cubic(-1.0, b, c, d)
    return tuple(find_eigenvector(m, value) for value in eigenvalues)


def _as_affine(matrix):
    m = np.asarray(matrix, dtype=np.float64)
    if m.shape == (3, 4):
        m = np.vstack([m, [0.0, 0.0, 0.0, 1.0]])
    if m.shape != (4, 4):
        raise ValueError(f"expected a 4x4 or 3x4 transform, got shape {m.shape}")
    return m


def estimate_up(local_to_worlds, positions):
    """Estimate the scene's up direction from camera poses.

    ``local_to_worlds`` are camera-to-world transforms (4x4 or 3x4) and
    ``positions`` the matching camera centres.
    """
    transforms = [_as_affine(m) for m in local_to_worlds]
    points = np.asarray(positions, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 3 or len(points) == 0:
        raise ValueError("positions must be a non-empty sequence of 3-vectors")
    if len(transforms) != len(points):
        raise ValueError("need one transform for every camera position")

    mean_t = points.mean(axis=0)
    centered = points - mean_t
    cov = centered.T @ centered

    rot = np.stack(compute_sorted_eigenvectors(cov))
    if np.linalg.det(rot) < 0.0:
        rot = np.diag([1.0, 1.0, -1.0]) @ rot

    transform = np.eye(4)
    transform[:3, :3] = rot
    transform[:3, 3] = rot @ -mean_t

    y_axis_z = sum((transform @ c2w)[2, 1] for c2w in transforms)
    if y_axis_z < 0.0:
        transform = np.diag([1.0, -1.0, -1.0, 1.0]) @ transform

    return np.array([-transform[2, 0], -transform[2, 1], transform[2, 2]])