"""
Homogeneous transform helpers.

All matrices are 4x4 numpy arrays acting on column vectors, in a right-handed
frame with y pointing up (the ecliptic north of the scene). Angles are in
radians unless the name says otherwise.
"""

import numpy as np


def rotation_x(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [1.0, 0.0, 0.0, 0.0],
        [0.0, c, -s, 0.0],
        [0.0, s, c, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def rotation_y(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [c, 0.0, s, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [-s, 0.0, c, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def rotation_z(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [c, -s, 0.0, 0.0],
        [s, c, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def translation(x: float, y: float, z: float) -> np.ndarray:
    m = np.eye(4)
    m[0, 3] = x
    m[1, 3] = y
    m[2, 3] = z
    return m


def euler_xyz(x: float, y: float, z: float) -> np.ndarray:
    """Intrinsic X-then-Y-then-Z Euler rotation, R = Rx @ Ry @ Rz."""
    return rotation_x(x) @ rotation_y(y) @ rotation_z(z)


def invert_rigid(m: np.ndarray) -> np.ndarray:
    """
    Inverse of a rotation-plus-translation matrix.

    Uses the transpose of the rotation block, which is exact for the
    orthonormal matrices produced by this module and avoids a general
    matrix inversion.
    """
    r = m[:3, :3]
    inv = np.eye(4)
    inv[:3, :3] = r.T
    inv[:3, 3] = -r.T @ m[:3, 3]
    return inv


def apply(m: np.ndarray, point) -> np.ndarray:
    """Transform a 3-vector point by a 4x4 matrix."""
    p = np.asarray(point, dtype=float)
    return m[:3, :3] @ p + m[:3, 3]


def frozen(m: np.ndarray) -> np.ndarray:
    """Mark an array read-only and return it."""
    m.flags.writeable = False
    return m
