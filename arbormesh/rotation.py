"""
Orientation helpers built on scipy rotations.

Branch frames use a y-up convention: a branch grows along its local +Y,
rings lie in the local XZ plane and leaves face local +Z.

Rotations compose like quaternions: `a * b` applies `b` first, then `a`.
"""

import numpy as np
from scipy.spatial.transform import Rotation, Slerp

RIGHT = np.array([1.0, 0.0, 0.0])
UP = np.array([0.0, 1.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])

# Squared length below which a direction is treated as zero
DIRECTION_EPSILON = 1.1920929e-07


def identity() -> Rotation:
    return Rotation.identity()


def normalize(v, fallback: np.ndarray = UP) -> np.ndarray:
    """Unit vector along v, or `fallback` if v is (nearly) zero."""
    v = np.asarray(v, dtype=float)
    length_sq = float(np.dot(v, v))
    if length_sq < DIRECTION_EPSILON:
        return np.array(fallback, dtype=float)
    return v / np.sqrt(length_sq)


def axis_angle(axis: np.ndarray, angle: float) -> Rotation:
    """Rotation by `angle` radians around a unit axis."""
    return Rotation.from_rotvec(np.asarray(axis, dtype=float) * angle)


def rotation_arc(from_vec: np.ndarray, to_vec: np.ndarray) -> Rotation:
    """
    Shortest rotation taking unit vector `from_vec` onto unit vector `to_vec`.

    Antiparallel inputs rotate half a turn around any axis perpendicular
    to `from_vec`.
    """
    a = normalize(from_vec)
    b = normalize(to_vec)
    cross = np.cross(a, b)
    dot = float(np.clip(np.dot(a, b), -1.0, 1.0))
    sin = float(np.linalg.norm(cross))
    if sin < 1e-9:
        if dot > 0:
            return Rotation.identity()
        # Pick the perpendicular least aligned with a
        helper = RIGHT if abs(a[0]) < 0.9 else FORWARD
        axis = normalize(np.cross(a, helper))
        return axis_angle(axis, np.pi)
    return axis_angle(cross / sin, float(np.arctan2(sin, dot)))


def slerp(a: Rotation, b: Rotation, t: float) -> Rotation:
    """Spherical interpolation from a (t=0) to b (t=1) along the shortest arc."""
    t = min(max(float(t), 0.0), 1.0)
    if t == 0.0:
        return a
    if t == 1.0:
        return b
    interpolator = Slerp([0.0, 1.0], Rotation.concatenate([a, b]))
    return interpolator([t])[0]


def gnarl_rotation(dx: float, dz: float) -> Rotation:
    """Tilt around the local X then Z axes (intrinsic XYZ Euler, no Y turn)."""
    return Rotation.from_euler("XYZ", [dx, 0.0, dz])
