"""
Quaternion utilities for tangent frames.

Quaternions are stored as ``(x, y, z, w)``. A tangent frame quaternion is
always built from the proper rotation ``[T, N x T, N]``; a mirrored frame is
reported by negating the whole quaternion, so the sign of ``w`` carries the
handedness and ``w`` is kept away from zero so that the sign survives
quantization.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

# Smallest w that still carries a sign after a float32 cast.
_MIN_W = float(np.finfo(np.float32).tiny)


def basis_to_quaternions(matrices: np.ndarray) -> np.ndarray:
    """Convert ``(N, 3, 3)`` rotation matrices to ``(N, 4)`` quaternions.

    Uses the diagonal-branching method: for each matrix the branch that
    solves for the largest quaternion component is chosen, so no branch ever
    divides by a value close to zero (this matters near 180 degree turns,
    where ``w`` vanishes).
    """
    m = np.asarray(matrices, dtype=np.float64)
    m00, m01, m02 = m[:, 0, 0], m[:, 0, 1], m[:, 0, 2]
    m10, m11, m12 = m[:, 1, 0], m[:, 1, 1], m[:, 1, 2]
    m20, m21, m22 = m[:, 2, 0], m[:, 2, 1], m[:, 2, 2]
    trace = m00 + m11 + m22

    # Each key equals 4*c^2 - 1 for c in (w, x, y, z).
    keys = np.stack([trace, 2.0 * m00 - trace, 2.0 * m11 - trace, 2.0 * m22 - trace], axis=1)
    branch = np.argmax(keys, axis=1)
    q = np.empty((m.shape[0], 4), dtype=np.float64)

    sel = branch == 0
    if np.any(sel):
        s = np.sqrt(1.0 + trace[sel]) * 2.0
        q[sel, 3] = 0.25 * s
        q[sel, 0] = (m21[sel] - m12[sel]) / s
        q[sel, 1] = (m02[sel] - m20[sel]) / s
        q[sel, 2] = (m10[sel] - m01[sel]) / s

    sel = branch == 1
    if np.any(sel):
        s = np.sqrt(1.0 + m00[sel] - m11[sel] - m22[sel]) * 2.0
        q[sel, 3] = (m21[sel] - m12[sel]) / s
        q[sel, 0] = 0.25 * s
        q[sel, 1] = (m01[sel] + m10[sel]) / s
        q[sel, 2] = (m02[sel] + m20[sel]) / s

    sel = branch == 2
    if np.any(sel):
        s = np.sqrt(1.0 + m11[sel] - m00[sel] - m22[sel]) * 2.0
        q[sel, 3] = (m02[sel] - m20[sel]) / s
        q[sel, 0] = (m01[sel] + m10[sel]) / s
        q[sel, 1] = 0.25 * s
        q[sel, 2] = (m12[sel] + m21[sel]) / s

    sel = branch == 3
    if np.any(sel):
        s = np.sqrt(1.0 + m22[sel] - m00[sel] - m11[sel]) * 2.0
        q[sel, 3] = (m10[sel] - m01[sel]) / s
        q[sel, 0] = (m02[sel] + m20[sel]) / s
        q[sel, 1] = (m12[sel] + m21[sel]) / s
        q[sel, 2] = 0.25 * s

    return q


def quaternions_from_frames(
    tangents: np.ndarray,
    normals: np.ndarray,
    signs: np.ndarray,
    w_bias: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Build canonical frame quaternions from unit tangents and normals.

    The bitangent is always taken as ``N x T`` here; ``signs`` is only passed
    through (as int8) for the caller to keep next to the rotation.

    Returns
    -------
    quats : np.ndarray
        ``(N, 4)`` float64 unit quaternions with ``w >= w_bias``.
    signs : np.ndarray
        ``(N,)`` int8 handedness, ``+1`` or ``-1``.
    """
    t = np.asarray(tangents, dtype=np.float64)
    n = np.asarray(normals, dtype=np.float64)
    b = np.cross(n, t)
    q = basis_to_quaternions(np.stack([t, b, n], axis=2))

    q /= np.linalg.norm(q, axis=1)[:, None]
    q[q[:, 3] < 0.0] *= -1.0

    floor = max(float(w_bias), _MIN_W)
    low = q[:, 3] < floor
    if np.any(low):
        xyz = q[low, :3]
        length = np.linalg.norm(xyz, axis=1)
        q[low, :3] = xyz * (np.sqrt(1.0 - floor * floor) / length)[:, None]
        q[low, 3] = floor

    handedness = np.where(np.asarray(signs) < 0, -1, 1).astype(np.int8)
    return q, handedness


def pack_handedness(quats: np.ndarray, signs: np.ndarray) -> np.ndarray:
    """Fold handedness into the quaternion sign (negative ``w`` means mirrored)."""
    return np.asarray(quats) * np.asarray(signs, dtype=np.float64)[:, None]


def frames_from_quaternions(quats: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Decode packed quaternions back into ``(tangents, bitangents, normals)``."""
    q = np.asarray(quats, dtype=np.float64).reshape(-1, 4)
    q = q / np.linalg.norm(q, axis=1)[:, None]
    x, y, z, w = q[:, 0], q[:, 1], q[:, 2], q[:, 3]
    sign = np.where(w < 0.0, -1.0, 1.0)

    tangents = np.stack([
        1.0 - 2.0 * (y * y + z * z),
        2.0 * (x * y + z * w),
        2.0 * (x * z - y * w),
    ], axis=1)
    bitangents = np.stack([
        2.0 * (x * y - z * w),
        1.0 - 2.0 * (x * x + z * z),
        2.0 * (y * z + x * w),
    ], axis=1) * sign[:, None]
    normals = np.stack([
        2.0 * (x * z + y * w),
        2.0 * (y * z - x * w),
        1.0 - 2.0 * (x * x + y * y),
    ], axis=1)
    return tangents, bitangents, normals


def quaternion_from_axis_angle(axis, radians: float) -> np.ndarray:
    axis = np.asarray(axis, dtype=np.float64)
    length = np.linalg.norm(axis)
    if length == 0.0:
        return np.array([0.0, 0.0, 0.0, 1.0])
    half = 0.5 * radians
    return np.append(axis / length * np.sin(half), np.cos(half))


def quaternion_from_eulers(eulers) -> np.ndarray:
    """Quaternion for (roll, pitch, yaw) radians about x, y and z."""
    roll, pitch, yaw = (float(a) for a in eulers)
    s_r, c_r = np.sin(roll * 0.5), np.cos(roll * 0.5)
    s_p, c_p = np.sin(pitch * 0.5), np.cos(pitch * 0.5)
    s_y, c_y = np.sin(yaw * 0.5), np.cos(yaw * 0.5)
    return np.array([
        s_r * c_p * c_y + c_r * s_p * s_y,
        c_r * s_p * c_y - s_r * c_p * s_y,
        c_r * c_p * s_y + s_r * s_p * c_y,
        c_r * c_p * c_y - s_r * s_p * s_y,
    ])


def rotate_vectors(quat, vectors: np.ndarray) -> np.ndarray:
    """Rotate ``(N, 3)`` vectors by a single unit quaternion."""
    q = np.asarray(quat, dtype=np.float64)
    v = np.asarray(vectors, dtype=np.float64)
    t = 2.0 * np.cross(q[:3], v)
    return v + q[3] * t + np.cross(q[:3], t)
