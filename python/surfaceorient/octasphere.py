# python/surfaceorient/octasphere.py
# Procedural octasphere mesh with per-vertex tangent-frame quaternions
# Exists to give callers and tests a real closed mesh to feed through the builder
# RELEVANT FILES: python/surfaceorient/builder.py, python/surfaceorient/quaternion.py, tests/test_octasphere.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

import numpy as np

from .builder import SurfaceOrientationBuilder
from .quaternion import quaternion_from_axis_angle, quaternion_from_eulers, rotate_vectors

MAX_SUBDIVISIONS = 5

# Euler angles (in quarter turns) that carry the first octant patch onto the other seven.
_OCTANTS = (
    (0, 0, 0), (0, 1, 0), (0, 2, 0), (0, 3, 0),
    (1, 0, 0), (1, 0, 1), (1, 0, 2), (1, 0, 3),
)


@dataclass
class OctasphereMesh:
    """Octasphere geometry: float32 positions/normals, packed float32 frame quats, uint16 triangles."""

    positions: np.ndarray
    normals: np.ndarray
    tangents: np.ndarray
    indices: np.ndarray

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def index_count(self) -> int:
        return int(self.indices.size)

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0])


def _geodesic(a: np.ndarray, b: np.ndarray, segments: int) -> List[np.ndarray]:
    if segments == 0:
        return [a]
    angle = math.acos(float(np.clip(np.dot(a, b), -1.0, 1.0)))
    axis = np.cross(a, b)
    delta = angle / segments
    points = [a]
    for i in range(1, segments):
        q = quaternion_from_axis_angle(axis, delta * i)
        points.append(rotate_vectors(q, a))
    points.append(b)
    return points


def _unit_patch(per_line: int) -> np.ndarray:
    """Vertices of the +x+y+z patch, one geodesic row per latitude step."""
    points: List[np.ndarray] = []
    for i in range(per_line):
        theta = 0.5 * math.pi * i / (per_line - 1)
        a = np.array([0.0, math.sin(theta), math.cos(theta)])
        b = np.array([math.cos(theta), math.sin(theta), 0.0])
        points.extend(_geodesic(a, b, per_line - 1 - i))
    return np.array(points, dtype=np.float64)


def _patch_triangles(per_line: int) -> np.ndarray:
    tris = []
    j0 = 0
    for column in range(per_line - 1):
        height = per_line - 1 - column
        j1 = j0 + 1
        j2 = j0 + height + 1
        j3 = j0 + height + 2
        for row in range(height - 1):
            tris.append((j0 + row, j1 + row, j2 + row))
            tris.append((j2 + row, j1 + row, j3 + row))
        row = height - 1
        tris.append((j0 + row, j1 + row, j2 + row))
        j0 = j2
    return np.array(tris, dtype=np.int64)


def generate_octasphere(radius: float = 1.0, subdivisions: int = 3) -> OctasphereMesh:
    """Generate a sphere from eight geodesic octant patches.

    Parameters
    ----------
    radius : float, default 1.0
        Sphere radius, must be positive.
    subdivisions : int, default 3
        Edge subdivision level, clamped to ``[0, MAX_SUBDIVISIONS]``; each patch
        edge carries ``2**subdivisions + 1`` vertices.

    Returns
    -------
    OctasphereMesh
        Patches are not welded, so seam vertices are duplicated.

    Raises
    ------
    ValueError
        If radius is not a positive finite number.
    """
    radius = float(radius)
    if not math.isfinite(radius) or radius <= 0.0:
        raise ValueError(f"radius must be a positive finite number, got {radius!r}")
    level = min(max(int(subdivisions), 0), MAX_SUBDIVISIONS)
    per_line = (1 << level) + 1

    patch = _unit_patch(per_line)
    patch_tris = _patch_triangles(per_line)

    normals = [patch]
    triangles = [patch_tris]
    for octant, quarter_turns in enumerate(_OCTANTS[1:], start=1):
        q = quaternion_from_eulers(np.asarray(quarter_turns, dtype=np.float64) * 0.5 * math.pi)
        normals.append(rotate_vectors(q, patch))
        triangles.append(patch_tris + octant * len(patch))

    unit = np.concatenate(normals)
    unit /= np.linalg.norm(unit, axis=1)[:, None]
    positions = (unit * radius).astype(np.float32)
    indices = np.concatenate(triangles).astype(np.uint16)

    table = (
        SurfaceOrientationBuilder()
        .vertex_count(len(unit))
        .positions(positions)
        .normals(unit)
        .triangle_count(len(indices))
        .triangles_uint16(indices)
        .build()
    )
    return OctasphereMesh(
        positions=positions,
        normals=unit.astype(np.float32),
        tangents=table.get_quats_as_float(),
        indices=indices,
    )
