# python/surfaceorient/strategies.py
# Per-vertex tangent frame computation for each supported attribute combination
# Exists to keep tangent accumulation, orthonormalization and handedness in one pure module
# RELEVANT FILES: python/surfaceorient/builder.py, python/surfaceorient/quaternion.py, tests/test_orientation_strategies.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar, NamedTuple, Optional, Union

import numpy as np

from .attributes import MeshAttributes
from .config import OrientationConfig
from .errors import DegenerateMeshError

logger = logging.getLogger(__name__)

_AXES = np.eye(3, dtype=np.float64)
_FALLBACK_NORMAL = np.array([0.0, 0.0, 1.0])


class FrameVectors(NamedTuple):
    """Unit tangents and normals plus a +1/-1 handedness per vertex (float64)."""

    tangents: np.ndarray
    normals: np.ndarray
    signs: np.ndarray


def _dot(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.einsum("ij,ij->i", a, b)


def least_aligned_axes(normals: np.ndarray) -> np.ndarray:
    """Coordinate axis with the smallest |component| of each normal (ties go to x, then y)."""
    return _AXES[np.argmin(np.abs(normals), axis=1)]


def orthogonalize(candidates: np.ndarray, normals: np.ndarray, epsilon: float) -> np.ndarray:
    """Gram-Schmidt ``candidates`` against unit ``normals`` and normalize.

    Rows whose projection is shorter than ``epsilon`` (zero input, or parallel
    to the normal) are replaced by the least aligned axis, projected the same
    way. That axis has |dot| <= 1/sqrt(3) with the normal, so the fallback
    never collapses.
    """
    t = candidates - normals * _dot(normals, candidates)[:, None]
    length = np.linalg.norm(t, axis=1)
    weak = ~(length > epsilon)
    out = np.empty_like(t)
    out[~weak] = t[~weak] / length[~weak][:, None]
    if np.any(weak):
        n = normals[weak]
        axis = least_aligned_axes(n)
        fallback = axis - n * _dot(n, axis)[:, None]
        out[weak] = fallback / np.linalg.norm(fallback, axis=1)[:, None]
    return out


def _face_corners(positions: np.ndarray, triangles: np.ndarray):
    p0 = positions[triangles[:, 0]]
    p1 = positions[triangles[:, 1]]
    p2 = positions[triangles[:, 2]]
    return p0, p1, p2


def _distinct_corners(triangles: np.ndarray) -> np.ndarray:
    return (
        (triangles[:, 0] != triangles[:, 1])
        & (triangles[:, 1] != triangles[:, 2])
        & (triangles[:, 0] != triangles[:, 2])
    )


def _scatter(per_face: np.ndarray, triangles: np.ndarray, vertex_count: int) -> np.ndarray:
    """Add each face vector to its three corners."""
    acc = np.zeros((vertex_count, 3), dtype=np.float64)
    np.add.at(acc, triangles.reshape(-1), np.repeat(per_face, 3, axis=0))
    return acc


def geometric_normals(attributes: MeshAttributes, config: OrientationConfig) -> np.ndarray:
    """Area weighted vertex normals from face cross products.

    Vertices that touch no face with positive area get +Z.

    Raises
    ------
    DegenerateMeshError
        If no face of the mesh has positive area.
    """
    triangles = attributes.triangles
    p0, p1, p2 = _face_corners(attributes.positions, triangles)
    cross = np.cross(p1 - p0, p2 - p0)
    area2 = _dot(cross, cross)
    usable = _distinct_corners(triangles) & np.isfinite(area2) & (area2 > config.area_epsilon)
    if not np.any(usable):
        raise DegenerateMeshError(
            f"none of the {len(triangles)} triangles has positive area; cannot derive normals"
        )
    acc = _scatter(cross[usable], triangles[usable], attributes.vertex_count)
    length = np.linalg.norm(acc, axis=1)
    lonely = ~(length > 0.0)
    normals = np.empty_like(acc)
    normals[~lonely] = acc[~lonely] / length[~lonely][:, None]
    normals[lonely] = _FALLBACK_NORMAL
    if np.any(lonely):
        logger.debug("%d vertices touch no usable face; using +Z normal", int(lonely.sum()))
    return normals


@dataclass(frozen=True)
class FromTangents:
    """Supplied normals and tangents; orthonormalize each pair in place."""

    name: ClassVar[str] = "tangents"
    normals: np.ndarray
    tangents: np.ndarray

    def compute(self, config: OrientationConfig) -> FrameVectors:
        n = self.normals
        t = orthogonalize(self.tangents[:, :3], n, config.tangent_epsilon)
        signs = np.where(self.tangents[:, 3] < 0.0, -1.0, 1.0)
        return FrameVectors(t, n, signs)


@dataclass(frozen=True)
class FromUVs:
    """Tangents derived from triangle edges and their texture-space deltas."""

    name: ClassVar[str] = "uvs"
    vertex_count: int
    positions: np.ndarray
    uvs: np.ndarray
    triangles: np.ndarray
    normals: Optional[np.ndarray] = None

    def compute(self, config: OrientationConfig) -> FrameVectors:
        tri = self.triangles
        p0, p1, p2 = _face_corners(self.positions, tri)
        uv0, uv1, uv2 = _face_corners(self.uvs, tri)
        e1 = p1 - p0
        e2 = p2 - p0
        d1 = uv1 - uv0
        d2 = uv2 - uv0

        r = d1[:, 0] * d2[:, 1] - d2[:, 0] * d1[:, 1]
        cross = np.cross(e1, e2)
        area2 = _dot(cross, cross)
        usable = (
            _distinct_corners(tri)
            & (np.abs(r) > config.uv_epsilon)
            & (area2 > config.area_epsilon)
        )
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            inv = np.where(usable, 1.0 / np.where(usable, r, 1.0), 0.0)
            face_t = (e1 * d2[:, 1:2] - e2 * d1[:, 1:2]) * inv[:, None]
            face_b = (e2 * d1[:, 0:1] - e1 * d2[:, 0:1]) * inv[:, None]
        usable &= np.all(np.isfinite(face_t), axis=1) & np.all(np.isfinite(face_b), axis=1)

        skipped = int(len(tri) - usable.sum())
        if skipped:
            logger.debug("skipped %d of %d triangles with degenerate UV or geometry", skipped, len(tri))

        if self.normals is None:
            if not np.any(usable):
                raise DegenerateMeshError(
                    "mesh has no normals, no tangents and no triangle with positive UV area"
                )
            normals = geometric_normals(
                MeshAttributes(self.vertex_count, positions=self.positions, triangles=tri), config
            )
        else:
            normals = self.normals

        tan_sum = _scatter(face_t[usable], tri[usable], self.vertex_count)
        bit_sum = _scatter(face_b[usable], tri[usable], self.vertex_count)

        t = orthogonalize(tan_sum, normals, config.tangent_epsilon)
        b = np.cross(normals, t)
        signs = np.where(_dot(bit_sum, b) < 0.0, -1.0, 1.0)
        return FrameVectors(t, normals, signs)


@dataclass(frozen=True)
class FromNormals:
    """Normals only: a deterministic but otherwise arbitrary tangent per vertex."""

    name: ClassVar[str] = "normals"
    normals: np.ndarray

    def compute(self, config: OrientationConfig) -> FrameVectors:
        n = self.normals
        t = orthogonalize(np.zeros_like(n), n, config.tangent_epsilon)
        return FrameVectors(t, n, np.ones(len(n)))


@dataclass(frozen=True)
class FromPositions:
    """Positions and triangles only: geometric normals, arbitrary tangents."""

    name: ClassVar[str] = "positions"
    vertex_count: int
    positions: np.ndarray
    triangles: np.ndarray

    def compute(self, config: OrientationConfig) -> FrameVectors:
        n = geometric_normals(
            MeshAttributes(self.vertex_count, positions=self.positions, triangles=self.triangles), config
        )
        return FromNormals(n).compute(config)


Strategy = Union[FromTangents, FromUVs, FromNormals, FromPositions]


def select_strategy(attributes: MeshAttributes) -> Optional[Strategy]:
    """Pick the richest computation the supplied attributes allow, or None."""
    a = attributes
    has_faces = a.triangles is not None and a.triangle_count > 0
    if a.normals is not None and a.tangents is not None:
        return FromTangents(a.normals, a.tangents)
    if a.positions is not None and a.uvs is not None and has_faces:
        return FromUVs(a.vertex_count, a.positions, a.uvs, a.triangles, a.normals)
    if a.normals is not None:
        return FromNormals(a.normals)
    if a.positions is not None and has_faces:
        return FromPositions(a.vertex_count, a.positions, a.triangles)
    return None
