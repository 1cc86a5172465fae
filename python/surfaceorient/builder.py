# python/surfaceorient/builder.py
# Incremental mesh-attribute builder that produces an OrientationTable
# Exists to validate caller buffers up front and hand one immutable value to the pure build step
# RELEVANT FILES: python/surfaceorient/attributes.py, python/surfaceorient/strategies.py, python/surfaceorient/table.py, tests/test_builder_validation.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import numpy as np

from .attributes import (
    MeshAttributes,
    check_indices_in_range,
    check_vertex_count,
    read_count,
    read_normals,
    read_triangles,
    read_vectors,
)
from .config import ConfigSource, OrientationConfig, load_orientation_config
from .errors import InvalidArgumentError, InvalidStateError
from .quaternion import quaternions_from_frames
from .strategies import select_strategy
from .table import OrientationTable

logger = logging.getLogger(__name__)


def build_orientation(attributes: MeshAttributes, config: Optional[OrientationConfig] = None) -> OrientationTable:
    """Compute per-vertex tangent frames for a validated attribute set.

    Raises
    ------
    InvalidStateError
        If the attributes allow no orientation strategy.
    DegenerateMeshError
        If the chosen strategy finds nothing usable in the geometry.
    """
    cfg = config if config is not None else OrientationConfig()
    strategy = select_strategy(attributes)
    if strategy is None:
        present = ", ".join(attributes.present()) or "nothing"
        raise InvalidStateError(
            "no usable attribute combination; need normals, normals+tangents, "
            f"positions+uvs+triangles or positions+triangles (got {present})"
        )
    logger.debug("orienting %d vertices with the %r strategy", attributes.vertex_count, strategy.name)

    vectors = strategy.compute(cfg)
    quats, signs = quaternions_from_frames(vectors.tangents, vectors.normals, vectors.signs, cfg.w_bias)
    table = OrientationTable(quats, signs, strategy.name, cfg.default_encoding)
    logger.info("built orientation table: %d vertices (%s)", table.vertex_count, strategy.name)
    return table


class SurfaceOrientationBuilder:
    """Collects mesh attributes and builds an :class:`OrientationTable` once.

    Every setter copies what it needs from the caller buffer before
    returning, and returns the builder so calls can be chained::

        table = (SurfaceOrientationBuilder()
                 .vertex_count(3)
                 .normals(normals)
                 .build())

    The builder is single use and not safe for concurrent mutation.
    """

    def __init__(self, config: ConfigSource = None):
        self._config = load_orientation_config(config)
        self._vertex_count: Optional[int] = None
        self._triangle_count: Optional[int] = None
        self._attributes: Dict[str, np.ndarray] = {}
        self._triangles: Optional[np.ndarray] = None
        self._index_width: Optional[int] = None
        self._built = False

    @property
    def config(self) -> OrientationConfig:
        return self._config

    def _check_open(self) -> None:
        if self._built:
            raise InvalidStateError("builder has already been consumed by build()")

    def vertex_count(self, count: Any) -> "SurfaceOrientationBuilder":
        self._check_open()
        n = check_vertex_count(count)
        for name, records in self._attributes.items():
            if len(records) != n:
                raise InvalidArgumentError(
                    f"vertex_count {n} conflicts with {name} buffer holding {len(records)} records"
                )
        if self._triangles is not None:
            check_indices_in_range(self._triangles, n)
        self._vertex_count = n
        return self

    def _set_vectors(self, name: str, records: np.ndarray) -> "SurfaceOrientationBuilder":
        if self._vertex_count is not None and len(records) != self._vertex_count:
            raise InvalidArgumentError(
                f"{name} buffer holds {len(records)} records but vertex_count is {self._vertex_count}"
            )
        self._attributes[name] = records
        return self

    def positions(self, buffer: Any, stride: int = 0) -> "SurfaceOrientationBuilder":
        self._check_open()
        return self._set_vectors("positions", read_vectors(buffer, 3, stride, "positions"))

    def normals(self, buffer: Any, stride: int = 0) -> "SurfaceOrientationBuilder":
        self._check_open()
        return self._set_vectors("normals", read_normals(buffer, stride))

    def tangents(self, buffer: Any, stride: int = 0) -> "SurfaceOrientationBuilder":
        self._check_open()
        return self._set_vectors("tangents", read_vectors(buffer, 4, stride, "tangents"))

    def uvs(self, buffer: Any, stride: int = 0) -> "SurfaceOrientationBuilder":
        self._check_open()
        return self._set_vectors("uvs", read_vectors(buffer, 2, stride, "uvs"))

    def triangle_count(self, count: Any) -> "SurfaceOrientationBuilder":
        self._check_open()
        n = read_count(count, "triangle_count")
        if n < 0:
            raise InvalidArgumentError(f"triangle_count must be >= 0, got {n}")
        if self._triangles is not None and len(self._triangles) != n:
            raise InvalidArgumentError(
                f"triangle_count {n} conflicts with triangle buffer holding {len(self._triangles)} triangles"
            )
        self._triangle_count = n
        return self

    def _set_triangles(self, buffer: Any, dtype, width: int) -> "SurfaceOrientationBuilder":
        self._check_open()
        if self._index_width is not None and self._index_width != width:
            raise InvalidArgumentError(
                f"triangles were already supplied as uint{self._index_width}; "
                f"cannot also supply uint{width}"
            )
        label = f"triangles_uint{width}"
        triangles = read_triangles(buffer, dtype, label)
        if self._triangle_count is not None and len(triangles) != self._triangle_count:
            raise InvalidArgumentError(
                f"{label} holds {len(triangles)} triangles but triangle_count is {self._triangle_count}"
            )
        if self._vertex_count is not None:
            check_indices_in_range(triangles, self._vertex_count, label)
        self._triangles = triangles
        self._index_width = width
        return self

    def triangles_uint16(self, buffer: Any) -> "SurfaceOrientationBuilder":
        return self._set_triangles(buffer, np.uint16, 16)

    def triangles_uint32(self, buffer: Any) -> "SurfaceOrientationBuilder":
        return self._set_triangles(buffer, np.uint32, 32)

    def build(self) -> OrientationTable:
        """Validate the collected attributes and compute the orientation table.

        The builder is consumed even when the build fails; nothing partial is
        returned.
        """
        self._check_open()
        self._built = True
        try:
            if self._vertex_count is None:
                raise InvalidStateError("vertex_count must be set before build()")
            if self._triangle_count and self._triangles is None:
                raise InvalidStateError(
                    f"triangle_count {self._triangle_count} was declared but no triangle buffer was supplied"
                )
            attributes = MeshAttributes(
                vertex_count=self._vertex_count,
                positions=self._attributes.get("positions"),
                normals=self._attributes.get("normals"),
                tangents=self._attributes.get("tangents"),
                uvs=self._attributes.get("uvs"),
                triangles=self._triangles,
            )
            return build_orientation(attributes, self._config)
        finally:
            self._attributes = {}
            self._triangles = None
