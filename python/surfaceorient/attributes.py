"""
Vertex attribute ingestion for the orientation builder.

Turns caller buffers (numpy arrays, sequences or raw bytes) into private
float64 / int64 arrays with one record per vertex, honouring an element
stride so that interleaved vertex structs can be read in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from .errors import InvalidArgumentError

MAX_VERTEX_COUNT = 2**32 - 1

_INDEX_LIMITS = {
    np.dtype(np.uint16): 2**16 - 1,
    np.dtype(np.uint32): 2**32 - 1,
}

# memoryview formats read as untyped bytes; typed views keep their own dtype.
_BYTE_FORMATS = ("B", "b", "c")


@dataclass(frozen=True)
class MeshAttributes:
    """Validated, builder-owned copy of everything known about a mesh."""

    vertex_count: int
    positions: Optional[np.ndarray] = None
    normals: Optional[np.ndarray] = None
    tangents: Optional[np.ndarray] = None
    uvs: Optional[np.ndarray] = None
    triangles: Optional[np.ndarray] = None

    @property
    def triangle_count(self) -> int:
        if self.triangles is None:
            return 0
        return int(self.triangles.shape[0])

    def present(self) -> tuple:
        """Names of the attributes that were supplied, in a fixed order."""
        names = ("positions", "normals", "tangents", "uvs", "triangles")
        return tuple(name for name in names if getattr(self, name) is not None)


def _flatten(buffer: Any, raw_dtype, label: str) -> np.ndarray:
    if isinstance(buffer, (bytes, bytearray)) or (
        isinstance(buffer, memoryview) and buffer.format in _BYTE_FORMATS
    ):
        raw = bytes(buffer)
        itemsize = np.dtype(raw_dtype).itemsize
        if len(raw) % itemsize:
            raise InvalidArgumentError(
                f"{label} byte buffer length {len(raw)} is not a multiple of {itemsize}"
            )
        return np.frombuffer(raw, dtype=raw_dtype)
    if buffer is None:
        raise InvalidArgumentError(f"{label} buffer must not be None")
    try:
        arr = np.asarray(buffer)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"{label} buffer is not array-like: {e}") from e
    return arr.reshape(-1)


def implied_count(length: int, components: int, stride: int) -> int:
    """Number of whole records held by ``length`` scalars at ``stride``."""
    if length < components:
        return 0
    return (length - components) // stride + 1


def read_vectors(buffer: Any, components: int, stride: int, label: str) -> np.ndarray:
    """Gather ``(count, components)`` float64 records from a flat or shaped buffer.

    ``stride`` counts scalars between the starts of consecutive records; zero
    means the records are tightly packed.
    """
    stride = int(stride)
    if stride < 0:
        raise InvalidArgumentError(f"{label} stride must be >= 0, got {stride}")
    if stride == 0:
        stride = components
    if stride < components:
        raise InvalidArgumentError(
            f"{label} stride {stride} is smaller than the {components} components of one record"
        )

    flat = _flatten(buffer, np.float32, label)
    if flat.dtype.kind not in "fiu":
        raise InvalidArgumentError(f"{label} must hold numeric values; got dtype {flat.dtype}")
    if flat.size == 0:
        raise InvalidArgumentError(f"{label} buffer is empty")
    if stride == components and flat.size % components:
        raise InvalidArgumentError(
            f"{label} holds {flat.size} values, not a multiple of {components}"
        )
    count = implied_count(flat.size, components, stride)
    if count == 0:
        raise InvalidArgumentError(
            f"{label} holds {flat.size} values, fewer than one {components}-component record"
        )

    gather = np.arange(count)[:, None] * stride + np.arange(components)[None, :]
    # Fancy indexing copies, so nothing aliases the caller buffer afterwards.
    records = flat[gather].astype(np.float64)
    if not np.all(np.isfinite(records)):
        bad = int(np.argmax(~np.all(np.isfinite(records), axis=1)))
        raise InvalidArgumentError(f"{label}[{bad}] contains a non-finite value")
    return records


def read_normals(buffer: Any, stride: int) -> np.ndarray:
    normals = read_vectors(buffer, 3, stride, "normals")
    lengths = np.linalg.norm(normals, axis=1)
    zero = lengths <= 0.0
    if np.any(zero):
        raise InvalidArgumentError(f"normals[{int(np.argmax(zero))}] has zero length")
    return normals / lengths[:, None]


def read_triangles(buffer: Any, index_dtype, label: str) -> np.ndarray:
    """Read an index buffer of the given width into an ``(M, 3)`` int64 array."""
    index_dtype = np.dtype(index_dtype)
    limit = _INDEX_LIMITS[index_dtype]
    flat = _flatten(buffer, index_dtype, label)
    if flat.size and flat.dtype.kind not in "iu":
        raise InvalidArgumentError(f"{label} must hold integer indices; got dtype {flat.dtype}")
    if flat.size % 3:
        raise InvalidArgumentError(f"{label} holds {flat.size} indices, not a multiple of 3")
    indices = flat.astype(np.int64)
    if indices.size:
        lo = int(indices.min())
        hi = int(indices.max())
        if lo < 0:
            raise InvalidArgumentError(f"{label} contains negative index {lo}")
        if hi > limit:
            raise InvalidArgumentError(
                f"{label} index {hi} does not fit in {index_dtype.itemsize * 8} bits"
            )
    return indices.reshape(-1, 3)


def read_count(value: Any, label: str) -> int:
    """Exact integer value of ``value``; fractional and non-finite counts are rejected."""
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidArgumentError(f"{label} must be an integer, got {value!r}") from e
    if n != value:
        raise InvalidArgumentError(f"{label} must be an integer, got {value!r}")
    return n


def check_vertex_count(value: Any) -> int:
    n = read_count(value, "vertex_count")
    if n <= 0:
        raise InvalidArgumentError(f"vertex_count must be > 0, got {n}")
    if n > MAX_VERTEX_COUNT:
        raise InvalidArgumentError(f"vertex_count must be <= {MAX_VERTEX_COUNT}, got {n}")
    return n


def check_indices_in_range(triangles: np.ndarray, vertex_count: int, label: str = "triangles") -> None:
    if triangles.size == 0:
        return
    if int(triangles.max()) >= vertex_count:
        face = int(np.argmax(np.any(triangles >= vertex_count, axis=1)))
        bad = int(triangles[face].max())
        raise InvalidArgumentError(
            f"{label}[{face}] references vertex {bad} but only {vertex_count} vertices exist "
            f"(valid range: 0-{vertex_count - 1})"
        )
