"""
Orientation table: the immutable result of a builder run.

Holds one tangent frame per vertex as a canonical quaternion (w >= 0) plus a
handedness sign, and exports them packed (sign folded into the quaternion)
in any of the supported encodings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .encoding import encode_quats
from .quaternion import frames_from_quaternions, pack_handedness


@dataclass(frozen=True)
class TangentFrame:
    """One vertex frame: rotation quaternion plus reflection sign."""

    quaternion: Tuple[float, float, float, float]
    handedness: int

    @property
    def packed(self) -> np.ndarray:
        """Quaternion with the handedness carried by the sign of ``w``."""
        return np.asarray(self.quaternion, dtype=np.float32) * np.float32(self.handedness)

    def _basis(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        t, b, n = frames_from_quaternions(self.packed[None, :])
        return t[0], b[0], n[0]

    @property
    def tangent(self) -> np.ndarray:
        return self._basis()[0]

    @property
    def bitangent(self) -> np.ndarray:
        return self._basis()[1]

    @property
    def normal(self) -> np.ndarray:
        return self._basis()[2]

    @property
    def matrix(self) -> np.ndarray:
        """3x3 matrix with columns [tangent, bitangent, normal]."""
        return np.column_stack(self._basis())


class OrientationTable:
    """Per-vertex tangent frames produced by :class:`SurfaceOrientationBuilder`.

    Instances are read-only; every export returns a fresh array, so a table
    can be shared between threads without locking.
    """

    def __init__(self, quats: np.ndarray, handedness: np.ndarray, strategy: str,
                 default_encoding: str = "float"):
        q = np.array(quats, dtype=np.float32).reshape(-1, 4)
        h = np.array(handedness, dtype=np.int8).reshape(-1)
        if len(q) != len(h):
            raise ValueError(f"quaternion count {len(q)} does not match handedness count {len(h)}")
        q.setflags(write=False)
        h.setflags(write=False)
        self._quats = q
        self._handedness = h
        self._strategy = strategy
        self._default_encoding = default_encoding

    @property
    def vertex_count(self) -> int:
        return int(self._quats.shape[0])

    def __len__(self) -> int:
        return self.vertex_count

    @property
    def strategy(self) -> str:
        """Name of the computation that produced the frames."""
        return self._strategy

    @property
    def rotations(self) -> np.ndarray:
        """Canonical (w >= 0) quaternions, read-only ``(N, 4)`` float32."""
        return self._quats

    @property
    def handedness(self) -> np.ndarray:
        """Read-only ``(N,)`` int8 of +1 / -1."""
        return self._handedness

    @property
    def quaternions(self) -> np.ndarray:
        """Packed quaternions as a new ``(N, 4)`` float32 array."""
        return pack_handedness(self._quats, self._handedness).astype(np.float32)

    def frame(self, index: int) -> TangentFrame:
        i = int(index)
        if not 0 <= i < self.vertex_count:
            raise IndexError(f"vertex index {index} out of range for {self.vertex_count} vertices")
        return TangentFrame(
            quaternion=tuple(float(c) for c in self._quats[i]),
            handedness=int(self._handedness[i]),
        )

    def frames(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Decode every frame into ``(tangents, bitangents, normals)`` float64 arrays."""
        return frames_from_quaternions(self.quaternions)

    def export_quats(self, encoding: Optional[Any] = None) -> np.ndarray:
        """Packed quaternions in ``"float"``, ``"half"`` or ``"short"`` encoding."""
        if encoding is None:
            encoding = self._default_encoding
        return encode_quats(pack_handedness(self._quats, self._handedness), encoding)

    def get_quats_as_float(self) -> np.ndarray:
        return self.export_quats("float")

    def get_quats_as_half(self) -> np.ndarray:
        return self.export_quats("half")

    def get_quats_as_short(self) -> np.ndarray:
        return self.export_quats("short")

    def __repr__(self) -> str:
        mirrored = int(np.count_nonzero(self._handedness < 0))
        return (f"OrientationTable(vertices={self.vertex_count}, "
                f"strategy={self._strategy!r}, mirrored={mirrored})")


def validate_frames(table: OrientationTable, tolerance: float = 1e-3) -> Dict[str, Any]:
    """Validate decoded frames for correctness.

    Checks that tangent, bitangent and normal are unit length, mutually
    orthogonal, and that ``cross(T, B)`` agrees with ``N`` up to the stored
    handedness.

    Parameters
    ----------
    table : OrientationTable
        Result of a builder run.
    tolerance : float, default 1e-3
        Numerical tolerance for every check.

    Returns
    -------
    Dict[str, Any]
        - 'valid': bool - True if all checks pass
        - 'errors': List[str] - one message per failed check
        - 'unit_length_ok': bool
        - 'orthogonal_ok': bool
        - 'handedness_ok': bool

    Examples
    --------
    >>> results = validate_frames(table)
    >>> if not results['valid']:
    ...     for error in results['errors']:
    ...         print(f"Error: {error}")
    """
    errors: List[str] = []
    unit_length_ok = True
    orthogonal_ok = True
    handedness_ok = True

    t, b, n = table.frames()
    signs = table.handedness.astype(np.float64)

    for label, vectors in (("Tangent", t), ("Bitangent", b), ("Normal", n)):
        lengths = np.linalg.norm(vectors, axis=1)
        for i in np.flatnonzero(np.abs(lengths - 1.0) > tolerance):
            errors.append(f"Vertex {i}: {label} length {lengths[i]:.6f} not unit")
            unit_length_ok = False

    for label, u, v in (("Tangent-normal", t, n), ("Tangent-bitangent", t, b), ("Bitangent-normal", b, n)):
        dots = np.abs(np.einsum("ij,ij->i", u, v))
        for i in np.flatnonzero(dots > tolerance):
            errors.append(f"Vertex {i}: {label} dot product {dots[i]:.6f} > tolerance")
            orthogonal_ok = False

    computed = np.where(np.einsum("ij,ij->i", np.cross(t, b), n) >= 0.0, 1.0, -1.0)
    for i in np.flatnonzero(computed != signs):
        errors.append(f"Vertex {i}: Handedness {int(signs[i])} inconsistent with cross product")
        handedness_ok = False

    return {
        'valid': len(errors) == 0,
        'errors': errors,
        'unit_length_ok': unit_length_ok,
        'orthogonal_ok': orthogonal_ok,
        'handedness_ok': handedness_ok,
    }
