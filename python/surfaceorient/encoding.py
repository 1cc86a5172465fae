"""
Export encodings for packed tangent-frame quaternions.

``float`` keeps four float32 components, ``half`` rounds them to the nearest
float16, ``short`` maps [-1, 1] onto snorm16 [-32767, 32767]. All components
are ordered (x, y, z, w).
"""

from __future__ import annotations

from typing import Any, Dict

import numpy as np

from .config import normalize_encoding

SNORM16_MAX = 32767

QUAT_DTYPES: Dict[str, np.dtype] = {
    "float": np.dtype(np.float32),
    "half": np.dtype(np.float16),
    "short": np.dtype(np.int16),
}


def encode_quats(quats: np.ndarray, encoding: Any = "float") -> np.ndarray:
    """Encode ``(N, 4)`` packed quaternions into a new array.

    Parameters
    ----------
    quats : np.ndarray
        Packed quaternions, components in [-1, 1].
    encoding : str
        ``"float"``, ``"half"`` or ``"short"`` (aliases such as ``"f16"`` or
        ``"snorm16"`` are accepted).

    Returns
    -------
    np.ndarray
        ``(N, 4)`` array of float32, float16 or int16.
    """
    name = normalize_encoding(encoding)
    q = np.asarray(quats, dtype=np.float64).reshape(-1, 4)
    if name == "float":
        return q.astype(np.float32)
    if name == "half":
        return q.astype(np.float16)
    scaled = np.clip(np.round(q * SNORM16_MAX), -SNORM16_MAX, SNORM16_MAX)
    return scaled.astype(np.int16)


def decode_quats(encoded: np.ndarray, encoding: Any = None) -> np.ndarray:
    """Inverse of :func:`encode_quats`, returning float64 ``(N, 4)``.

    When ``encoding`` is omitted it is inferred from the array dtype.
    """
    arr = np.asarray(encoded)
    if encoding is None:
        by_dtype = {dtype: name for name, dtype in QUAT_DTYPES.items()}
        if arr.dtype not in by_dtype:
            raise ValueError(f"Cannot infer quaternion encoding from dtype {arr.dtype}")
        name = by_dtype[arr.dtype]
    else:
        name = normalize_encoding(encoding)
    values = arr.astype(np.float64).reshape(-1, 4)
    if name == "short":
        values = values / SNORM16_MAX
    return values
