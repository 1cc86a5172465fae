# Ensure `import surfaceorient` works from a fresh clone:
# put repo/python on sys.path so the package is importable without prior install.
import sys
from pathlib import Path

import numpy as np
import pytest


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _ensure_python_path():
    pkg_dir = _repo_root() / "python"
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


_ensure_python_path()


def pytest_configure(config):
    """Register markers used across the suite."""
    config.addinivalue_line(
        "markers", "geometry: tests that build orientation tables from mesh geometry"
    )
    config.addinivalue_line(
        "markers", "encoding: tests for quaternion export encodings"
    )


@pytest.fixture
def unit_quad():
    """Two-triangle unit square in the XY plane, UVs equal to XY, normals +Z."""
    positions = np.array([
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [1.0, 1.0, 0.0],
        [0.0, 1.0, 0.0],
    ], dtype=np.float32)
    uvs = positions[:, :2].copy()
    normals = np.tile(np.array([0.0, 0.0, 1.0], dtype=np.float32), (4, 1))
    triangles = np.array([[0, 1, 2], [0, 2, 3]], dtype=np.uint16)
    return {"positions": positions, "uvs": uvs, "normals": normals, "triangles": triangles}


@pytest.fixture
def random_frames():
    """Seeded random unit normals with tangents perpendicular-ish to them."""
    rng = np.random.default_rng(1234)
    normals = rng.normal(size=(64, 3))
    normals /= np.linalg.norm(normals, axis=1)[:, None]
    tangents = rng.normal(size=(64, 3))
    return normals.astype(np.float32), tangents.astype(np.float32)
