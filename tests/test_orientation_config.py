# tests/test_orientation_config.py
# Tests for orientation config parsing and validation
# Exists to ensure tolerances load from mappings and JSON files and reject bad values consistently
# RELEVANT FILES: python/surfaceorient/config.py, python/surfaceorient/builder.py

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from surfaceorient import OrientationConfig, SurfaceOrientationBuilder, load_orientation_config
from surfaceorient.config import SNORM16_STEP


def test_orientation_config_defaults_roundtrip() -> None:
    cfg = load_orientation_config()
    data = cfg.to_dict()
    assert data["default_encoding"] == "float"
    assert data["w_bias"] == pytest.approx(SNORM16_STEP)
    assert OrientationConfig.from_mapping(data).to_dict() == data


def test_orientation_config_mapping_and_overrides() -> None:
    cfg = load_orientation_config(
        {"uv_epsilon": 1e-8, "encoding": "F16"},
        overrides={"tangent_epsilon": 1e-6},
    )
    assert cfg.uv_epsilon == pytest.approx(1e-8)
    assert cfg.tangent_epsilon == pytest.approx(1e-6)
    assert cfg.default_encoding == "half"


def test_orientation_config_json_path(tmp_path: Path) -> None:
    config_path = tmp_path / "orientation.json"
    config_path.write_text(
        json.dumps({"orientation": {"default_encoding": "snorm16", "area_epsilon": 0.0}}),
        encoding="utf-8",
    )
    cfg = load_orientation_config(config_path)
    assert cfg.default_encoding == "short"
    assert cfg.area_epsilon == 0.0

    flat_path = tmp_path / "flat.json"
    flat_path.write_text(json.dumps({"w_bias": 0.001}), encoding="utf-8")
    assert load_orientation_config(str(flat_path)).w_bias == pytest.approx(0.001)


def test_orientation_config_copy_is_independent() -> None:
    base = OrientationConfig()
    cfg = load_orientation_config(base, overrides={"uv_epsilon": 0.5})
    assert cfg.uv_epsilon == pytest.approx(0.5)
    assert base.uv_epsilon == pytest.approx(1e-12)


@pytest.mark.parametrize(
    "data",
    [
        {"uv_epsilon": -1.0},
        {"area_epsilon": float("nan")},
        {"tangent_epsilon": float("inf")},
        {"w_bias": 0.5},
        {"w_bias": -0.1},
    ],
)
def test_orientation_config_rejects_bad_values(data) -> None:
    with pytest.raises(ValueError):
        load_orientation_config(data)


def test_orientation_config_rejects_unknown_encoding() -> None:
    with pytest.raises(ValueError, match="Unknown quaternion encoding"):
        load_orientation_config({"default_encoding": "float64"})


def test_orientation_config_rejects_unknown_file_type(tmp_path: Path) -> None:
    path = tmp_path / "orientation.yaml"
    path.write_text("uv_epsilon: 1.0\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported orientation config file format"):
        load_orientation_config(path)


def test_orientation_config_rejects_non_object_json(tmp_path: Path) -> None:
    path = tmp_path / "orientation.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(TypeError):
        load_orientation_config(path)


def test_orientation_config_rejects_bad_source_type() -> None:
    with pytest.raises(TypeError):
        load_orientation_config(42)


def test_builder_uses_config_default_encoding() -> None:
    normals = np.tile(np.array([0.0, 0.0, 1.0], dtype=np.float32), (2, 1))
    table = (
        SurfaceOrientationBuilder({"default_encoding": "short"})
        .vertex_count(2)
        .normals(normals)
        .build()
    )
    exported = table.export_quats()
    assert exported.dtype == np.int16
    assert exported.tolist() == [[0, 0, 0, 32767], [0, 0, 0, 32767]]


def test_larger_uv_epsilon_skips_small_uv_faces(unit_quad) -> None:
    # Shrunk UVs put every face determinant near 1e-8.
    uvs = unit_quad["uvs"] * 1e-4
    table = (
        SurfaceOrientationBuilder({"uv_epsilon": 1e-6})
        .vertex_count(4)
        .positions(unit_quad["positions"])
        .normals(unit_quad["normals"])
        .uvs(uvs)
        .triangles_uint16(unit_quad["triangles"])
        .build()
    )
    # All faces skipped: tangents fall back to the least aligned axis (x) with positive handedness.
    assert np.allclose(table.export_quats("float"), [0.0, 0.0, 0.0, 1.0], atol=1e-6)
    assert np.all(table.handedness == 1)


def test_orientation_config_rejects_zero_w_bias() -> None:
    with pytest.raises(ValueError, match="w_bias"):
        load_orientation_config({"w_bias": 0.0})


def test_mirrored_half_turn_keeps_handedness_with_tiny_bias() -> None:
    # Tangent -X about a +Z normal is a half turn, so the raw w is zero.
    table = (
        SurfaceOrientationBuilder({"w_bias": 1e-30})
        .vertex_count(1)
        .normals([[0.0, 0.0, 1.0]])
        .tangents([[-1.0, 0.0, 0.0, -1.0]])
        .build()
    )
    packed = table.export_quats("float")
    assert packed[0, 3] < 0.0
    t, b, n = table.frames()
    assert np.allclose(t, [[-1.0, 0.0, 0.0]], atol=1e-6)
    assert np.allclose(b, [[0.0, 1.0, 0.0]], atol=1e-6)
    assert np.allclose(n, [[0.0, 0.0, 1.0]], atol=1e-6)
