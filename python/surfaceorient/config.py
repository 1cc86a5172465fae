# python/surfaceorient/config.py
# Numeric tolerances and export defaults for the orientation engine
# Exists to keep epsilon choices in one validated place instead of scattered literals
# RELEVANT FILES: python/surfaceorient/builder.py, python/surfaceorient/strategies.py, python/surfaceorient/encoding.py, tests/test_orientation_config.py
from __future__ import annotations

import copy
import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

ConfigSource = Union["OrientationConfig", Mapping[str, Any], str, Path, None]

_ENCODINGS: Dict[str, str] = {
    "float": "float",
    "float32": "float",
    "f32": "float",
    "half": "half",
    "float16": "half",
    "f16": "half",
    "short": "short",
    "snorm16": "short",
    "int16": "short",
    "i16": "short",
}

# Smallest positive step of a snorm16 component.
SNORM16_STEP = 1.0 / 32767.0


def _normalize_key(value: Any) -> str:
    return "".join(
        c
        for c in str(value).strip().lower()
        if c not in {"-", "_", " ", "."}
    )


def _normalize_choice(value: Any, mapping: Mapping[str, str], label: str) -> str:
    key = _normalize_key(value)
    if key not in mapping:
        raise ValueError(f"Unknown {label}: {value!r}")
    return mapping[key]


def normalize_encoding(value: Any) -> str:
    """Map an encoding name or alias onto ``"float"``, ``"half"`` or ``"short"``."""
    return _normalize_choice(value, _ENCODINGS, "quaternion encoding")


@dataclass
class OrientationConfig:
    uv_epsilon: float = 1e-12
    area_epsilon: float = 1e-20
    tangent_epsilon: float = 1e-10
    default_encoding: str = "float"
    w_bias: float = SNORM16_STEP

    def to_dict(self) -> dict:
        return {
            "uv_epsilon": self.uv_epsilon,
            "area_epsilon": self.area_epsilon,
            "tangent_epsilon": self.tangent_epsilon,
            "default_encoding": self.default_encoding,
            "w_bias": self.w_bias,
        }

    def copy(self) -> "OrientationConfig":
        return copy.deepcopy(self)

    def validate(self) -> None:
        for name in ("uv_epsilon", "area_epsilon", "tangent_epsilon"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0.0:
                raise ValueError(f"{name} must be a finite non-negative number, got {value!r}")
        # w must stay nonzero or a mirrored half turn loses its sign.
        if not math.isfinite(self.w_bias) or not (0.0 < self.w_bias < 0.5):
            raise ValueError(f"w_bias must be within (0, 0.5), got {self.w_bias!r}")
        self.default_encoding = normalize_encoding(self.default_encoding)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default: Optional["OrientationConfig"] = None) -> "OrientationConfig":
        base = copy.deepcopy(default) if default is not None else cls()
        if "uv_epsilon" in data:
            base.uv_epsilon = float(data["uv_epsilon"])
        if "area_epsilon" in data:
            base.area_epsilon = float(data["area_epsilon"])
        if "tangent_epsilon" in data:
            base.tangent_epsilon = float(data["tangent_epsilon"])
        encoding = data.get("default_encoding", data.get("encoding"))
        if encoding is not None:
            base.default_encoding = normalize_encoding(encoding)
        if "w_bias" in data:
            base.w_bias = float(data["w_bias"])
        return base


def _load_from_path(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix in {".json", ""}:
        data = json.loads(text)
    else:
        raise ValueError(f"Unsupported orientation config file format: {path}")
    # Accept either a bare mapping or one nested under "orientation".
    if isinstance(data, Mapping) and isinstance(data.get("orientation"), Mapping):
        data = data["orientation"]
    if not isinstance(data, Mapping):
        raise TypeError(f"orientation config in {path} must be a JSON object")
    return data


def load_orientation_config(config: ConfigSource = None, overrides: Optional[Mapping[str, Any]] = None) -> OrientationConfig:
    if isinstance(config, OrientationConfig):
        cfg = config.copy()
    elif isinstance(config, Mapping):
        cfg = OrientationConfig.from_mapping(config)
    elif isinstance(config, (str, Path)):
        cfg = OrientationConfig.from_mapping(_load_from_path(Path(config)))
    elif config is None:
        cfg = OrientationConfig()
    else:
        raise TypeError("config must be OrientationConfig, mapping, path, or None")

    if overrides:
        cfg = OrientationConfig.from_mapping(overrides, cfg)
    cfg.validate()
    return cfg
