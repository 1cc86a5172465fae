# python/surfaceorient/__init__.py
# Public API for the surface orientation engine
# Exists to expose the builder, the result table and the export helpers from one import
# RELEVANT FILES: python/surfaceorient/builder.py, python/surfaceorient/table.py, python/surfaceorient/encoding.py
from .builder import SurfaceOrientationBuilder, build_orientation
from .attributes import MeshAttributes
from .config import OrientationConfig, load_orientation_config
from .encoding import decode_quats, encode_quats
from .errors import (
    DegenerateMeshError,
    InvalidArgumentError,
    InvalidStateError,
    OrientationError,
)
from .octasphere import OctasphereMesh, generate_octasphere
from .quaternion import frames_from_quaternions
from .table import OrientationTable, TangentFrame, validate_frames

__version__ = "0.1.0"

__all__ = [
    "SurfaceOrientationBuilder",
    "build_orientation",
    "MeshAttributes",
    "OrientationConfig",
    "load_orientation_config",
    "OrientationTable",
    "TangentFrame",
    "validate_frames",
    "encode_quats",
    "decode_quats",
    "frames_from_quaternions",
    "OctasphereMesh",
    "generate_octasphere",
    "OrientationError",
    "InvalidArgumentError",
    "InvalidStateError",
    "DegenerateMeshError",
]
