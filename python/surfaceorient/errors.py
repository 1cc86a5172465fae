# python/surfaceorient/errors.py
# Exception types raised by the orientation builder and its helpers
# Exists so callers can tell bad input apart from misuse and from unusable meshes
# RELEVANT FILES: python/surfaceorient/builder.py, python/surfaceorient/attributes.py, python/surfaceorient/strategies.py


class OrientationError(Exception):
    """Base class for every failure reported by surfaceorient."""


class InvalidArgumentError(OrientationError, ValueError):
    """A buffer, count or index does not fit the mesh being described."""


class InvalidStateError(OrientationError, RuntimeError):
    """The builder was used out of order (missing data, or already built)."""


class DegenerateMeshError(OrientationError, RuntimeError):
    """Nothing in the mesh can orient it: no normals, no tangents, no usable face."""
