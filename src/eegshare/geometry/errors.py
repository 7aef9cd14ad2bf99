"""
Geometry error types.

All of them subclass `ValueError` so callers that only care about "bad input"
can keep catching the builtin, while the analysis layer can tell the
per-candidate failures apart.
"""

from __future__ import annotations


class GeometryError(ValueError):
    """Base class for geometry failures."""


class InvalidRadius(GeometryError):
    """Buffer radius is not a positive, finite number of meters."""


class DegenerateGeometry(GeometryError):
    """A ring or polygon has zero area or broken outer/hole nesting."""


class ClippingFailure(GeometryError):
    """The boundary walk of an intersection could not be closed."""
