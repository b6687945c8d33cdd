from __future__ import annotations


class LBPError(ValueError):
    """Base class for descriptor and classifier configuration errors."""


class InvalidGeometryError(LBPError):
    """Raised when the image or region-cell configuration yields no usable grid."""


class LengthMismatchError(LBPError):
    """Raised when two feature vectors of different dimensionality are compared."""


class EmptyReferenceSetError(LBPError):
    """Raised when classification is attempted against zero references."""
