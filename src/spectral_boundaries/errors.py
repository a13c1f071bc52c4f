from __future__ import annotations


class SpectralBoundaryError(ValueError):
    """Base class for errors raised by spectral_boundaries."""


class InvalidInputError(SpectralBoundaryError):
    """Raised when a contact matrix is malformed (shape, labels, entries)."""


class NoSharedRegionsError(SpectralBoundaryError):
    """Raised when no coordinate is scored in every sample."""


class InvalidGroupingError(SpectralBoundaryError):
    """Raised when the grouping labels do not line up with the input matrices."""


class InvalidParameterError(SpectralBoundaryError):
    """Raised when a run parameter is outside its valid range."""
