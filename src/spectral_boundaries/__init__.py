"""Spectral TAD boundary engine.

Core idea: windowed Laplacian eigenvectors of a contact matrix place bins on a
unit circle; jumps between neighbouring bins mark domain boundaries, which are
then compared across a time course.
"""

from .aggregate import ScoreTable, aggregate
from .contact_map import ContactMatrix, as_contact_matrix, infer_resolution, load_contact_matrix
from .errors import (
    InvalidGroupingError,
    InvalidInputError,
    InvalidParameterError,
    NoSharedRegionsError,
    SpectralBoundaryError,
)
from .pipeline import time_compare, write_outputs
from .scoring import BoundaryScore, BoundaryScores, score_matrix
from .temporal import TemporalCategory, classify

__all__ = [
    "BoundaryScore",
    "BoundaryScores",
    "ContactMatrix",
    "InvalidGroupingError",
    "InvalidInputError",
    "InvalidParameterError",
    "NoSharedRegionsError",
    "ScoreTable",
    "SpectralBoundaryError",
    "TemporalCategory",
    "aggregate",
    "as_contact_matrix",
    "classify",
    "infer_resolution",
    "load_contact_matrix",
    "score_matrix",
    "time_compare",
    "write_outputs",
]
