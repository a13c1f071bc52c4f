from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from .errors import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactMatrix:
    """Dense symmetric contact matrix labeled by bin start coordinates."""

    values: np.ndarray
    coordinates: np.ndarray

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float64)
        coords = np.array(self.coordinates, dtype=np.int64)

        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise InvalidInputError(f"Contact matrix must be square; got shape {values.shape}")
        if coords.ndim != 1 or coords.shape[0] != values.shape[0]:
            raise InvalidInputError(
                f"Expected {values.shape[0]} coordinate labels; got {coords.shape}"
            )
        if coords.size > 1 and np.any(np.diff(coords) <= 0):
            raise InvalidInputError("Coordinate labels must be strictly increasing")

        values.setflags(write=False)
        coords.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "coordinates", coords)

    @property
    def n_bins(self) -> int:
        return int(self.values.shape[0])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, index=self.coordinates, columns=self.coordinates)


def infer_resolution(coordinates) -> int:
    """Estimate bin size as the most frequent gap between consecutive coordinates.

    Ties go to the smallest gap.
    """
    coords = np.unique(np.asarray(coordinates, dtype=np.int64))
    gaps = np.diff(coords)
    gaps = gaps[gaps > 0]
    if gaps.size == 0:
        raise InvalidInputError("Need at least two distinct coordinates to estimate resolution")

    values, counts = np.unique(gaps, return_counts=True)
    # np.unique sorts ascending, so argmax picks the smallest of the tied gaps
    return int(values[np.argmax(counts)])


def as_contact_matrix(data, *, resolution: float | None = None) -> ContactMatrix:
    """Coerce a labeled DataFrame, bare array or ContactMatrix to a ContactMatrix.

    Args:
        data: ContactMatrix, DataFrame whose column labels are bin starts, or 2D array
        resolution: bin size used to label a bare array (ignored otherwise)
    """

    if isinstance(data, ContactMatrix):
        return data

    if isinstance(data, pd.DataFrame):
        try:
            cols = np.asarray(data.columns, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidInputError("Column labels must be numeric bin start coordinates") from e

        if data.shape[0] != data.shape[1]:
            raise InvalidInputError(f"Contact matrix must be square; got shape {data.shape}")

        default_index = isinstance(data.index, pd.RangeIndex) and data.index.equals(
            pd.RangeIndex(data.shape[0])
        )
        if not default_index:
            try:
                rows = np.asarray(data.index, dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise InvalidInputError("Row labels must be numeric bin start coordinates") from e
            if not np.array_equal(rows, cols):
                raise InvalidInputError("Row and column coordinate labels differ")

        try:
            values = data.to_numpy(dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidInputError("Contact matrix contains non-numeric entries") from e
        if not np.all(np.isfinite(cols)) or np.any(cols != np.round(cols)):
            raise InvalidInputError("Coordinate labels must be whole-number bin starts")
        return ContactMatrix(values=values, coordinates=cols.astype(np.int64))

    M = np.asarray(data)
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise InvalidInputError(f"Contact matrix must be square; got shape {M.shape}")
    if resolution is None or isinstance(resolution, str):
        raise InvalidInputError("An unlabeled matrix needs a numeric resolution to label its bins")
    coords = np.arange(M.shape[0], dtype=np.int64) * int(resolution)
    return ContactMatrix(values=M, coordinates=coords)


def resolve_resolution(matrix: ContactMatrix, resolution) -> float:
    if isinstance(resolution, str):
        if resolution.lower() != "auto":
            raise InvalidInputError(f"Unknown resolution {resolution!r}; expected a number or 'auto'")
        logger.info("Estimating resolution")
        return infer_resolution(matrix.coordinates)
    return resolution


def check_finite(matrix: ContactMatrix, label: str = "Contact matrix") -> None:
    if not np.all(np.isfinite(matrix.values)):
        raise InvalidInputError(f"{label} contains non-finite entries")


def load_contact_matrix(path: str | Path, *, resolution: float | None = None) -> ContactMatrix:
    """Load a dense contact matrix.

    Supported:
      - .tsv/.txt/.csv labeled table: header = bin starts, first column = bin starts
      - .npy dense square matrix (bins labeled from ``resolution``)
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))

    suf = path.suffix.lower()
    if suf == ".npy":
        return as_contact_matrix(np.load(path), resolution=resolution)

    if suf in {".tsv", ".txt", ".csv"}:
        sep = "," if suf == ".csv" else "\t"
        df = pd.read_csv(path, sep=sep, index_col=0)
        return as_contact_matrix(df, resolution=resolution)

    raise ValueError(f"Unsupported contact matrix format: {path}")
