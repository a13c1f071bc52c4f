from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, NamedTuple

import numpy as np
import pandas as pd

from .contact_map import as_contact_matrix
from .laplacian import (
    LAPLACIAN_EPSILON,
    leading_eigenvectors,
    normalize_eigenvectors,
    normalized_affinity,
    unit_circle_projection,
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 15
DEFAULT_GAP_THRESHOLD = 0.2

SCORE_COLUMNS = ["Sample", "Coordinate", "Index", "Boundary"]


class BoundaryScore(NamedTuple):
    sample_id: str
    coordinate: int
    index: int
    score: float


@dataclass(frozen=True)
class BoundaryScores:
    """Per-bin boundary scores of one sample, in ascending coordinate order.

    ``indices`` are 0-based positions in the unfiltered input matrix.
    """

    sample_id: str
    coordinates: np.ndarray
    indices: np.ndarray
    scores: np.ndarray

    def __post_init__(self) -> None:
        for name, dtype in (("coordinates", np.int64), ("indices", np.int64), ("scores", np.float64)):
            arr = np.array(getattr(self, name), dtype=dtype)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    def __len__(self) -> int:
        return int(self.scores.shape[0])

    def __iter__(self) -> Iterator[BoundaryScore]:
        for c, i, s in zip(self.coordinates, self.indices, self.scores):
            yield BoundaryScore(self.sample_id, int(c), int(i), float(s))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "Sample": self.sample_id,
                "Coordinate": self.coordinates,
                "Index": self.indices,
                "Boundary": self.scores,
            },
            columns=SCORE_COLUMNS,
        )


def informative_bins(values: np.ndarray) -> np.ndarray:
    """Indices of bins whose column has at least one non-zero entry."""
    return np.flatnonzero(np.any(np.asarray(values) != 0, axis=0))


def iter_windows(n_bins: int, window_size: int) -> Iterator[tuple[int, int]]:
    """Yield half-open ``[start, end)`` windows covering ``n_bins`` bins.

    Windows do not overlap. Whenever the window after the current one would run
    past the end, the current one is stretched to the end instead, so the last
    window holds between ``window_size`` and ``2 * window_size - 1`` bins (or the
    whole matrix when it is smaller than that).
    """
    if window_size <= 0:
        raise ValueError("window_size must be positive")

    start = 0
    end = window_size
    if end + window_size > n_bins:
        end = n_bins

    while start < end:
        yield start, end
        if end >= n_bins:
            return
        start = end
        end = start + window_size
        if end + window_size > n_bins:
            end = n_bins


def window_boundary_scores(
    sub: np.ndarray,
    *,
    gap_threshold: float = DEFAULT_GAP_THRESHOLD,
    epsilon: float = LAPLACIAN_EPSILON,
) -> tuple[np.ndarray, np.ndarray]:
    """Score one window of a contact matrix.

    Returns:
        kept: window-local positions of the scored bins
        scores: distance of each kept bin to its predecessor on the unit circle

    Both arrays are empty when fewer than two bins pass the gap filter. The
    first surviving bin has no predecessor and is never part of the output.
    """

    sub = np.asarray(sub, dtype=np.float64)
    nonzero_frac = np.count_nonzero(sub, axis=0) / sub.shape[0]
    kept = np.flatnonzero(nonzero_frac >= gap_threshold)
    if kept.size <= 1:
        return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.float64)

    M = normalized_affinity(sub[np.ix_(kept, kept)], epsilon=epsilon)
    _, evecs = leading_eigenvectors(M, k=2)
    circle = unit_circle_projection(normalize_eigenvectors(evecs))

    dists = np.sqrt(np.sum((circle[1:] - circle[:-1]) ** 2, axis=1))
    return kept[1:], dists


def score_matrix(
    matrix,
    *,
    window_size: int = DEFAULT_WINDOW_SIZE,
    gap_threshold: float = DEFAULT_GAP_THRESHOLD,
    epsilon: float = LAPLACIAN_EPSILON,
    sample_id: str = "Sample 1",
) -> BoundaryScores:
    """Slide a spectral window along one contact matrix and score every bin.

    Empty bins are dropped before windowing. Windows whose gap filter leaves
    fewer than two bins contribute nothing, so their coordinates are simply
    absent from the result for this sample. Degenerate embeddings give NaN
    scores rather than errors.
    """

    # Bare arrays are labeled by bin position.
    cm = as_contact_matrix(matrix, resolution=1)

    keep = informative_bins(cm.values)
    filt = cm.values[np.ix_(keep, keep)]
    n = filt.shape[0]

    indices = []
    scores = []
    for start, end in iter_windows(n, int(window_size)):
        kept, dists = window_boundary_scores(
            filt[start:end, start:end],
            gap_threshold=gap_threshold,
            epsilon=epsilon,
        )
        if kept.size == 0:
            logger.debug(
                "%s: window [%d, %d) has fewer than two informative bins; skipped",
                sample_id,
                start,
                end,
            )
            continue
        indices.append(keep[start + kept])
        scores.append(dists)

    if indices:
        idx = np.concatenate(indices)
        vals = np.concatenate(scores)
    else:
        idx = np.empty(0, dtype=np.int64)
        vals = np.empty(0, dtype=np.float64)

    return BoundaryScores(
        sample_id=sample_id,
        coordinates=cm.coordinates[idx],
        indices=idx,
        scores=vals,
    )
