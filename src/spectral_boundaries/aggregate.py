from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import reduce
from typing import Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .errors import InvalidGroupingError, NoSharedRegionsError
from .laplacian import LAPLACIAN_EPSILON
from .scoring import DEFAULT_GAP_THRESHOLD, DEFAULT_WINDOW_SIZE, BoundaryScores, score_matrix

logger = logging.getLogger(__name__)

DEFAULT_Z_THRESHOLD = 2.0

# Column names of the wide table that sample or group labels must not take.
RESERVED_COLUMNS = frozenset({"Coordinate", "Consensus_Score", "Category"})


@dataclass(frozen=True)
class ScoreTable:
    """Boundary scores of every sample on the shared coordinate domain.

    Attributes:
        scores: long frame (Sample, Coordinate, Boundary, Diff_Score, TAD_Score, Differential)
        wide: one row per coordinate, one TAD_Score column per sample, then Consensus_Score
        samples: sample (or group) labels in axis order
        baseline: label the differential scores are taken against
    """

    scores: pd.DataFrame
    wide: pd.DataFrame
    samples: tuple[str, ...]
    baseline: str

    @property
    def coordinates(self) -> np.ndarray:
        return self.wide["Coordinate"].to_numpy()

    @property
    def differential_points(self) -> pd.DataFrame:
        return self.scores[self.scores["Differential"]].reset_index(drop=True)


def sample_ids(n: int) -> list[str]:
    return [f"Sample {i}" for i in range(1, n + 1)]


def score_samples(
    matrices: Sequence,
    *,
    window_size: int = DEFAULT_WINDOW_SIZE,
    gap_threshold: float = DEFAULT_GAP_THRESHOLD,
    epsilon: float = LAPLACIAN_EPSILON,
    n_jobs: int | None = None,
) -> list[BoundaryScores]:
    """Score every matrix independently; results come back in input order."""
    ids = sample_ids(len(matrices))
    if n_jobs is None:
        n_jobs = max(1, min(len(matrices), os.cpu_count() or 1))

    kwargs = dict(window_size=window_size, gap_threshold=gap_threshold, epsilon=epsilon)
    if n_jobs == 1 or len(matrices) <= 1:
        return [score_matrix(m, sample_id=s, **kwargs) for m, s in zip(matrices, ids)]

    return Parallel(n_jobs=n_jobs, prefer="processes")(
        delayed(score_matrix)(m, sample_id=s, **kwargs) for m, s in zip(matrices, ids)
    )


def shared_coordinates(samples: Sequence[BoundaryScores]) -> np.ndarray:
    """Coordinates scored in every sample, ascending."""
    if not samples:
        return np.empty(0, dtype=np.int64)
    return reduce(np.intersect1d, (s.coordinates for s in samples))


def collapse_groups(scores: pd.DataFrame, mapping: dict[str, str]) -> pd.DataFrame:
    """Relabel samples by group and take the median raw score per (group, coordinate)."""
    relabeled = scores.assign(Sample=scores["Sample"].map(mapping))
    return (
        relabeled.groupby(["Sample", "Coordinate"], sort=False)["Boundary"]
        .median()
        .reset_index()
    )


def standardize(values) -> np.ndarray:
    """Z-score against the population mean/std of the defined values.

    Undefined inputs stay undefined; a zero or undefined spread leaves nothing
    defined.
    """
    x = np.asarray(values, dtype=np.float64)
    finite = np.isfinite(x)
    if not finite.any():
        return np.full_like(x, np.nan)
    mu = x[finite].mean()
    sd = x[finite].std()
    if not np.isfinite(sd) or sd == 0:
        return np.full_like(x, np.nan)
    return (x - mu) / sd


def build_score_table(
    scores: pd.DataFrame,
    samples: Sequence[str],
    *,
    z_threshold: float = DEFAULT_Z_THRESHOLD,
) -> ScoreTable:
    """Standardize raw boundary strengths and flag differential boundaries.

    ``scores`` is a long frame with Sample, Coordinate and Boundary columns whose
    samples all share one coordinate domain.
    """

    samples = [str(s) for s in samples]
    baseline = samples[0]

    order = pd.Categorical(scores["Sample"], categories=samples, ordered=True)
    long = (
        scores.assign(Sample=order)
        .sort_values(["Sample", "Coordinate"], kind="stable")
        .reset_index(drop=True)
    )
    long["Sample"] = long["Sample"].astype(str)
    long = long[["Sample", "Coordinate", "Boundary"]]

    base = long[long["Sample"] == baseline].set_index("Coordinate")["Boundary"]
    diff = long["Coordinate"].map(base).to_numpy(dtype=np.float64) - long["Boundary"].to_numpy(
        dtype=np.float64
    )
    diff_z = standardize(diff)
    tad_z = standardize(long["Boundary"])

    with np.errstate(invalid="ignore"):
        flagged = np.abs(diff_z) > float(z_threshold)
    flagged &= np.isfinite(diff_z)
    flagged &= (long["Sample"] != baseline).to_numpy()

    long = long.assign(Diff_Score=diff_z, TAD_Score=tad_z, Differential=flagged)

    wide = long.pivot(index="Coordinate", columns="Sample", values="TAD_Score")
    wide = wide.reindex(columns=samples).sort_index().reset_index()
    wide.columns.name = None
    wide["Consensus_Score"] = wide[samples].median(axis=1, skipna=True)

    return ScoreTable(scores=long, wide=wide, samples=tuple(samples), baseline=baseline)


def aggregate(
    matrices: Sequence,
    *,
    window_size: int = DEFAULT_WINDOW_SIZE,
    gap_threshold: float = DEFAULT_GAP_THRESHOLD,
    groupings: Sequence | None = None,
    z_threshold: float = DEFAULT_Z_THRESHOLD,
    epsilon: float = LAPLACIAN_EPSILON,
    n_jobs: int | None = None,
) -> ScoreTable:
    """Score a series of contact matrices and join them on their shared coordinates.

    Args:
        matrices: contact matrices in sample order
        groupings: optional group label per matrix; groups are summarized by the
            median raw score and ordered by first occurrence
        z_threshold: absolute z-score of the baseline difference above which a
            boundary is differential
        n_jobs: worker processes for per-sample scoring (default: one per matrix,
            bounded by the core count)
    """

    if groupings is not None:
        if len(groupings) != len(matrices):
            raise InvalidGroupingError(
                f"groupings has {len(groupings)} labels for {len(matrices)} matrices"
            )
        clash = sorted({str(g) for g in groupings} & RESERVED_COLUMNS)
        if clash:
            raise InvalidGroupingError(f"Group labels may not be reserved column names: {clash}")

    per_sample = score_samples(
        matrices,
        window_size=window_size,
        gap_threshold=gap_threshold,
        epsilon=epsilon,
        n_jobs=n_jobs,
    )

    shared = shared_coordinates(per_sample)
    if shared.size == 0:
        raise NoSharedRegionsError("No coordinate has a boundary score in every sample")
    logger.info("%d regions shared across %d samples", shared.size, len(per_sample))

    scores = pd.concat(
        [s.to_frame() for s in per_sample],
        ignore_index=True,
    )
    scores = scores[scores["Coordinate"].isin(shared)].drop(columns="Index")

    samples = [s.sample_id for s in per_sample]
    if groupings is not None:
        labels = [str(g) for g in groupings]
        scores = collapse_groups(scores, dict(zip(samples, labels)))
        samples = list(dict.fromkeys(labels))

    return build_score_table(scores, samples, z_threshold=z_threshold)
