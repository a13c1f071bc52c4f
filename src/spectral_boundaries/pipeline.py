from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import pandas as pd

from .aggregate import DEFAULT_Z_THRESHOLD, ScoreTable, aggregate
from .config import TimeCompareConfig
from .contact_map import ContactMatrix, as_contact_matrix, check_finite, resolve_resolution
from .errors import InvalidInputError
from .laplacian import LAPLACIAN_EPSILON
from .reporting import ensure_dir, write_json, write_table
from .scoring import DEFAULT_GAP_THRESHOLD, DEFAULT_WINDOW_SIZE
from .temporal import PRESENCE_CUTOFF, TemporalClassification, classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeCompareResult:
    score_table: ScoreTable
    classification: TemporalClassification
    resolution: float
    config: TimeCompareConfig

    @property
    def tad_bounds(self) -> pd.DataFrame:
        return self.classification.tad_bounds

    @property
    def all_bounds(self) -> pd.DataFrame:
        return self.classification.all_bounds

    @property
    def counts(self) -> dict[str, int]:
        return self.classification.counts


@dataclass(frozen=True)
class TimeCompareOutputs:
    out_dir: Path
    tad_bounds_path: Path
    all_bounds_path: Path
    scores_path: Path
    counts_path: Path
    meta_path: Path


def prepare_matrices(matrices: Sequence, resolution) -> tuple[list[ContactMatrix], float]:
    """Label every input matrix and settle the resolution.

    A numeric resolution labels bare arrays; "auto" is estimated from the labels
    of the first matrix.
    """
    if len(matrices) == 0:
        raise InvalidInputError("At least one contact matrix is required")

    numeric = None if isinstance(resolution, str) else resolution
    prepared = [as_contact_matrix(m, resolution=numeric) for m in matrices]
    for i, m in enumerate(prepared, start=1):
        check_finite(m, f"Contact matrix {i}")

    return prepared, resolve_resolution(prepared[0], resolution)


def time_compare(
    matrices: Sequence,
    resolution: float | str = "auto",
    *,
    z_threshold: float = DEFAULT_Z_THRESHOLD,
    window_size: int = DEFAULT_WINDOW_SIZE,
    gap_threshold: float = DEFAULT_GAP_THRESHOLD,
    groupings: Sequence | None = None,
    presence_cutoff: float = PRESENCE_CUTOFF,
    epsilon: float = LAPLACIAN_EPSILON,
    n_jobs: int | None = None,
) -> TimeCompareResult:
    """Find TAD boundaries across a series of contact matrices and classify their time trend.

    Args:
        matrices: contact matrices in time order (ContactMatrix, labeled DataFrame,
            or bare arrays when ``resolution`` is numeric)
        resolution: bin size, or "auto" to estimate it from coordinate spacing
        groupings: optional group label per matrix; replicates sharing a label are
            merged by their median boundary score

    Returns:
        TimeCompareResult holding the per-sample score table and the temporal
        categories (``tad_bounds``, ``all_bounds``, ``counts``).
    """

    config = TimeCompareConfig(
        resolution=resolution,
        z_threshold=z_threshold,
        window_size=window_size,
        gap_threshold=gap_threshold,
        presence_cutoff=presence_cutoff,
        epsilon=epsilon,
        n_jobs=n_jobs,
    )

    prepared, res = prepare_matrices(matrices, config.resolution)
    logger.info("Scoring %d contact matrices at resolution %s", len(prepared), res)

    table = aggregate(
        prepared,
        window_size=int(config.window_size),
        gap_threshold=float(config.gap_threshold),
        groupings=groupings,
        z_threshold=float(config.z_threshold),
        epsilon=float(config.epsilon),
        n_jobs=config.n_jobs,
    )
    classification = classify(table, presence_cutoff=float(config.presence_cutoff))

    return TimeCompareResult(
        score_table=table,
        classification=classification,
        resolution=res,
        config=config,
    )


def write_outputs(result: TimeCompareResult, out_dir: str | Path) -> TimeCompareOutputs:
    out_dir = ensure_dir(out_dir)

    tad_bounds_path = write_table(result.tad_bounds, out_dir / "tad_bounds.tsv")
    all_bounds_path = write_table(result.all_bounds, out_dir / "all_bounds.tsv")
    scores_path = write_table(result.score_table.scores, out_dir / "boundary_scores.tsv")

    counts_path = out_dir / "category_counts.json"
    write_json(result.counts, counts_path)

    meta = dict(result.config.to_dict())
    meta.update(
        {
            "resolution": result.resolution,
            "samples": list(result.score_table.samples),
            "baseline": result.score_table.baseline,
            "n_regions": int(len(result.all_bounds)),
            "n_boundaries": int(len(result.tad_bounds)),
            "n_differential": int(result.score_table.scores["Differential"].sum()),
        }
    )
    meta_path = out_dir / "meta.json"
    write_json(meta, meta_path)

    return TimeCompareOutputs(
        out_dir=Path(out_dir),
        tad_bounds_path=tad_bounds_path,
        all_bounds_path=all_bounds_path,
        scores_path=scores_path,
        counts_path=counts_path,
        meta_path=meta_path,
    )
