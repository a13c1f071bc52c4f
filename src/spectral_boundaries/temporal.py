from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np
import pandas as pd

from .aggregate import ScoreTable
from .errors import InvalidInputError

logger = logging.getLogger(__name__)

PRESENCE_CUTOFF = 3.0


class TemporalCategory(str, Enum):
    HIGHLY_COMMON = "Highly Common"
    EARLY_APPEARING = "Early Appearing"
    LATE_APPEARING = "Late Appearing"
    EARLY_DISAPPEARING = "Early Disappearing"
    LATE_DISAPPEARING = "Late Disappearing"
    DYNAMIC = "Dynamic"


Rule = Callable[[bool, bool, bool], bool]

# Evaluated top to bottom; the first rule that holds wins. "Highly Common" also
# matches a boundary that is absent at every time point.
CATEGORY_RULES: tuple[tuple[TemporalCategory, Rule], ...] = (
    (TemporalCategory.HIGHLY_COMMON, lambda g1, g2, g4: g1 == g2 and g1 == g4),
    (TemporalCategory.EARLY_APPEARING, lambda g1, g2, g4: g1 != g2 and not g1 and g2 == g4),
    (TemporalCategory.LATE_APPEARING, lambda g1, g2, g4: g1 == g2 and not g1 and g1 != g4),
    (TemporalCategory.EARLY_DISAPPEARING, lambda g1, g2, g4: g1 != g2 and g1 and g2 == g4),
    (TemporalCategory.LATE_DISAPPEARING, lambda g1, g2, g4: g1 == g2 and g1 and g1 != g4),
    (TemporalCategory.DYNAMIC, lambda g1, g2, g4: g1 != g2 and g1 == g4),
)


def assign_category(g1: bool, g2: bool, g4: bool) -> TemporalCategory | None:
    """Category of a boundary given its presence in the first, second and last quartile."""
    for category, rule in CATEGORY_RULES:
        if rule(bool(g1), bool(g2), bool(g4)):
            return category
    return None


def quartile_groups(n_samples: int) -> list[np.ndarray]:
    """Split sample positions 0..n-1 into four contiguous groups.

    Positions are cut at their quartiles. With fewer than four samples each
    group is the single position nearest its quartile, so groups may repeat.
    """
    if n_samples < 1:
        raise InvalidInputError("Need at least one sample to classify boundaries")

    positions = np.arange(n_samples)
    if n_samples < 4:
        return [np.array([int(round(q * (n_samples - 1) / 3))]) for q in range(4)]

    labels = pd.qcut(positions, 4, labels=False)
    return [positions[labels == q] for q in range(4)]


def group_presence(present: np.ndarray, groups: list[np.ndarray]) -> np.ndarray:
    """(n_coords, 4) boolean: at least half of each group's samples hold a boundary."""
    return np.column_stack([present[:, g].mean(axis=1) >= 0.5 for g in groups])


@dataclass(frozen=True)
class TemporalClassification:
    all_bounds: pd.DataFrame
    tad_bounds: pd.DataFrame
    counts: dict[str, int]

    @property
    def categories(self) -> dict[int, TemporalCategory | None]:
        return {
            int(c): (TemporalCategory(v) if isinstance(v, str) else None)
            for c, v in zip(self.all_bounds["Coordinate"], self.all_bounds["Category"])
        }


def classify(table: ScoreTable, presence_cutoff: float = PRESENCE_CUTOFF) -> TemporalClassification:
    """Label each coordinate by how its boundary behaves along the sample axis.

    Args:
        table: aggregated scores; sample columns are taken in axis order
        presence_cutoff: TAD_Score above which a sample holds a boundary

    Returns:
        all_bounds: the wide table with a Category column (None when no rule fits)
        tad_bounds: rows where some sample or the consensus exceeds the cutoff
        counts: coordinates per category among tad_bounds, in rule order
    """

    samples = list(table.samples)
    wide = table.wide

    values = wide[samples].to_numpy(dtype=np.float64)
    with np.errstate(invalid="ignore"):
        present = values > float(presence_cutoff)

    groups = quartile_groups(len(samples))
    summary = group_presence(present, groups)

    labels = [
        assign_category(g1, g2, g4)
        for g1, g2, g4 in zip(summary[:, 0], summary[:, 1], summary[:, 3])
    ]
    all_bounds = wide.assign(Category=[c.value if c is not None else None for c in labels])

    score_cols = samples + ["Consensus_Score"]
    with np.errstate(invalid="ignore"):
        evidence = (all_bounds[score_cols].to_numpy(dtype=np.float64) > float(presence_cutoff)).any(
            axis=1
        )
    tad_bounds = all_bounds[evidence].reset_index(drop=True)

    observed = tad_bounds["Category"].value_counts()
    counts = {c.value: int(observed[c.value]) for c, _ in CATEGORY_RULES if c.value in observed.index}
    logger.info("%d of %d regions hold a boundary; categories: %s", len(tad_bounds), len(all_bounds), counts)

    return TemporalClassification(all_bounds=all_bounds, tad_bounds=tad_bounds, counts=counts)
