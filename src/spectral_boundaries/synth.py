from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np

from .contact_map import ContactMatrix
from .reporting import ensure_dir, write_json


def block_contact_matrix(
    n_bins: int,
    boundaries: Sequence[int] = (),
    *,
    resolution: int = 50_000,
    start: int = 0,
    decay_scale: float = 8.0,
    inter_block: float = 0.01,
    noise: float = 0.0,
    seed: int = 0,
) -> ContactMatrix:
    """Create a dense symmetric contact matrix with distance decay + domain structure.

    ``boundaries`` are the bin indices where a new domain starts; contacts
    between domains are scaled by ``inter_block``.
    """
    rng = np.random.default_rng(int(seed))
    n = int(n_bins)

    pos = np.arange(n)
    domain = np.searchsorted(np.sort(np.asarray(boundaries, dtype=np.int64)), pos, side="right")

    dist = np.abs(pos[:, None] - pos[None, :])
    W = np.exp(-dist / float(decay_scale))
    W = np.where(domain[:, None] == domain[None, :], W, W * float(inter_block))

    if noise > 0:
        # perturb the upper triangle and mirror it, keep nonnegative
        E = float(noise) * rng.standard_normal((n, n))
        E = np.triu(E) + np.triu(E, 1).T
        W = np.clip(W + E, 0.0, None)

    coords = int(start) + int(resolution) * pos.astype(np.int64)
    return ContactMatrix(values=W, coordinates=coords)


def timecourse_boundaries(
    n_samples: int,
    *,
    stable: Sequence[int],
    appearing: Sequence[int] = (),
    disappearing: Sequence[int] = (),
) -> list[list[int]]:
    """Boundary sets per time point.

    ``appearing`` boundaries are present only in the second half of the series,
    ``disappearing`` ones only in the first half.
    """
    half = n_samples // 2
    out = []
    for t in range(n_samples):
        b = list(stable)
        if t >= half:
            b.extend(appearing)
        else:
            b.extend(disappearing)
        out.append(sorted(b))
    return out


def synth_timecourse(
    out_dir: str | Path,
    *,
    n_samples: int = 4,
    n_bins: int = 120,
    resolution: int = 50_000,
    seed: int = 0,
) -> dict[str, Path]:
    """Write a small synthetic time course of labeled TSV contact matrices."""
    out_dir = ensure_dir(out_dir)

    stable = [n_bins // 4]
    appearing = [n_bins // 2]
    disappearing = [3 * n_bins // 4]
    per_sample = timecourse_boundaries(
        n_samples, stable=stable, appearing=appearing, disappearing=disappearing
    )

    paths: dict[str, Path] = {}
    for t, boundaries in enumerate(per_sample, start=1):
        m = block_contact_matrix(
            n_bins,
            boundaries,
            resolution=resolution,
            noise=0.002,
            seed=int(seed) + t,
        )
        path = out_dir / f"sample_{t}.tsv"
        m.to_frame().to_csv(path, sep="\t")
        paths[f"sample_{t}"] = path

    meta = {
        "n_samples": int(n_samples),
        "n_bins": int(n_bins),
        "resolution": int(resolution),
        "seed": int(seed),
        "stable_boundaries": [b * resolution for b in stable],
        "appearing_boundaries": [b * resolution for b in appearing],
        "disappearing_boundaries": [b * resolution for b in disappearing],
        "matrix_format": "labeled dense TSV (header and first column = bin starts)",
    }
    write_json(meta, out_dir / "meta.json")
    paths["meta"] = out_dir / "meta.json"

    return paths
