import numpy as np
import pandas as pd
import pytest

from spectral_boundaries.aggregate import (
    aggregate,
    build_score_table,
    collapse_groups,
    sample_ids,
    score_samples,
    shared_coordinates,
    standardize,
)
from spectral_boundaries.contact_map import ContactMatrix
from spectral_boundaries.errors import InvalidGroupingError, NoSharedRegionsError
from spectral_boundaries.synth import block_contact_matrix


def _long(rows):
    return pd.DataFrame(rows, columns=["Sample", "Coordinate", "Boundary"])


def test_standardize_population_and_nan():
    z = standardize([1.0, 2.0, np.nan, 3.0])
    assert np.isnan(z[2])
    # population std of [1, 2, 3] is sqrt(2/3)
    assert np.allclose(z[[0, 1, 3]], np.array([-1.0, 0.0, 1.0]) / np.sqrt(2.0 / 3.0))


def test_standardize_constant_is_undefined():
    assert np.all(np.isnan(standardize([2.0, 2.0, 2.0])))
    assert np.all(np.isnan(standardize([np.nan, np.nan])))


def test_shared_coordinates_intersection():
    mats = [
        block_contact_matrix(30, [15], resolution=10),
        block_contact_matrix(30, [15], resolution=10, start=50),
    ]
    scored = score_samples(mats, window_size=30, n_jobs=1)
    shared = shared_coordinates(scored)

    assert shared.tolist() == sorted(set(scored[0].coordinates) & set(scored[1].coordinates))
    # dropping a sample never shrinks the intersection
    assert set(shared) <= set(shared_coordinates(scored[:1]))


def test_score_samples_tags_in_input_order():
    mats = [block_contact_matrix(20, [10], resolution=10) for _ in range(3)]
    scored = score_samples(mats, window_size=20, n_jobs=1)
    assert [s.sample_id for s in scored] == sample_ids(3) == ["Sample 1", "Sample 2", "Sample 3"]


def test_score_samples_parallel_matches_sequential():
    mats = [block_contact_matrix(40, [b], resolution=10) for b in (12, 20, 28)]
    seq = score_samples(mats, window_size=15, n_jobs=1)
    par = score_samples(mats, window_size=15, n_jobs=2)
    for a, b in zip(seq, par):
        assert a.sample_id == b.sample_id
        assert np.array_equal(a.coordinates, b.coordinates)
        assert np.allclose(a.scores, b.scores)


def test_build_score_table_baseline_never_differential():
    scores = _long(
        [
            ("Sample 1", 0, 0.1),
            ("Sample 1", 10, 0.1),
            ("Sample 1", 20, 1.5),
            ("Sample 2", 0, 0.1),
            ("Sample 2", 10, 1.4),
            ("Sample 2", 20, 0.1),
        ]
    )
    table = build_score_table(scores, ["Sample 1", "Sample 2"], z_threshold=0.5)

    base = table.scores[table.scores["Sample"] == "Sample 1"]
    assert not base["Differential"].any()
    assert table.baseline == "Sample 1"
    assert table.differential_points["Sample"].eq("Sample 2").all()
    assert len(table.differential_points) > 0


def test_build_score_table_wide_layout():
    scores = _long(
        [
            ("Sample 2", 20, 3.0),
            ("Sample 1", 20, 1.0),
            ("Sample 2", 10, 2.0),
            ("Sample 1", 10, 0.0),
        ]
    )
    table = build_score_table(scores, ["Sample 1", "Sample 2"])

    assert list(table.wide.columns) == ["Coordinate", "Sample 1", "Sample 2", "Consensus_Score"]
    assert table.wide["Coordinate"].tolist() == [10, 20]

    tad = standardize([0.0, 1.0, 2.0, 3.0])
    assert np.allclose(table.wide["Sample 1"], tad[:2])
    assert np.allclose(table.wide["Sample 2"], tad[2:])
    assert np.allclose(table.wide["Consensus_Score"], (tad[:2] + tad[2:]) / 2)


def test_build_score_table_nan_stays_local():
    scores = _long(
        [
            ("Sample 1", 0, 0.5),
            ("Sample 1", 10, np.nan),
            ("Sample 2", 0, 0.2),
            ("Sample 2", 10, 0.9),
        ]
    )
    table = build_score_table(scores, ["Sample 1", "Sample 2"])
    wide = table.wide.set_index("Coordinate")

    assert np.isnan(wide.loc[10, "Sample 1"])
    assert np.isfinite(wide.loc[10, "Sample 2"])
    assert np.isfinite(wide.loc[10, "Consensus_Score"])
    # undefined difference is never differential
    row = table.scores[(table.scores["Sample"] == "Sample 2") & (table.scores["Coordinate"] == 10)]
    assert not bool(row["Differential"].iloc[0])


def test_collapse_groups_takes_median():
    scores = _long(
        [
            ("Sample 1", 0, 1.0),
            ("Sample 2", 0, 3.0),
            ("Sample 3", 0, 10.0),
            ("Sample 4", 0, 20.0),
        ]
    )
    out = collapse_groups(scores, {"Sample 1": "early", "Sample 2": "early", "Sample 3": "late", "Sample 4": "late"})
    assert out.set_index("Sample")["Boundary"].to_dict() == {"early": 2.0, "late": 15.0}


def test_aggregate_identical_matrices_have_no_differential():
    m = block_contact_matrix(60, [30], resolution=1000)
    table = aggregate([m] * 4, window_size=60, n_jobs=1)

    assert table.samples == ("Sample 1", "Sample 2", "Sample 3", "Sample 4")
    assert not table.scores["Differential"].any()
    assert len(table.wide) == len(score_samples([m], window_size=60, n_jobs=1)[0])


def test_aggregate_groupings_collapse_axis():
    early = block_contact_matrix(60, [30], resolution=1000)
    late = block_contact_matrix(60, [], resolution=1000)
    table = aggregate(
        [early, early, late, late],
        window_size=60,
        groupings=["t0", "t0", 1, 1],
        n_jobs=1,
    )

    assert table.samples == ("t0", "1")
    assert table.baseline == "t0"
    assert list(table.wide.columns) == ["Coordinate", "t0", "1", "Consensus_Score"]
    assert len(table.scores) == 2 * len(table.wide)


def test_aggregate_grouping_length_mismatch():
    m = block_contact_matrix(20, [10], resolution=10)
    with pytest.raises(InvalidGroupingError):
        aggregate([m, m], window_size=20, groupings=["a"], n_jobs=1)


def test_aggregate_no_shared_regions():
    a = block_contact_matrix(20, [10], resolution=10)
    b = block_contact_matrix(20, [10], resolution=10, start=1_000_000)
    with pytest.raises(NoSharedRegionsError):
        aggregate([a, b], window_size=20, n_jobs=1)


def test_aggregate_rows_match_intersection():
    a = block_contact_matrix(40, [20], resolution=10)
    W = np.array(a.values)
    W[25, :] = 0
    W[:, 25] = 0
    b = ContactMatrix(values=W, coordinates=a.coordinates)

    table = aggregate([a, b], window_size=40, n_jobs=1)
    scored = score_samples([a, b], window_size=40, n_jobs=1)

    assert table.wide["Coordinate"].tolist() == shared_coordinates(scored).tolist()
    assert 250 not in table.wide["Coordinate"].tolist()


@pytest.mark.parametrize("label", ["Coordinate", "Consensus_Score", "Category"])
def test_aggregate_rejects_reserved_group_labels(label):
    m = block_contact_matrix(40, [20], resolution=10)
    with pytest.raises(InvalidGroupingError):
        aggregate([m, m], window_size=40, groupings=[label, "x"], n_jobs=1)
