import json

from spectral_boundaries.cli import main


def test_cli_synth_then_run(tmp_path, capsys):
    data_dir = tmp_path / "data"
    main(["synth", "--out_dir", str(data_dir), "--n_samples", "4", "--n_bins", "90", "--resolution", "1000"])

    matrices = []
    for t in range(1, 5):
        matrices += ["--matrix", str(data_dir / f"sample_{t}.tsv")]

    out_dir = tmp_path / "out"
    main(["run", *matrices, "--out_dir", str(out_dir), "--n_jobs", "1"])

    captured = capsys.readouterr().out
    assert "Wrote outputs to:" in captured

    meta = json.loads((out_dir / "meta.json").read_text())
    assert meta["resolution"] == 1000
    assert meta["window_size"] == 15
    assert (out_dir / "tad_bounds.tsv").exists()


def test_cli_run_with_groupings(tmp_path):
    data_dir = tmp_path / "data"
    main(["synth", "--out_dir", str(data_dir), "--n_samples", "4", "--n_bins", "60", "--resolution", "500"])

    matrices = []
    for t in range(1, 5):
        matrices += ["--matrix", str(data_dir / f"sample_{t}.tsv")]

    out_dir = tmp_path / "out"
    main(
        [
            "run",
            *matrices,
            "--out_dir",
            str(out_dir),
            "--resolution",
            "500",
            "--groupings",
            "early",
            "early",
            "late",
            "late",
            "--n_jobs",
            "1",
        ]
    )

    meta = json.loads((out_dir / "meta.json").read_text())
    assert meta["samples"] == ["early", "late"]
    assert meta["baseline"] == "early"
