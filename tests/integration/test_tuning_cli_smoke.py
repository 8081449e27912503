from __future__ import annotations

import json
from pathlib import Path

import pytest

from rng_tuning.tuning_bench.__main__ import main

SMALL = ["--thread-options", "32,64", "--block-options", "2,4", "--min-grid-size", "128", "--size", "4096"]


def test_list_prints_only_surviving_configurations(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["list", "--engine", "pcg64", "--output-type", "uint32", *SMALL]) == 0
    names = capsys.readouterr().out.split()
    # 32x2 = 64 is below the threshold.
    assert names == [
        "pcg64_uniform-uint32_t32_b4",
        "pcg64_uniform-uint32_t64_b2",
        "pcg64_uniform-uint32_t64_b4",
        "pcg64_poisson-alias-uint32_t32_b4",
        "pcg64_poisson-alias-uint32_t64_b2",
        "pcg64_poisson-alias-uint32_t64_b4",
    ]


def test_list_honours_exclusion_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    excl = tmp_path / "exclusions.json"
    excl.write_text(json.dumps({"exclusions": [{"output_type": "uint64", "generator": "mt19937"}]}))
    assert main(["list", "--engine", "mt19937", "--exclusions", str(excl), *SMALL]) == 0
    names = capsys.readouterr().out.split()
    assert names
    assert not any("uint64" in n for n in names)


def test_list_reads_tuning_space_from_env(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("RNG_TUNING_THREAD_OPTIONS", "128")
    monkeypatch.setenv("RNG_TUNING_BLOCK_OPTIONS", "8")
    monkeypatch.setenv("RNG_TUNING_MIN_GRID_SIZE", "600")
    assert main(["list", "--engine", "sfc64", "--output-type", "float"]) == 0
    assert capsys.readouterr().out.split() == [
        "sfc64_uniform-float_t128_b8",
        "sfc64_normal-float_t128_b8",
        "sfc64_log-normal-float_t128_b8",
    ]


def test_invalid_option_list_is_rejected() -> None:
    with pytest.raises(SystemExit):
        main(["list", "--thread-options", "64,x"])


def test_run_writes_results_and_report(tmp_path: Path) -> None:
    out_dir = tmp_path / "out"
    rc = main(
        [
            "run",
            "--out-dir",
            str(out_dir),
            "--engine",
            "philox4x32_10",
            "--output-type",
            "float",
            "--output-type",
            "uint8",
            "--iterations",
            "2",
            *SMALL,
        ]
    )
    assert rc == 0
    results = json.loads((out_dir / "results.json").read_text())
    assert results["run"]["status"] == "pass"
    # (3 float distributions + 1 uint8 uniform) x 3 launch configurations.
    assert len(results["records"]) == 12
    for rec in results["records"]:
        assert rec["throughput"]["bytes_processed"] == 2 * 4096 * (4 if rec["output_type"] == "float" else 1)
        assert len(rec["timing"]["samples_ms"]) == 2
    assert (out_dir / "report.md").exists()

    (out_dir / "report.md").unlink()
    assert main(["report", "--out-dir", str(out_dir)]) == 0
    assert (out_dir / "report.md").exists()


def test_run_with_empty_matrix_fails(tmp_path: Path) -> None:
    rc = main(["run", "--out-dir", str(tmp_path), "--thread-options", "1", "--block-options", "1", "--min-grid-size", "2"])
    assert rc == 2


def test_negative_poisson_lambda_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        main(["run", "--out-dir", str(tmp_path), "--engine", "pcg64", "--output-type", "uint32", "--poisson-lambda", "-1", *SMALL])
    assert not (tmp_path / "results.json").exists()


def test_list_json_emits_variant_records(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["list", "--json", "--engine", "pcg64", "--output-type", "uint32", "--filter", "poisson", *SMALL]) == 0
    records = json.loads(capsys.readouterr().out)
    assert [r["name"] for r in records] == [
        "pcg64_poisson-alias-uint32_t32_b4",
        "pcg64_poisson-alias-uint32_t64_b2",
        "pcg64_poisson-alias-uint32_t64_b4",
    ]
    assert records[0]["distribution"]["lambda"] == 10.0
    assert records[0]["grid_size"] == 128


def test_run_records_effective_exclusions(tmp_path: Path) -> None:
    excl = tmp_path / "exclusions.json"
    excl.write_text(json.dumps({"exclusions": [{"output_type": "uint64", "generator": "sfc64"}]}))
    out_dir = tmp_path / "out"
    rc = main(
        ["run", "--out-dir", str(out_dir), "--engine", "sfc64", "--output-type", "uint8", "--iterations", "1", "--exclusions", str(excl), *SMALL]
    )
    assert rc == 0
    results = json.loads((out_dir / "results.json").read_text())
    assert results["run"]["settings"]["exclusions"] == [{"output_type": "uint64", "generator": "sfc64"}]
