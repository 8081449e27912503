from __future__ import annotations

from pathlib import Path
from typing import Any

from mdutils.mdutils import MdUtils  # type: ignore[import-untyped]

from .export import load_results


def _format_float(v: float | None) -> str:
    if v is None:
        return "NA"
    return f"{v:.3f}"


def _group_key(rec: dict[str, Any]) -> tuple[str, str]:
    return (str(rec["generator"]), str(rec["distribution"]))


def group_records(results: dict[str, Any]) -> dict[tuple[str, str], list[dict[str, Any]]]:
    """Group records by (generator, distribution), keeping registration order."""
    groups: dict[tuple[str, str], list[dict[str, Any]]] = {}
    for rec in results.get("records", []) or []:
        groups.setdefault(_group_key(rec), []).append(rec)
    return groups


def generate_report(results: dict[str, Any], out_path: Path) -> Path:
    """Write a Markdown summary of `results` to `out_path` (`.md` is appended by mdutils)."""
    file_name = out_path.with_suffix("") if out_path.suffix == ".md" else out_path
    md = MdUtils(file_name=str(file_name), title="RNG Launch-Configuration Tuning Report")

    run = results.get("run", {})
    settings = run.get("settings", {})
    space = settings.get("tuning_space", {})
    md.new_header(level=1, title="Run Metadata")
    md.new_list(
        [
            f"Run: `{run.get('run_id', '')}`",
            f"Commit: `{run.get('git', {}).get('commit', '')}`",
            f"Backend: `{run.get('environment', {}).get('backend', '')}`",
            f"Status: `{run.get('status', '')}`",
            f"Trial size: `{settings.get('benchmark', {}).get('size', '')}` elements, "
            f"iterations: `{settings.get('iterations', '')}`",
            f"Threads: `{space.get('thread_options', [])}`, blocks: `{space.get('block_options', [])}`, "
            f"min grid size: `{space.get('min_grid_size', '')}`",
        ]
    )

    md.new_header(level=1, title="Results")
    header = ["name", "threads", "blocks", "grid_size", "mean_ms", "median_ms", "std_ms", "GB/s", "status"]
    for (generator, distribution), recs in group_records(results).items():
        md.new_header(level=2, title=f"{generator} / {distribution}")
        cells: list[str] = list(header)
        for r in recs:
            timing = r.get("timing", {})
            cfg = r.get("config", {})
            cells += [
                f"`{r['name']}`",
                str(cfg.get("threads")),
                str(cfg.get("blocks")),
                str(cfg.get("grid_size")),
                _format_float(timing.get("mean_ms")),
                _format_float(timing.get("median_ms")),
                _format_float(timing.get("std_ms")),
                _format_float(r.get("throughput", {}).get("gb_per_s")),
                str(r.get("status")),
            ]
        md.new_table(columns=len(header), rows=len(recs) + 1, text=cells, text_align="left")

    failures = [r for r in results.get("records", []) or [] if r.get("status") == "fail"]
    md.new_header(level=1, title="Failures")
    if failures:
        md.new_list([f"`{r['name']}`: {r.get('failure_reason') or 'unknown'}" for r in failures])
    else:
        md.new_paragraph("None.")

    md.new_header(level=1, title="Notes")
    md.new_list(
        [
            "Times are per generate call, measured between timing events recorded on the trial's stream.",
            "`GB/s` is total bytes generated over the summed measured time.",
            "`NA` means the value is missing (e.g. the trial failed).",
        ]
    )
    md.create_md_file()
    return file_name.with_suffix(".md")


def report_run(*, out_dir: Path) -> int:
    results = load_results(out_dir / "results.json")
    generate_report(results, out_dir / "report.md")
    return 0
