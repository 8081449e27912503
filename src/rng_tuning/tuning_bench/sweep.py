from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

from .backends import get_backend
from .capabilities import DEFAULT_EXCLUSIONS, ExclusionTable, load_exclusions
from .config import BenchmarkConfig, TuningSpace, iter_output_types
from .export import normalize_results, write_results
from .harness import filter_variants, run_variants
from .registry import BenchmarkVariant, build_matrix
from .report import generate_report


def _exclusions(backend_exclusions: ExclusionTable, exclusions_path: Path | None) -> ExclusionTable:
    base = DEFAULT_EXCLUSIONS if exclusions_path is None else load_exclusions(exclusions_path)
    return base.merged(backend_exclusions)


def build_variants(
    *,
    backend: str,
    engines: list[str] | None,
    space: TuningSpace,
    config: BenchmarkConfig,
    exclusions_path: Path | None = None,
    output_types: list[str] | None = None,
) -> list[BenchmarkVariant]:
    be = get_backend(backend)
    return build_matrix(
        be.select(engines),
        space=space,
        config=config,
        runtime=be.runtime_factory(),
        exclusions=_exclusions(be.exclusions, exclusions_path),
        output_types=iter_output_types(output_types),
    )


def list_run(
    *,
    backend: str,
    engines: list[str] | None,
    space: TuningSpace,
    config: BenchmarkConfig,
    exclusions_path: Path | None,
    name_filter: str | None,
    output_types: list[str] | None = None,
    as_json: bool = False,
) -> int:
    variants = build_variants(
        backend=backend,
        engines=engines,
        space=space,
        config=config,
        exclusions_path=exclusions_path,
        output_types=output_types,
    )
    kept = filter_variants(variants, name_filter)
    if as_json:
        print(json.dumps([v.to_dict() for v in kept], indent=2))
        return 0
    for v in kept:
        print(v.name)
    return 0


def tuning_run(
    *,
    out_dir: Path,
    backend: str,
    engines: list[str] | None,
    space: TuningSpace,
    config: BenchmarkConfig,
    iterations: int,
    exclusions_path: Path | None = None,
    name_filter: str | None = None,
    fail_fast: bool = False,
    output_types: list[str] | None = None,
) -> int:
    out_dir.mkdir(parents=True, exist_ok=True)
    started_at = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    be = get_backend(backend)
    generators = be.select(engines)
    exclusions = _exclusions(be.exclusions, exclusions_path)
    variants = build_matrix(
        generators,
        space=space,
        config=config,
        runtime=be.runtime_factory(),
        exclusions=exclusions,
        output_types=iter_output_types(output_types),
    )
    if not variants:
        print("No benchmark variants survived filtering (check the tuning space and exclusions).", file=sys.stderr)
        return 2

    records = run_variants(variants, iterations=iterations, name_filter=name_filter, fail_fast=fail_fast)
    for rec in records:
        if rec.status == "fail":
            print(f"{rec.name}: {rec.failure_reason}", file=sys.stderr)

    results = normalize_results(
        records,
        space=space,
        config=config,
        iterations=iterations,
        backend=backend,
        generators=[g.name for g in generators],
        exclusions=exclusions,
        started_at=started_at,
    )
    write_results(out_dir / "results.json", results)
    generate_report(results, out_dir / "report.md")

    return 0 if results["run"]["status"] == "pass" else 1
