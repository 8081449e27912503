from __future__ import annotations

import argparse
from pathlib import Path

from .backends import BACKENDS
from .config import (
    DEFAULT_ITERATIONS,
    DEFAULT_TRIAL_SIZE,
    OUTPUT_TYPES,
    BenchmarkConfig,
    TuningSpace,
    parse_int_list,
    tuning_space_from_env,
)
from .report import report_run
from .sweep import list_run, tuning_run


def _abs_path(p: str) -> Path:
    return Path(p).expanduser().resolve()


def _int_list(v: str) -> tuple[int, ...]:
    try:
        return parse_int_list(v)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _add_matrix_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--backend", default="host", choices=list(BACKENDS))
    p.add_argument("--engine", action="append", default=None, help="Engine name (repeatable; default: all of the backend).")
    p.add_argument("--output-type", action="append", default=None, choices=sorted(OUTPUT_TYPES), help="Output type (repeatable).")
    p.add_argument("--thread-options", type=_int_list, default=None, help="Comma list, e.g. \"64,128,256\".")
    p.add_argument("--block-options", type=_int_list, default=None, help="Comma list, e.g. \"256,512\".")
    p.add_argument("--min-grid-size", type=int, default=None, help="Skip launch configurations with threads*blocks below this.")
    p.add_argument("--size", type=int, default=DEFAULT_TRIAL_SIZE, help="Number of values generated per call.")
    p.add_argument("--seed", type=int, default=BenchmarkConfig().seed)
    p.add_argument("--poisson-lambda", type=float, default=BenchmarkConfig().poisson_lambda)
    p.add_argument("--exclusions", type=_abs_path, default=None, help="JSON exclusion table (replaces the built-in one).")
    p.add_argument("--filter", dest="name_filter", default=None, help="Regex; only matching benchmark names are kept.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rng_tuning.tuning_bench",
        description="Launch-configuration tuning benchmarks for random number generators.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    lst = sub.add_parser("list", help="Print the names of the benchmarks that would run.")
    _add_matrix_args(lst)
    lst.add_argument("--json", dest="as_json", action="store_true", help="Print full variant records as JSON.")

    run = sub.add_parser("run", help="Run the benchmark matrix and write results.json + report.md.")
    run.add_argument("--out-dir", type=_abs_path, required=True)
    _add_matrix_args(run)
    run.add_argument("--iterations", type=int, default=DEFAULT_ITERATIONS, help="Timed iterations per benchmark.")
    run.add_argument("--fail-fast", action="store_true", help="Stop at the first failing benchmark.")

    report = sub.add_parser("report", help="Regenerate report.md from results.json (no benchmark run).")
    report.add_argument("--out-dir", type=_abs_path, required=True)

    return parser


def _space_from_args(ns: argparse.Namespace) -> TuningSpace:
    env_space = tuning_space_from_env()
    return TuningSpace(
        thread_options=ns.thread_options or env_space.thread_options,
        block_options=ns.block_options or env_space.block_options,
        min_grid_size=env_space.min_grid_size if ns.min_grid_size is None else ns.min_grid_size,
    )


def _config_from_args(ns: argparse.Namespace) -> BenchmarkConfig:
    return BenchmarkConfig(size=ns.size, seed=ns.seed, poisson_lambda=ns.poisson_lambda)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)

    if ns.cmd == "report":
        return report_run(out_dir=ns.out_dir)

    try:
        space = _space_from_args(ns)
        config = _config_from_args(ns)
    except ValueError as e:
        parser.error(str(e))

    if ns.cmd == "list":
        return list_run(
            backend=ns.backend,
            engines=ns.engine,
            space=space,
            config=config,
            exclusions_path=ns.exclusions,
            name_filter=ns.name_filter,
            output_types=ns.output_type,
            as_json=ns.as_json,
        )
    if ns.cmd == "run":
        if ns.iterations <= 0:
            parser.error("--iterations must be positive")
        return tuning_run(
            out_dir=ns.out_dir,
            backend=ns.backend,
            engines=ns.engine,
            space=space,
            config=config,
            iterations=ns.iterations,
            exclusions_path=ns.exclusions,
            name_filter=ns.name_filter,
            fail_fast=ns.fail_fast,
            output_types=ns.output_type,
        )

    raise AssertionError(f"Unhandled cmd: {ns.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
