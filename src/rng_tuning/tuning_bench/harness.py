"""Minimal measurement harness that executes registered benchmark variants.

Variants run strictly one at a time, in registration order. A failing trial is
recorded with its failure reason and contributes no timing data.
"""

from __future__ import annotations

import re
import statistics
from collections.abc import Iterable, Iterator
from typing import Any, Literal

import attrs

from .errors import TrialFailure
from .registry import BenchmarkVariant

TrialStatus = Literal["pass", "fail"]


class TrialState:
    """Iteration driver and per-trial accumulator handed to a variant."""

    def __init__(self, iterations: int) -> None:
        if iterations <= 0:
            raise ValueError(f"iterations must be positive, got {iterations!r}")
        self._iterations = iterations
        self.iteration_times_s: list[float] = []
        self.bytes_processed: int | None = None
        self.items_processed: int | None = None

    @property
    def iterations(self) -> int:
        return self._iterations

    def __iter__(self) -> Iterator[int]:
        return iter(range(self._iterations))

    def set_iteration_time(self, seconds: float) -> None:
        self.iteration_times_s.append(float(seconds))

    def set_bytes_processed(self, n: int) -> None:
        self.bytes_processed = int(n)

    def set_items_processed(self, n: int) -> None:
        self.items_processed = int(n)


@attrs.define(frozen=True, slots=True)
class TrialRecord:
    name: str
    generator: str
    distribution: str
    output_type: str
    threads: int
    blocks: int
    status: TrialStatus
    iterations: int
    samples_ms: tuple[float, ...] = ()
    bytes_processed: int | None = None
    items_processed: int | None = None
    failure_reason: str | None = None

    @property
    def grid_size(self) -> int:
        return self.threads * self.blocks

    @property
    def mean_ms(self) -> float | None:
        return statistics.fmean(self.samples_ms) if self.samples_ms else None

    @property
    def median_ms(self) -> float | None:
        return statistics.median(self.samples_ms) if self.samples_ms else None

    @property
    def std_ms(self) -> float | None:
        if len(self.samples_ms) < 2:
            return 0.0 if self.samples_ms else None
        return statistics.stdev(self.samples_ms)

    @property
    def total_time_s(self) -> float | None:
        return sum(self.samples_ms) / 1e3 if self.samples_ms else None

    @property
    def throughput_gbps(self) -> float | None:
        total = self.total_time_s
        if total is None or total == 0 or self.bytes_processed is None:
            return None
        return self.bytes_processed / total / 1e9

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "generator": self.generator,
            "distribution": self.distribution,
            "output_type": self.output_type,
            "config": {"threads": self.threads, "blocks": self.blocks, "grid_size": self.grid_size},
            "status": self.status,
            "failure_reason": self.failure_reason,
            "timing": {
                "iterations": self.iterations,
                "samples_ms": list(self.samples_ms),
                "mean_ms": self.mean_ms,
                "median_ms": self.median_ms,
                "std_ms": self.std_ms,
                "min_ms": min(self.samples_ms) if self.samples_ms else None,
                "max_ms": max(self.samples_ms) if self.samples_ms else None,
            },
            "throughput": {
                "bytes_processed": self.bytes_processed,
                "items_processed": self.items_processed,
                "gb_per_s": self.throughput_gbps,
            },
        }


def run_variant(variant: BenchmarkVariant, *, iterations: int) -> TrialRecord:
    state = TrialState(iterations)
    base = {
        "name": variant.name,
        "generator": variant.generator.name,
        "distribution": variant.distribution.name,
        "output_type": variant.output_type.key,
        "threads": variant.candidate.threads,
        "blocks": variant.candidate.blocks,
        "iterations": iterations,
    }
    try:
        variant.run(state)
    except TrialFailure as e:
        return TrialRecord(**base, status="fail", failure_reason=f"{e.kind}: {e}")

    return TrialRecord(
        **base,
        status="pass",
        samples_ms=tuple(t * 1e3 for t in state.iteration_times_s),
        bytes_processed=state.bytes_processed,
        items_processed=state.items_processed,
    )


def filter_variants(variants: Iterable[BenchmarkVariant], pattern: str | None) -> list[BenchmarkVariant]:
    if not pattern:
        return list(variants)
    rx = re.compile(pattern)
    return [v for v in variants if rx.search(v.name)]


def run_variants(
    variants: Iterable[BenchmarkVariant],
    *,
    iterations: int,
    name_filter: str | None = None,
    fail_fast: bool = False,
) -> list[TrialRecord]:
    records: list[TrialRecord] = []
    for variant in filter_variants(variants, name_filter):
        rec = run_variant(variant, iterations=iterations)
        records.append(rec)
        if fail_fast and rec.status == "fail":
            break
    return records
