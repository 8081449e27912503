from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import attrs

from .capabilities import DEFAULT_EXCLUSIONS, ExclusionTable, applicable_distributions
from .config import BenchmarkConfig, ConfigCandidate, OutputType, TuningSpace, iter_output_types
from .distributions import DistributionDescriptor
from .generators import DeviceRuntime, GeneratorFamily, TrialState
from .runner import run_benchmark


def benchmark_name(generator_name: str, distribution_name: str, candidate: ConfigCandidate) -> str:
    return f"{generator_name}_{distribution_name}_t{candidate.threads}_b{candidate.blocks}"


@attrs.define(frozen=True, slots=True)
class BenchmarkTask:
    """Everything one trial needs, bound at registration time.

    Holds no reference to the factory that created it, so it can be invoked
    long after matrix construction has finished.
    """

    output_type: OutputType
    generator: GeneratorFamily
    distribution: DistributionDescriptor
    candidate: ConfigCandidate
    config: BenchmarkConfig
    runtime: DeviceRuntime = attrs.field(eq=False, repr=False)

    def __call__(self, state: TrialState) -> None:
        run_benchmark(
            state,
            output_type=self.output_type,
            generator=self.generator,
            distribution=self.distribution,
            candidate=self.candidate,
            config=self.config,
            runtime=self.runtime,
        )


@attrs.define(frozen=True, slots=True)
class BenchmarkVariant:
    name: str
    task: BenchmarkTask

    @property
    def generator(self) -> GeneratorFamily:
        return self.task.generator

    @property
    def distribution(self) -> DistributionDescriptor:
        return self.task.distribution

    @property
    def output_type(self) -> OutputType:
        return self.task.output_type

    @property
    def candidate(self) -> ConfigCandidate:
        return self.task.candidate

    def run(self, state: TrialState) -> None:
        self.task(state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "generator": self.generator.name,
            "distribution": self.distribution.to_dict(),
            "output_type": self.output_type.key,
            "threads": self.candidate.threads,
            "blocks": self.candidate.blocks,
            "grid_size": self.candidate.grid_size,
        }


class GeneratorBenchmarkFactory:
    """Appends the benchmark variants of one generator family to `benchmarks`."""

    def __init__(
        self,
        generator: GeneratorFamily,
        *,
        space: TuningSpace,
        config: BenchmarkConfig,
        runtime: DeviceRuntime,
        benchmarks: list[BenchmarkVariant],
        exclusions: ExclusionTable = DEFAULT_EXCLUSIONS,
    ) -> None:
        self._generator = generator
        self._config = config
        self._runtime = runtime
        self._benchmarks = benchmarks
        self._exclusions = exclusions
        self._candidates = space.candidates()

    def add_benchmarks(self, output_type: OutputType) -> int:
        """Register every supported distribution of `output_type`. Returns the number added."""
        if not self._exclusions.supports(output_type, self._generator):
            return 0

        added = 0
        for distribution in applicable_distributions(output_type, self._config):
            added += self._add_benchmarks_impl(output_type, distribution)
        return added

    def _add_benchmarks_impl(self, output_type: OutputType, distribution: DistributionDescriptor) -> int:
        for candidate in self._candidates:
            task = BenchmarkTask(
                output_type=output_type,
                generator=self._generator,
                distribution=distribution,
                candidate=candidate,
                config=self._config,
                runtime=self._runtime,
            )
            name = benchmark_name(self._generator.name, distribution.name, candidate)
            self._benchmarks.append(BenchmarkVariant(name=name, task=task))
        return len(self._candidates)


def add_all_benchmarks_for_generator(
    benchmarks: list[BenchmarkVariant],
    generator: GeneratorFamily,
    *,
    space: TuningSpace,
    config: BenchmarkConfig,
    runtime: DeviceRuntime,
    exclusions: ExclusionTable = DEFAULT_EXCLUSIONS,
    output_types: Iterable[OutputType] | None = None,
) -> int:
    factory = GeneratorBenchmarkFactory(
        generator, space=space, config=config, runtime=runtime, benchmarks=benchmarks, exclusions=exclusions
    )
    types = iter_output_types() if output_types is None else output_types
    return sum(factory.add_benchmarks(t) for t in types)


def build_matrix(
    generators: Iterable[GeneratorFamily],
    *,
    space: TuningSpace,
    config: BenchmarkConfig,
    runtime: DeviceRuntime,
    exclusions: ExclusionTable = DEFAULT_EXCLUSIONS,
    output_types: Iterable[OutputType] | None = None,
) -> list[BenchmarkVariant]:
    types = list(iter_output_types() if output_types is None else output_types)
    benchmarks: list[BenchmarkVariant] = []
    for generator in generators:
        add_all_benchmarks_for_generator(
            benchmarks,
            generator,
            space=space,
            config=config,
            runtime=runtime,
            exclusions=exclusions,
            output_types=types,
        )
    return benchmarks
