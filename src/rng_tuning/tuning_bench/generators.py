"""Collaborator interfaces consumed by the benchmark runner.

The runner only needs the operations listed here; concrete implementations
live under `backends/`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, Protocol

import attrs

from .config import BenchmarkConfig, ConfigCandidate, OutputType
from .distributions import DistributionDescriptor

# Generator status codes, numbered like the rocRAND/cuRAND status enums.
STATUS_SUCCESS = 0
STATUS_TYPE_ERROR = 103
STATUS_LAUNCH_FAILURE = 107
STATUS_INTERNAL_ERROR = 108

# Device runtime error codes (hipError_t / cudaError_t values).
DEVICE_ERROR_OUT_OF_MEMORY = 2
DEVICE_ERROR_INVALID_VALUE = 1
DEVICE_ERROR_UNKNOWN = 999


class DeviceRuntime(Protocol):
    """Device operations used by one trial. Failures raise `DeviceError`."""

    def default_stream(self) -> Any: ...

    def allocate(self, count: int, output_type: OutputType) -> Any: ...

    def free(self, buffer: Any) -> None: ...

    def create_event(self) -> Any: ...

    def destroy_event(self, event: Any) -> None: ...

    def record_event(self, event: Any, stream: Any) -> None: ...

    def synchronize_event(self, event: Any) -> None: ...

    def elapsed_time_ms(self, start: Any, stop: Any) -> float: ...

    def synchronize(self) -> None: ...


class GeneratorEngine(Protocol):
    def set_stream(self, stream: Any) -> None: ...

    def generate(self, buffer: Any, count: int, distribution: DistributionDescriptor) -> int:
        """Fill `count` values of `buffer`. Returns 0 on success, a status code otherwise."""
        ...

    def identity(self) -> str: ...


class TrialState(Protocol):
    """Per-trial accumulator owned by the measurement harness."""

    @property
    def iterations(self) -> int: ...

    def __iter__(self) -> Iterator[Any]: ...

    def set_iteration_time(self, seconds: float) -> None: ...

    def set_bytes_processed(self, n: int) -> None: ...

    def set_items_processed(self, n: int) -> None: ...


EngineFactory = Callable[[ConfigCandidate, BenchmarkConfig], GeneratorEngine]


@attrs.define(frozen=True, slots=True)
class GeneratorFamily:
    """One RNG engine type under benchmark.

    `factory` instantiates an engine pinned to a static launch configuration.
    """

    name: str
    factory: EngineFactory = attrs.field(eq=False, repr=False)

    def create(self, candidate: ConfigCandidate, config: BenchmarkConfig) -> GeneratorEngine:
        return self.factory(candidate, config)
