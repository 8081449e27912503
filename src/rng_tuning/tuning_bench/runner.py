from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager, suppress
from typing import Any

from .config import BenchmarkConfig, ConfigCandidate, OutputType
from .distributions import DistributionDescriptor
from .errors import (
    AllocationFailure,
    DeviceError,
    GenerationFailure,
    SynchronizationFailure,
    TimingResourceFailure,
    TrialFailure,
)
from .generators import STATUS_INTERNAL_ERROR, DeviceRuntime, GeneratorEngine, GeneratorFamily, TrialState


@contextmanager
def _checked(operation: str, failure: type[TrialFailure]) -> Iterator[None]:
    """Translate a collaborator `DeviceError` into the trial failure for `operation`."""
    try:
        yield
    except DeviceError as e:
        raise failure(operation, e.status, str(e)) from e


@contextmanager
def _engine_checked(operation: str) -> Iterator[None]:
    """Like `_checked`, but any exception an engine raises fails the trial as a generation failure."""
    try:
        yield
    except DeviceError as e:
        raise GenerationFailure(operation, e.status, str(e)) from e
    except Exception as e:
        raise GenerationFailure(operation, STATUS_INTERNAL_ERROR, f"{type(e).__name__}: {e}") from e


@contextmanager
def _released(release: Callable[[], None], operation: str, failure: type[TrialFailure]) -> Iterator[None]:
    """Call `release` on exit. A release failure is raised only when no other failure is in flight."""
    try:
        yield
    except BaseException:
        # The first failure is the one reported.
        with suppress(DeviceError):
            release()
        raise
    with _checked(operation, failure):
        release()


@contextmanager
def device_buffer(runtime: DeviceRuntime, count: int, output_type: OutputType) -> Iterator[Any]:
    with _checked("allocate", AllocationFailure):
        buffer = runtime.allocate(count, output_type)
    with _released(lambda: runtime.free(buffer), "free", AllocationFailure):
        yield buffer


@contextmanager
def timing_events(runtime: DeviceRuntime) -> Iterator[tuple[Any, Any]]:
    with _checked("create_event", TimingResourceFailure):
        start = runtime.create_event()
    with _released(lambda: runtime.destroy_event(start), "destroy_event", TimingResourceFailure):
        with _checked("create_event", TimingResourceFailure):
            stop = runtime.create_event()
        with _released(lambda: runtime.destroy_event(stop), "destroy_event", TimingResourceFailure):
            yield start, stop


def _generate(engine: GeneratorEngine, buffer: Any, count: int, distribution: DistributionDescriptor) -> None:
    with _engine_checked("generate"):
        status = engine.generate(buffer, count, distribution)
    if status != 0:
        raise GenerationFailure("generate", status, f"{engine.identity()} / {distribution.name}")


def run_benchmark(
    state: TrialState,
    *,
    output_type: OutputType,
    generator: GeneratorFamily,
    distribution: DistributionDescriptor,
    candidate: ConfigCandidate,
    config: BenchmarkConfig,
    runtime: DeviceRuntime,
) -> None:
    """Run one timed trial and report samples and throughput to `state`.

    Any failing operation raises a `TrialFailure` subclass before the throughput
    counters are set; the harness discards the trial's samples in that case.
    """
    with _checked("default_stream", SynchronizationFailure):
        stream = runtime.default_stream()

    with device_buffer(runtime, config.size, output_type) as data:
        with _engine_checked("create_generator"):
            engine = generator.create(candidate, config)
        with _engine_checked("set_stream"):
            engine.set_stream(stream)

        # Warm-up
        _generate(engine, data, config.size, distribution)
        with _checked("synchronize", SynchronizationFailure):
            runtime.synchronize()

        with timing_events(runtime) as (start, stop):
            for _ in state:
                with _checked("record_event", TimingResourceFailure):
                    runtime.record_event(start, stream)
                _generate(engine, data, config.size, distribution)
                with _checked("record_event", TimingResourceFailure):
                    runtime.record_event(stop, stream)
                with _checked("synchronize_event", SynchronizationFailure):
                    runtime.synchronize_event(stop)
                with _checked("elapsed_time", TimingResourceFailure):
                    elapsed_ms = runtime.elapsed_time_ms(start, stop)
                state.set_iteration_time(elapsed_ms / 1000.0)

    state.set_bytes_processed(state.iterations * config.size * output_type.itemsize)
    state.set_items_processed(state.iterations * config.size)
