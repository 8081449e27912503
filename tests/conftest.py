from __future__ import annotations

from typing import Any

import pytest

from rng_tuning.tuning_bench.config import BenchmarkConfig, ConfigCandidate, OutputType
from rng_tuning.tuning_bench.distributions import DistributionDescriptor
from rng_tuning.tuning_bench.errors import DeviceError
from rng_tuning.tuning_bench.generators import GeneratorFamily


class FakeRuntime:
    """Records every device call; `fail_on` maps an operation name to a status to raise."""

    def __init__(self, *, elapsed_ms: float = 2.0, fail_on: dict[str, int] | None = None) -> None:
        self.elapsed_ms = elapsed_ms
        self.fail_on = dict(fail_on or {})
        self.calls: list[str] = []
        self.live_buffers = 0
        self.live_events = 0

    def _op(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise DeviceError(self.fail_on[name], f"fake {name} failure")

    def default_stream(self) -> Any:
        self._op("default_stream")
        return "stream0"

    def allocate(self, count: int, output_type: OutputType) -> Any:
        self._op("allocate")
        self.live_buffers += 1
        return {"count": count, "type": output_type.key}

    def free(self, buffer: Any) -> None:
        self.live_buffers -= 1
        self._op("free")

    def create_event(self) -> Any:
        self._op("create_event")
        self.live_events += 1
        return object()

    def destroy_event(self, event: Any) -> None:
        self.live_events -= 1
        self._op("destroy_event")

    def record_event(self, event: Any, stream: Any) -> None:
        self._op("record_event")

    def synchronize_event(self, event: Any) -> None:
        self._op("synchronize_event")

    def elapsed_time_ms(self, start: Any, stop: Any) -> float:
        self._op("elapsed_time")
        return self.elapsed_ms

    def synchronize(self) -> None:
        self._op("synchronize")


class FakeEngine:
    def __init__(self, name: str, runtime: FakeRuntime, statuses: list[int]) -> None:
        self._name = name
        self._runtime = runtime
        self._statuses = statuses
        self.stream: Any = None

    def set_stream(self, stream: Any) -> None:
        self.stream = stream

    def identity(self) -> str:
        return self._name

    def generate(self, buffer: Any, count: int, distribution: DistributionDescriptor) -> int:
        self._runtime.calls.append("generate")
        return self._statuses.pop(0) if self._statuses else 0


def make_family(name: str, runtime: FakeRuntime, statuses: list[int] | None = None) -> GeneratorFamily:
    created: list[ConfigCandidate] = []

    def factory(candidate: ConfigCandidate, config: BenchmarkConfig) -> FakeEngine:
        created.append(candidate)
        return FakeEngine(name, runtime, list(statuses or []))

    return GeneratorFamily(name=name, factory=factory)


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def runtime_factory():
    return FakeRuntime


@pytest.fixture
def family_factory():
    return make_family
