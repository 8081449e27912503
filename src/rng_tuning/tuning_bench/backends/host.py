"""Host (CPU) backend built on numpy bit generators.

Each `generate` call is split into launches of `grid_size * VALUES_PER_THREAD`
values so that the launch configuration shapes the work the same way a device
kernel grid would.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import numpy as np

from ..config import BenchmarkConfig, ConfigCandidate, OutputType
from ..distributions import DistributionDescriptor
from ..errors import DeviceError
from ..generators import (
    DEVICE_ERROR_INVALID_VALUE,
    DEVICE_ERROR_OUT_OF_MEMORY,
    STATUS_LAUNCH_FAILURE,
    STATUS_SUCCESS,
    STATUS_TYPE_ERROR,
    GeneratorFamily,
)

VALUES_PER_THREAD = 4

HOST_STREAM = "host"


class HostEvent:
    __slots__ = ("timestamp_ns", "destroyed")

    def __init__(self) -> None:
        self.timestamp_ns: int | None = None
        self.destroyed = False


class HostRuntime:
    """Device runtime backed by host memory and a monotonic clock."""

    def default_stream(self) -> Any:
        return HOST_STREAM

    def allocate(self, count: int, output_type: OutputType) -> np.ndarray:
        try:
            return np.empty(count, dtype=output_type.numpy_dtype)
        except MemoryError as e:
            raise DeviceError(DEVICE_ERROR_OUT_OF_MEMORY, f"cannot allocate {count} x {output_type.key}") from e

    def free(self, buffer: Any) -> None:
        if not isinstance(buffer, np.ndarray):
            raise DeviceError(DEVICE_ERROR_INVALID_VALUE, "not a host buffer")

    def create_event(self) -> HostEvent:
        return HostEvent()

    def destroy_event(self, event: HostEvent) -> None:
        if event.destroyed:
            raise DeviceError(DEVICE_ERROR_INVALID_VALUE, "event already destroyed")
        event.destroyed = True

    def record_event(self, event: HostEvent, stream: Any) -> None:
        if event.destroyed:
            raise DeviceError(DEVICE_ERROR_INVALID_VALUE, "event destroyed")
        event.timestamp_ns = time.perf_counter_ns()

    def synchronize_event(self, event: HostEvent) -> None:
        if event.timestamp_ns is None:
            raise DeviceError(DEVICE_ERROR_INVALID_VALUE, "event never recorded")

    def elapsed_time_ms(self, start: HostEvent, stop: HostEvent) -> float:
        if start.timestamp_ns is None or stop.timestamp_ns is None:
            raise DeviceError(DEVICE_ERROR_INVALID_VALUE, "event never recorded")
        return (stop.timestamp_ns - start.timestamp_ns) / 1e6

    def synchronize(self) -> None:
        return None


def _float_dtype(output_type: OutputType) -> np.dtype:
    # numpy samples half precision through float32.
    return np.dtype(np.float64 if output_type.key == "double" else np.float32)


def _unit_interval(x: np.ndarray, output_type: OutputType) -> np.ndarray:
    """Map [0, 1) samples to (0, 1] in the output precision."""
    out = (1.0 - x).astype(output_type.numpy_dtype)
    return np.maximum(out, np.finfo(out.dtype).smallest_subnormal)


class NumpyEngine:
    def __init__(self, name: str, bit_generator: np.random.BitGenerator, candidate: ConfigCandidate) -> None:
        self._name = name
        self._rng = np.random.Generator(bit_generator)
        self._launch_size = candidate.grid_size * VALUES_PER_THREAD
        self._stream: Any = None

    def set_stream(self, stream: Any) -> None:
        self._stream = stream

    def identity(self) -> str:
        return self._name

    def _sample(self, n: int, distribution: DistributionDescriptor) -> np.ndarray | None:
        output_type = distribution.output_type
        kind = distribution.kind
        if kind == "uniform" and output_type.is_integral:
            dt = np.dtype(output_type.numpy_dtype)
            return self._rng.integers(0, np.iinfo(dt).max, size=n, dtype=dt, endpoint=True)
        if kind == "uniform" and output_type.is_floating:
            return _unit_interval(self._rng.random(n, dtype=_float_dtype(output_type)), output_type)
        if kind == "normal" and output_type.is_floating:
            x = self._rng.standard_normal(n, dtype=_float_dtype(output_type))
            return x * distribution.stddev + distribution.mean
        if kind == "log_normal" and output_type.is_floating:
            x = self._rng.standard_normal(n, dtype=_float_dtype(output_type))
            return np.exp(x * distribution.stddev + distribution.mean)
        if kind == "poisson" and output_type.is_integral:
            return self._rng.poisson(distribution.lam, size=n)
        return None

    def generate(self, buffer: np.ndarray, count: int, distribution: DistributionDescriptor) -> int:
        for offset in range(0, count, self._launch_size):
            n = min(self._launch_size, count - offset)
            try:
                values = self._sample(n, distribution)
            except ValueError:
                # numpy rejects out-of-domain parameters at sampling time.
                return STATUS_LAUNCH_FAILURE
            if values is None:
                return STATUS_TYPE_ERROR
            buffer[offset : offset + n] = values
        return STATUS_SUCCESS


def _family(name: str, make_bit_generator: Callable[[int], np.random.BitGenerator]) -> GeneratorFamily:
    def factory(candidate: ConfigCandidate, config: BenchmarkConfig) -> NumpyEngine:
        return NumpyEngine(name, make_bit_generator(config.seed), candidate)

    return GeneratorFamily(name=name, factory=factory)


HOST_FAMILIES: dict[str, GeneratorFamily] = {
    "philox4x32_10": _family("philox4x32_10", np.random.Philox),
    "mt19937": _family("mt19937", np.random.MT19937),
    "pcg64": _family("pcg64", np.random.PCG64),
    "sfc64": _family("sfc64", np.random.SFC64),
}
