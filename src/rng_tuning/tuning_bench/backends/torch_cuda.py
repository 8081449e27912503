"""CUDA backend built on PyTorch tensors, streams and timing events.

Requires the `cuda` extra (`torch` with CUDA support).
"""

from __future__ import annotations

from typing import Any

import torch

from ..config import BenchmarkConfig, ConfigCandidate, OutputType
from ..distributions import DistributionDescriptor
from ..errors import DeviceError
from ..generators import (
    DEVICE_ERROR_INVALID_VALUE,
    DEVICE_ERROR_OUT_OF_MEMORY,
    DEVICE_ERROR_UNKNOWN,
    STATUS_LAUNCH_FAILURE,
    STATUS_SUCCESS,
    STATUS_TYPE_ERROR,
    GeneratorFamily,
)

VALUES_PER_THREAD = 4

_TORCH_DTYPES: dict[str, torch.dtype] = {
    "uint8": torch.uint8,
    "half": torch.float16,
    "float": torch.float32,
    "double": torch.float64,
}

# torch's random_ has no CUDA kernels for the wider unsigned types.
TORCH_UNSUPPORTED_TYPES: tuple[str, ...] = ("uint16", "uint32", "uint64")


class TorchCudaRuntime:
    def __init__(self, device: str = "cuda") -> None:
        if not torch.cuda.is_available():
            raise RuntimeError("CUDA required - NVIDIA GPU and a CUDA build of torch must be available")
        self.device = torch.device(device)

    def default_stream(self) -> Any:
        return torch.cuda.current_stream(self.device)

    def allocate(self, count: int, output_type: OutputType) -> torch.Tensor:
        dtype = _TORCH_DTYPES.get(output_type.key)
        if dtype is None:
            raise DeviceError(DEVICE_ERROR_INVALID_VALUE, f"no torch dtype for {output_type.key}")
        try:
            return torch.empty(count, dtype=dtype, device=self.device)
        except torch.cuda.OutOfMemoryError as e:
            raise DeviceError(DEVICE_ERROR_OUT_OF_MEMORY, str(e)) from e

    def free(self, buffer: Any) -> None:
        del buffer

    def create_event(self) -> torch.cuda.Event:
        try:
            return torch.cuda.Event(enable_timing=True)
        except RuntimeError as e:
            raise DeviceError(DEVICE_ERROR_UNKNOWN, str(e)) from e

    def destroy_event(self, event: Any) -> None:
        del event

    def record_event(self, event: torch.cuda.Event, stream: Any) -> None:
        try:
            event.record(stream)
        except RuntimeError as e:
            raise DeviceError(DEVICE_ERROR_UNKNOWN, str(e)) from e

    def synchronize_event(self, event: torch.cuda.Event) -> None:
        try:
            event.synchronize()
        except RuntimeError as e:
            raise DeviceError(DEVICE_ERROR_UNKNOWN, str(e)) from e

    def elapsed_time_ms(self, start: torch.cuda.Event, stop: torch.cuda.Event) -> float:
        try:
            return float(start.elapsed_time(stop))
        except RuntimeError as e:
            raise DeviceError(DEVICE_ERROR_UNKNOWN, str(e)) from e

    def synchronize(self) -> None:
        try:
            torch.cuda.synchronize(self.device)
        except RuntimeError as e:
            raise DeviceError(DEVICE_ERROR_UNKNOWN, str(e)) from e


class TorchPhiloxEngine:
    """torch's CUDA Philox generator, launched in grid-sized chunks."""

    def __init__(self, candidate: ConfigCandidate, config: BenchmarkConfig) -> None:
        self._gen = torch.Generator(device="cuda")
        self._gen.manual_seed(config.seed)
        self._launch_size = candidate.grid_size * VALUES_PER_THREAD
        self._stream: Any = None

    def set_stream(self, stream: Any) -> None:
        self._stream = stream

    def identity(self) -> str:
        return "torch_philox"

    def _fill(self, out: torch.Tensor, distribution: DistributionDescriptor) -> bool:
        kind = distribution.kind
        if kind == "uniform" and distribution.output_type.is_integral:
            out.random_(generator=self._gen)
        elif kind == "uniform":
            # (0, 1], matching the host backend.
            out.uniform_(0.0, 1.0, generator=self._gen)
            out.neg_().add_(1.0)
            out.clamp_(min=torch.finfo(out.dtype).tiny)
        elif kind == "normal":
            out.normal_(distribution.mean, distribution.stddev, generator=self._gen)
        elif kind == "log_normal":
            out.log_normal_(distribution.mean, distribution.stddev, generator=self._gen)
        else:
            return False
        return True

    def generate(self, buffer: torch.Tensor, count: int, distribution: DistributionDescriptor) -> int:
        stream = self._stream if self._stream is not None else torch.cuda.current_stream()
        try:
            with torch.cuda.stream(stream):
                for offset in range(0, count, self._launch_size):
                    n = min(self._launch_size, count - offset)
                    if not self._fill(buffer.narrow(0, offset, n), distribution):
                        return STATUS_TYPE_ERROR
        except RuntimeError:
            return STATUS_LAUNCH_FAILURE
        return STATUS_SUCCESS


TORCH_FAMILIES: dict[str, GeneratorFamily] = {
    "torch_philox": GeneratorFamily(name="torch_philox", factory=TorchPhiloxEngine),
}
