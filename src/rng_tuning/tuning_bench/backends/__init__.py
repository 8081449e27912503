"""Device runtime and generator-engine implementations."""

from __future__ import annotations

from collections.abc import Callable

import attrs

from ..capabilities import ExclusionTable
from ..generators import DeviceRuntime, GeneratorFamily

BACKENDS: tuple[str, ...] = ("host", "torch_cuda")


@attrs.define(frozen=True, slots=True)
class Backend:
    name: str
    runtime_factory: Callable[[], DeviceRuntime] = attrs.field(eq=False, repr=False)
    families: dict[str, GeneratorFamily] = attrs.field(eq=False)
    exclusions: ExclusionTable = attrs.field(factory=ExclusionTable)

    def select(self, names: list[str] | None) -> list[GeneratorFamily]:
        if not names:
            return list(self.families.values())
        out: list[GeneratorFamily] = []
        for n in names:
            if n not in self.families:
                raise KeyError(f"Unknown engine={n!r} for backend {self.name!r}. Known: {sorted(self.families)}")
            out.append(self.families[n])
        return out


def get_backend(name: str) -> Backend:
    if name == "host":
        from .host import HOST_FAMILIES, HostRuntime

        return Backend(name="host", runtime_factory=HostRuntime, families=HOST_FAMILIES)
    if name == "torch_cuda":
        # torch is imported only when this backend is requested.
        from .torch_cuda import TORCH_FAMILIES, TORCH_UNSUPPORTED_TYPES, TorchCudaRuntime

        exclusions = ExclusionTable({(t, f) for t in TORCH_UNSUPPORTED_TYPES for f in TORCH_FAMILIES})
        return Backend(name="torch_cuda", runtime_factory=TorchCudaRuntime, families=TORCH_FAMILIES, exclusions=exclusions)
    raise KeyError(f"Unknown backend={name!r}. Known: {list(BACKENDS)}")
