from __future__ import annotations

from typing import Any, Literal

import attrs

from .config import BenchmarkConfig, OutputType

DistributionKind = Literal["uniform", "normal", "log_normal", "poisson"]
DiscreteMethod = Literal["alias"]

_KIND_LABELS: dict[str, str] = {
    "uniform": "uniform",
    "normal": "normal",
    "log_normal": "log-normal",
    "poisson": "poisson",
}


@attrs.define(frozen=True, slots=True)
class DistributionDescriptor:
    kind: DistributionKind
    output_type: OutputType
    # Uniform distributions carry their bound types; the widest unsigned width
    # uses a (lower, upper) pair, the other types a single type.
    bound_types: tuple[str, ...] = ()
    mean: float | None = None
    stddev: float | None = None
    lam: float | None = None
    discrete_method: DiscreteMethod | None = None

    @property
    def name(self) -> str:
        label = _KIND_LABELS[self.kind]
        if self.discrete_method is not None:
            label = f"{label}-{self.discrete_method}"
        return f"{label}-{self.output_type.key}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind, "name": self.name, "output_type": self.output_type.key}
        if self.bound_types:
            out["bound_types"] = list(self.bound_types)
        if self.mean is not None:
            out["mean"] = self.mean
        if self.stddev is not None:
            out["stddev"] = self.stddev
        if self.lam is not None:
            out["lambda"] = self.lam
        if self.discrete_method is not None:
            out["discrete_method"] = self.discrete_method
        return out


def uniform_distribution(output_type: OutputType, *, two_type: bool = False) -> DistributionDescriptor:
    bounds = (output_type.key, output_type.key) if two_type else (output_type.key,)
    return DistributionDescriptor(kind="uniform", output_type=output_type, bound_types=bounds)


def normal_distribution(output_type: OutputType, config: BenchmarkConfig) -> DistributionDescriptor:
    return DistributionDescriptor(
        kind="normal", output_type=output_type, mean=config.normal_mean, stddev=config.normal_stddev
    )


def log_normal_distribution(output_type: OutputType, config: BenchmarkConfig) -> DistributionDescriptor:
    return DistributionDescriptor(
        kind="log_normal", output_type=output_type, mean=config.log_normal_mean, stddev=config.log_normal_stddev
    )


def poisson_distribution(output_type: OutputType, config: BenchmarkConfig) -> DistributionDescriptor:
    return DistributionDescriptor(
        kind="poisson", output_type=output_type, lam=config.poisson_lambda, discrete_method="alias"
    )
