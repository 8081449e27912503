from __future__ import annotations

import os
from collections.abc import Iterable, Mapping, Sequence
from typing import Literal

import attrs

TypeCategory = Literal["integral", "floating"]


@attrs.define(frozen=True, slots=True)
class OutputType:
    key: str
    category: TypeCategory
    itemsize: int
    numpy_dtype: str

    @property
    def is_integral(self) -> bool:
        return self.category == "integral"

    @property
    def is_floating(self) -> bool:
        return self.category == "floating"


OUTPUT_TYPES: dict[str, OutputType] = {
    "uint8": OutputType(key="uint8", category="integral", itemsize=1, numpy_dtype="uint8"),
    "uint16": OutputType(key="uint16", category="integral", itemsize=2, numpy_dtype="uint16"),
    "uint32": OutputType(key="uint32", category="integral", itemsize=4, numpy_dtype="uint32"),
    "uint64": OutputType(key="uint64", category="integral", itemsize=8, numpy_dtype="uint64"),
    "half": OutputType(key="half", category="floating", itemsize=2, numpy_dtype="float16"),
    "float": OutputType(key="float", category="floating", itemsize=4, numpy_dtype="float32"),
    "double": OutputType(key="double", category="floating", itemsize=8, numpy_dtype="float64"),
}

# The "standard unsigned" width; the only integral type that also gets poisson.
STANDARD_UNSIGNED_KEY = "uint32"
# The widest unsigned width; its uniform distribution uses the two-type signature.
WIDEST_UNSIGNED_KEY = "uint64"

# Registration order of output types for one generator family.
DEFAULT_OUTPUT_TYPE_ORDER: tuple[str, ...] = ("uint32", "uint8", "uint16", "uint64", "float", "half", "double")

DEFAULT_THREAD_OPTIONS: tuple[int, ...] = (64, 128, 256, 512, 1024)
DEFAULT_BLOCK_OPTIONS: tuple[int, ...] = (16, 32, 64, 128, 256, 512, 1024, 2048)
DEFAULT_MIN_GRID_SIZE = 32768

DEFAULT_TRIAL_SIZE = 1 << 24
DEFAULT_ITERATIONS = 10

ENV_THREAD_OPTIONS = "RNG_TUNING_THREAD_OPTIONS"
ENV_BLOCK_OPTIONS = "RNG_TUNING_BLOCK_OPTIONS"
ENV_MIN_GRID_SIZE = "RNG_TUNING_MIN_GRID_SIZE"


def _positive_ints(instance: object, attribute: attrs.Attribute, value: tuple[int, ...]) -> None:
    if not value:
        raise ValueError(f"{attribute.name} must not be empty")
    for v in value:
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            raise ValueError(f"{attribute.name} must contain positive integers, got {v!r}")


def _positive_int(instance: object, attribute: attrs.Attribute, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{attribute.name} must be a positive integer, got {value!r}")


def _positive_number(instance: object, attribute: attrs.Attribute, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value > 0:
        raise ValueError(f"{attribute.name} must be positive, got {value!r}")


@attrs.define(frozen=True, slots=True)
class ConfigCandidate:
    threads: int
    blocks: int

    @property
    def grid_size(self) -> int:
        return self.threads * self.blocks


@attrs.define(frozen=True, slots=True)
class TuningSpace:
    """Candidate launch configurations explored by the tuning benchmarks.

    Built once at startup from the two option lists and the grid-size threshold,
    then passed explicitly to the matrix builder.
    """

    thread_options: tuple[int, ...] = attrs.field(converter=tuple, validator=_positive_ints)
    block_options: tuple[int, ...] = attrs.field(converter=tuple, validator=_positive_ints)
    min_grid_size: int = attrs.field(default=DEFAULT_MIN_GRID_SIZE, validator=_positive_int)

    def candidates(self) -> tuple[ConfigCandidate, ...]:
        """Cross product (threads outer, blocks inner) with small grids dropped."""
        out: list[ConfigCandidate] = []
        for threads in self.thread_options:
            for blocks in self.block_options:
                candidate = ConfigCandidate(threads=threads, blocks=blocks)
                # A grid this small would not occupy the device meaningfully.
                if candidate.grid_size < self.min_grid_size:
                    continue
                out.append(candidate)
        return tuple(out)

    def to_dict(self) -> dict[str, object]:
        return {
            "thread_options": list(self.thread_options),
            "block_options": list(self.block_options),
            "min_grid_size": self.min_grid_size,
        }


@attrs.define(frozen=True, slots=True)
class BenchmarkConfig:
    size: int = attrs.field(default=DEFAULT_TRIAL_SIZE, validator=_positive_int)
    poisson_lambda: float = attrs.field(default=10.0, validator=_positive_number)
    normal_mean: float = 0.0
    normal_stddev: float = attrs.field(default=1.0, validator=_positive_number)
    log_normal_mean: float = 0.0
    log_normal_stddev: float = attrs.field(default=1.0, validator=_positive_number)
    seed: int = 12345

    def to_dict(self) -> dict[str, object]:
        return attrs.asdict(self)


def parse_int_list(v: str) -> tuple[int, ...]:
    parts = [p.strip() for p in v.split(",") if p.strip()]
    if not parts:
        raise ValueError(f"Expected a comma-separated list of integers, got {v!r}")
    try:
        return tuple(int(p) for p in parts)
    except ValueError:
        raise ValueError(f"Expected a comma-separated list of integers, got {v!r}") from None


def tuning_space_from_env(env: Mapping[str, str] | None = None) -> TuningSpace:
    """Default tuning space, with the option lists overridable from the environment."""
    env = os.environ if env is None else env
    threads = env.get(ENV_THREAD_OPTIONS)
    blocks = env.get(ENV_BLOCK_OPTIONS)
    min_grid = env.get(ENV_MIN_GRID_SIZE)
    return TuningSpace(
        thread_options=parse_int_list(threads) if threads else DEFAULT_THREAD_OPTIONS,
        block_options=parse_int_list(blocks) if blocks else DEFAULT_BLOCK_OPTIONS,
        min_grid_size=int(min_grid) if min_grid else DEFAULT_MIN_GRID_SIZE,
    )


def iter_output_types(keys: Iterable[str] | None = None) -> Sequence[OutputType]:
    if keys is None:
        return [OUTPUT_TYPES[k] for k in DEFAULT_OUTPUT_TYPE_ORDER]
    out: list[OutputType] = []
    for k in keys:
        if k not in OUTPUT_TYPES:
            raise KeyError(f"Unknown output type={k!r}. Known: {sorted(OUTPUT_TYPES)}")
        out.append(OUTPUT_TYPES[k])
    return out
