from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import attrs
from jsonschema import Draft202012Validator

from .config import OUTPUT_TYPES, STANDARD_UNSIGNED_KEY, WIDEST_UNSIGNED_KEY, BenchmarkConfig, OutputType
from .distributions import (
    DistributionDescriptor,
    log_normal_distribution,
    normal_distribution,
    poisson_distribution,
    uniform_distribution,
)

# Per category: (distribution kind, restricted to this type key or None for all types).
INTEGRAL_DISTRIBUTIONS: tuple[tuple[str, str | None], ...] = (
    ("uniform", None),
    ("poisson", STANDARD_UNSIGNED_KEY),
)
FLOATING_DISTRIBUTIONS: tuple[tuple[str, str | None], ...] = (
    ("uniform", None),
    ("normal", None),
    ("log_normal", None),
)


@attrs.define(frozen=True, slots=True)
class ExclusionTable:
    """(output type key, generator name) pairs a generator cannot produce."""

    entries: frozenset[tuple[str, str]] = attrs.field(factory=frozenset, converter=frozenset)

    def supports(self, output_type: OutputType | str, generator: Any) -> bool:
        type_key = output_type if isinstance(output_type, str) else output_type.key
        gen_name = generator if isinstance(generator, str) else generator.name
        return (type_key, gen_name) not in self.entries

    def merged(self, other: "ExclusionTable") -> "ExclusionTable":
        return ExclusionTable(self.entries | other.entries)

    def to_dict(self) -> dict[str, Any]:
        return {"exclusions": [{"output_type": t, "generator": g} for t, g in sorted(self.entries)]}


# xorwow cannot produce 64-bit unsigned values.
DEFAULT_EXCLUSIONS = ExclusionTable({(WIDEST_UNSIGNED_KEY, "xorwow")})


def _schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "exclusions.schema.json"


def exclusions_from_dict(data: dict[str, Any]) -> ExclusionTable:
    schema = json.loads(_schema_path().read_text())
    Draft202012Validator(schema).validate(data)

    entries: set[tuple[str, str]] = set()
    for item in data.get("exclusions", []):
        type_key = item["output_type"]
        if type_key not in OUTPUT_TYPES:
            raise KeyError(f"Unknown output type={type_key!r} in exclusion table. Known: {sorted(OUTPUT_TYPES)}")
        entries.add((type_key, item["generator"]))
    return ExclusionTable(entries)


def load_exclusions(path: Path) -> ExclusionTable:
    if not path.exists():
        raise FileNotFoundError(f"Exclusion table not found: {path}")
    return exclusions_from_dict(json.loads(path.read_text()))


def _build(kind: str, output_type: OutputType, config: BenchmarkConfig) -> DistributionDescriptor:
    if kind == "uniform":
        return uniform_distribution(output_type, two_type=output_type.key == WIDEST_UNSIGNED_KEY)
    if kind == "normal":
        return normal_distribution(output_type, config)
    if kind == "log_normal":
        return log_normal_distribution(output_type, config)
    if kind == "poisson":
        return poisson_distribution(output_type, config)
    raise ValueError(f"Unknown distribution kind: {kind!r}")


def _category_table(output_type: OutputType) -> Iterable[tuple[str, str | None]]:
    if output_type.is_integral:
        return INTEGRAL_DISTRIBUTIONS
    if output_type.is_floating:
        return FLOATING_DISTRIBUTIONS
    return ()


def applicable_distributions(output_type: OutputType, config: BenchmarkConfig) -> tuple[DistributionDescriptor, ...]:
    out: list[DistributionDescriptor] = []
    for kind, only_for in _category_table(output_type):
        if only_for is not None and only_for != output_type.key:
            continue
        out.append(_build(kind, output_type, config))
    return tuple(out)
