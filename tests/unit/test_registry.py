from __future__ import annotations

from collections import Counter

from rng_tuning.tuning_bench.capabilities import ExclusionTable
from rng_tuning.tuning_bench.config import OUTPUT_TYPES, BenchmarkConfig, ConfigCandidate, TuningSpace
from rng_tuning.tuning_bench.registry import (
    BenchmarkVariant,
    GeneratorBenchmarkFactory,
    add_all_benchmarks_for_generator,
    benchmark_name,
    build_matrix,
)

SPACE = TuningSpace(thread_options=[64, 128, 256], block_options=[8, 16], min_grid_size=1024)


def _build(runtime, family, *, space: TuningSpace = SPACE, exclusions: ExclusionTable | None = None) -> list[BenchmarkVariant]:
    out: list[BenchmarkVariant] = []
    add_all_benchmarks_for_generator(
        out,
        family,
        space=space,
        config=BenchmarkConfig(size=1024),
        runtime=runtime,
        exclusions=ExclusionTable() if exclusions is None else exclusions,
    )
    return out


def test_benchmark_name_format() -> None:
    assert (
        benchmark_name("xorwow", "uniform-uint32", ConfigCandidate(threads=256, blocks=64))
        == "xorwow_uniform-uint32_t256_b64"
    )


def test_small_grids_never_registered(fake_runtime, family_factory) -> None:
    variants = _build(fake_runtime, family_factory("philox", fake_runtime))
    grids = {v.candidate.grid_size for v in variants}
    assert min(grids) >= SPACE.min_grid_size
    pairs = {(v.candidate.threads, v.candidate.blocks) for v in variants}
    assert (64, 8) not in pairs
    assert (64, 16) in pairs


def test_one_variant_per_distribution_per_candidate(fake_runtime, family_factory) -> None:
    variants = _build(fake_runtime, family_factory("philox", fake_runtime))
    n_candidates = len(SPACE.candidates())
    per_dist = Counter(v.distribution.name for v in variants)
    # 4 integral uniform + 1 poisson + 3 floating types x 3 distributions.
    assert len(per_dist) == 4 + 1 + 9
    assert set(per_dist.values()) == {n_candidates}
    assert len(variants) == 14 * n_candidates


def test_names_unique_per_generator(fake_runtime, family_factory) -> None:
    variants = _build(fake_runtime, family_factory("philox", fake_runtime))
    names = [v.name for v in variants]
    assert len(names) == len(set(names))


def test_poisson_only_for_uint32(fake_runtime, family_factory) -> None:
    variants = _build(fake_runtime, family_factory("philox", fake_runtime))
    poisson_types = {v.output_type.key for v in variants if v.distribution.kind == "poisson"}
    assert poisson_types == {"uint32"}


def test_floating_types_have_three_distributions_per_candidate(fake_runtime, family_factory) -> None:
    variants = _build(fake_runtime, family_factory("philox", fake_runtime))
    for type_key in ("half", "float", "double"):
        for candidate in SPACE.candidates():
            kinds = sorted(
                v.distribution.kind for v in variants if v.output_type.key == type_key and v.candidate == candidate
            )
            assert kinds == ["log_normal", "normal", "uniform"]


def test_threshold_scenario(fake_runtime, family_factory) -> None:
    space = TuningSpace(thread_options=[64, 128], block_options=[8], min_grid_size=600)
    variants = _build(fake_runtime, family_factory("xorwow", fake_runtime), space=space)
    assert {(v.candidate.threads, v.candidate.blocks) for v in variants} == {(128, 8)}
    assert all(v.name.endswith("_t128_b8") for v in variants)


def test_excluded_type_yields_no_variants(fake_runtime, family_factory) -> None:
    family = family_factory("xorwow", fake_runtime)
    big = TuningSpace(thread_options=[64, 128, 256, 512, 1024], block_options=[64, 128, 256, 512], min_grid_size=1)
    out: list[BenchmarkVariant] = []
    factory = GeneratorBenchmarkFactory(
        family,
        space=big,
        config=BenchmarkConfig(),
        runtime=fake_runtime,
        benchmarks=out,
        exclusions=ExclusionTable({("uint64", "xorwow")}),
    )
    assert factory.add_benchmarks(OUTPUT_TYPES["uint64"]) == 0
    assert out == []
    assert factory.add_benchmarks(OUTPUT_TYPES["uint8"]) == 20


def test_exclusion_is_per_generator(fake_runtime, family_factory) -> None:
    exclusions = ExclusionTable({("uint64", "xorwow")})
    xorwow = _build(fake_runtime, family_factory("xorwow", fake_runtime), exclusions=exclusions)
    philox = _build(fake_runtime, family_factory("philox", fake_runtime), exclusions=exclusions)
    assert "uint64" not in {v.output_type.key for v in xorwow}
    assert "uint64" in {v.output_type.key for v in philox}


def test_construction_does_no_device_work(runtime_factory, family_factory) -> None:
    runtime = runtime_factory(fail_on={op: 1 for op in ("allocate", "create_event", "synchronize", "default_stream")})
    variants = _build(runtime, family_factory("philox", runtime))
    assert variants
    assert runtime.calls == []


def test_construction_is_idempotent(fake_runtime, family_factory) -> None:
    family = family_factory("philox", fake_runtime)
    first = _build(fake_runtime, family)
    second = _build(fake_runtime, family)
    assert [v.name for v in first] == [v.name for v in second]
    assert [v.task for v in first] == [v.task for v in second]


def test_variants_are_appended_to_existing_list(fake_runtime, family_factory) -> None:
    out = _build(fake_runtime, family_factory("a", fake_runtime))
    before = len(out)
    added = add_all_benchmarks_for_generator(
        out,
        family_factory("b", fake_runtime),
        space=SPACE,
        config=BenchmarkConfig(size=1024),
        runtime=fake_runtime,
        exclusions=ExclusionTable(),
    )
    assert len(out) == before + added
    assert [v.generator.name for v in out[:before]] == ["a"] * before


def test_build_matrix_orders_by_generator_then_type(fake_runtime, family_factory) -> None:
    variants = build_matrix(
        [family_factory("a", fake_runtime), family_factory("b", fake_runtime)],
        space=SPACE,
        config=BenchmarkConfig(size=1024),
        runtime=fake_runtime,
        output_types=[OUTPUT_TYPES["float"], OUTPUT_TYPES["uint8"]],
    )
    order = list(dict.fromkeys((v.generator.name, v.output_type.key, v.distribution.kind) for v in variants))
    assert order == [
        ("a", "float", "uniform"),
        ("a", "float", "normal"),
        ("a", "float", "log_normal"),
        ("a", "uint8", "uniform"),
        ("b", "float", "uniform"),
        ("b", "float", "normal"),
        ("b", "float", "log_normal"),
        ("b", "uint8", "uniform"),
    ]


def test_variant_to_dict(fake_runtime, family_factory) -> None:
    v = _build(fake_runtime, family_factory("philox", fake_runtime))[0]
    d = v.to_dict()
    assert d["name"] == v.name
    assert d["generator"] == "philox"
    assert d["grid_size"] == d["threads"] * d["blocks"]
