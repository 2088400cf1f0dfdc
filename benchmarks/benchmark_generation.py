"""Performance benchmarks for block model generation."""

import time
from typing import Dict

from blocksmith import BlockModelGenerator, GenerationRequest, GeneratorConfig, GridSpec, ModelCache
from blocksmith.objects import PatternType


def benchmark_pattern(
    pattern: str,
    counts: tuple = (50, 50, 20),
    seed: int = 42,
) -> Dict[str, float]:
    """Benchmark generation of one pattern.

    Args:
        pattern: Pattern id.
        counts: Grid cell counts (nx, ny, nz).
        seed: Random seed.

    Returns:
        Dictionary with timing results.
    """
    grid = GridSpec(origin=(0.0, 0.0, 0.0), cell_size=(10.0, 10.0, 10.0), counts=counts)
    generator = BlockModelGenerator(cache=ModelCache(capacity=0))

    start = time.perf_counter()
    model = generator.generate_model(GenerationRequest(grid, pattern, seed=seed))
    total_time = time.perf_counter() - start

    return {
        "n_cells": grid.n_cells,
        "total_time_seconds": total_time,
        "blocks_per_second": grid.n_cells / total_time,
        "ore_fraction": model.statistics.ore_fraction,
    }


def benchmark_all_patterns(counts: tuple = (50, 50, 20)) -> Dict[str, Dict[str, float]]:
    """Benchmark every pattern on the same grid."""
    results = {}
    for pattern in PatternType:
        print(f"  Benchmarking {pattern.value}...")
        results[pattern.value] = benchmark_pattern(pattern.value, counts)
    return results


def benchmark_scalability(pattern: str = "porphyry_ore") -> Dict[str, Dict[str, float]]:
    """Benchmark one pattern across grid sizes.

    Returns:
        Dictionary with results for different sizes.
    """
    results = {}

    configs = [
        ("small", (20, 20, 10)),
        ("medium", (50, 50, 20)),
        ("large", (100, 100, 40)),
    ]

    for size_name, counts in configs:
        nx, ny, nz = counts
        print(f"  Benchmarking {size_name} ({nx}×{ny}×{nz} = {nx * ny * nz:,} cells)...")
        results[size_name] = benchmark_pattern(pattern, counts)

    return results


def benchmark_chunk_size(
    counts: tuple = (100, 100, 40),
    chunk_sizes: tuple = (5_000, 20_000, 100_000),
) -> Dict[str, Dict[str, float]]:
    """Benchmark the effect of chunk size on chunked generation."""
    grid = GridSpec(origin=(0.0, 0.0, 0.0), cell_size=(10.0, 10.0, 10.0), counts=counts)
    request = GenerationRequest(grid, "porphyry_ore", seed=42)
    results = {}

    for chunk_size in chunk_sizes:
        print(f"  Benchmarking chunk_size={chunk_size:,}...")
        config = GeneratorConfig(chunk_threshold=1, chunk_size=chunk_size)
        generator = BlockModelGenerator(config, cache=ModelCache(capacity=0))
        reports = []

        start = time.perf_counter()
        generator.generate_model(request, progress=reports.append)
        total_time = time.perf_counter() - start

        results[str(chunk_size)] = {
            "n_chunks": len(reports),
            "total_time_seconds": total_time,
            "blocks_per_second": grid.n_cells / total_time,
        }

    return results


def benchmark_cache_hit(counts: tuple = (100, 100, 40)) -> Dict[str, float]:
    """Compare a fresh generation with a cache hit."""
    grid = GridSpec(origin=(0.0, 0.0, 0.0), cell_size=(10.0, 10.0, 10.0), counts=counts)
    request = GenerationRequest(grid, "salt_dome", seed=42)
    generator = BlockModelGenerator()

    start = time.perf_counter()
    generator.generate_model(request)
    fresh_time = time.perf_counter() - start

    start = time.perf_counter()
    generator.generate_model(request)
    cached_time = time.perf_counter() - start

    return {
        "n_cells": grid.n_cells,
        "fresh_time_seconds": fresh_time,
        "cached_time_seconds": cached_time,
        "speedup": fresh_time / cached_time if cached_time > 0 else float("inf"),
    }


def run_all_generation_benchmarks() -> Dict[str, Dict]:
    """Run all generation benchmarks and return results.

    Returns:
        Dictionary with all benchmark results.
    """
    results = {}

    print("Benchmarking all patterns...")
    results["patterns"] = benchmark_all_patterns()

    print("Benchmarking porphyry scalability...")
    results["scalability"] = benchmark_scalability()

    print("Benchmarking chunk sizes...")
    results["chunk_size"] = benchmark_chunk_size()

    print("Benchmarking cache hits...")
    results["cache"] = benchmark_cache_hit()

    return results


if __name__ == "__main__":
    """Run benchmarks and print results."""
    results = run_all_generation_benchmarks()

    print("\n" + "=" * 60)
    print("GENERATION PERFORMANCE BENCHMARKS")
    print("=" * 60)

    print("\nPatterns (50×50×20 grid):")
    for pattern, data in results["patterns"].items():
        print(f"  {pattern:16s}: {data['total_time_seconds'] * 1000:8.1f} ms  ({data['blocks_per_second']:10,.0f} blocks/s)")

    print("\nPorphyry Scalability:")
    for size, data in results["scalability"].items():
        print(f"  {size:8s}: {data['n_cells']:9,d} cells in {data['total_time_seconds']:6.2f} s")

    print("\nChunk Size:")
    for size, data in results["chunk_size"].items():
        print(f"  {size:>8s}: {data['n_chunks']:4d} chunks in {data['total_time_seconds']:6.2f} s")

    cache = results["cache"]
    print(f"\nCache hit speedup: {cache['speedup']:.0f}x")
