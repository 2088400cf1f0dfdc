"""Run all performance benchmarks and generate report."""

import json
from pathlib import Path

from benchmark_generation import run_all_generation_benchmarks


def main():
    """Run all benchmarks and save results."""
    print("=" * 60)
    print("BLOCKSMITH PERFORMANCE BENCHMARK SUITE")
    print("=" * 60)
    print()

    all_results = {}

    print("\n[1/1] Generation Benchmarks")
    print("-" * 60)
    all_results["generation"] = run_all_generation_benchmarks()

    # Save results to JSON
    output_file = Path("benchmarks/results.json")
    output_file.parent.mkdir(exist_ok=True)

    # Convert numpy types to native Python types for JSON serialization
    def convert_to_native(obj):
        """Convert numpy types to native Python types."""
        if isinstance(obj, dict):
            return {k: convert_to_native(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [convert_to_native(item) for item in obj]
        elif hasattr(obj, "item"):  # numpy scalar
            return obj.item()
        else:
            return obj

    json_results = convert_to_native(all_results)

    with open(output_file, "w") as f:
        json.dump(json_results, f, indent=2)

    print(f"\n✓ Results saved to {output_file}")

    # Print summary
    print("\n" + "=" * 60)
    print("BENCHMARK SUMMARY")
    print("=" * 60)

    patterns = all_results["generation"]["patterns"]
    fastest = min(patterns, key=lambda name: patterns[name]["total_time_seconds"])
    slowest = max(patterns, key=lambda name: patterns[name]["total_time_seconds"])
    print(f"\nPatterns (50×50×20 grid):")
    print(f"  Fastest: {fastest:16s} {patterns[fastest]['total_time_seconds'] * 1000:8.1f} ms")
    print(f"  Slowest: {slowest:16s} {patterns[slowest]['total_time_seconds'] * 1000:8.1f} ms")

    scale = all_results["generation"]["scalability"]
    print(f"\nPorphyry Generation:")
    print(f"  Small (4,000 cells):    {scale['small']['total_time_seconds'] * 1000:8.1f} ms")
    print(f"  Large (400,000 cells):  {scale['large']['total_time_seconds'] * 1000:8.1f} ms")

    cache = all_results["generation"]["cache"]
    print(f"\nCache hit: {cache['cached_time_seconds'] * 1000:.2f} ms vs {cache['fresh_time_seconds'] * 1000:.1f} ms fresh")

    print("\n✓ All benchmarks completed successfully!")


if __name__ == "__main__":
    main()
