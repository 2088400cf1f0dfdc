"""Complete Synthetic Porphyry Block Model Workflow Demo.

This demo builds a synthetic porphyry copper-gold deposit and takes it
through the steps a mine-planning test fixture needs:

1. Grid definition from a bounding box
2. Request creation and validation
3. Chunked generation with progress reporting
4. Model statistics and zone summary
5. Cached regeneration
6. Request persistence and exact replay
7. Export to MiningMath CSV and GSLIB

Every model is fully determined by its request, so saving the request is
enough to reproduce the blocks anywhere.
"""

import tempfile
from pathlib import Path

from blocksmith import (
    BlockModelGenerator,
    GenerationRequest,
    GeneratorConfig,
    export_block_model_gslib,
    save_request,
    validate_request,
    write_block_model_csv,
)
from blocksmith.primitives.grid import grid_spec_from_bounds


def main():
    """Run the porphyry block model workflow."""
    print("=" * 80)
    print("SYNTHETIC PORPHYRY BLOCK MODEL WORKFLOW")
    print("=" * 80)

    # ============================================================================
    # STEP 1: Grid Definition
    # ============================================================================
    print("\nSTEP 1: Grid Definition")
    print("-" * 80)
    bounds = {
        "x_min": 0.0,
        "x_max": 1000.0,
        "y_min": 0.0,
        "y_max": 1000.0,
        "z_min": -400.0,
        "z_max": 0.0,
    }
    grid = grid_spec_from_bounds(bounds, block_size_xy=20.0, block_size_z=10.0)
    nx, ny, nz = grid.counts
    print(f"  Grid: {nx}×{ny}×{nz} = {grid.n_cells:,} blocks of {grid.cell_volume:,.0f} m³")

    # ============================================================================
    # STEP 2: Request Creation
    # ============================================================================
    print("\nSTEP 2: Request Creation")
    print("-" * 80)
    request = GenerationRequest(
        grid,
        "porphyry_ore",
        {"elongation": 1.8, "air_thickness": 20.0, "topography_relief": 30.0},
        seed=42,
    )
    validate_request(request)
    print(f"  Pattern: {request.pattern.value}, seed {request.seed}")
    print(f"  Fingerprint: {request.fingerprint()[:16]}...")

    # ============================================================================
    # STEP 3: Chunked Generation
    # ============================================================================
    print("\nSTEP 3: Chunked Generation")
    print("-" * 80)
    config = GeneratorConfig(chunk_threshold=50_000, chunk_size=25_000)
    generator = BlockModelGenerator(config)

    def report(progress):
        print(f"  {progress.percent:5.1f}% ({progress.processed:,}/{progress.total:,} blocks)")

    model = generator.generate_model(request, progress=report)
    print(f"  {model!r}")

    # ============================================================================
    # STEP 4: Statistics
    # ============================================================================
    print("\nSTEP 4: Statistics")
    print("-" * 80)
    stats = model.statistics
    print(f"  Solid blocks: {stats.block_count:,} (air: {stats.air_count:,})")
    print(f"  Tonnage:      {stats.total_tonnage / 1e6:,.1f} Mt")
    print(f"  Ore fraction: {stats.ore_fraction:.1%}")
    for rock_type, count in stats.rock_type_counts.items():
        print(f"    {rock_type:10s} {count:8,d}")
    print("  Zones:")
    for zone, count in stats.zone_counts.items():
        print(f"    {zone:10s} {count:8,d}")
    if stats.grade_cu is not None:
        print(f"  Cu grade: mean {stats.grade_cu.mean:.3f} %, max {stats.grade_cu.maximum:.3f} %")

    # ============================================================================
    # STEP 5: Cached Regeneration
    # ============================================================================
    print("\nSTEP 5: Cached Regeneration")
    print("-" * 80)
    again = generator.generate_model(request)
    print(f"  Served from cache: {again.from_cache}")
    print(f"  Identical to first run: {again.identical_to(model)}")
    print(f"  Cache: {generator.cache.stats.to_dict()}")

    with tempfile.TemporaryDirectory() as tmp:
        out = Path(tmp)

        # ========================================================================
        # STEP 6: Persistence and Replay
        # ========================================================================
        print("\nSTEP 6: Persistence and Replay")
        print("-" * 80)
        path = save_request(request, out / "porphyry.yaml")
        print(f"  Saved request ({path.stat().st_size} bytes)")
        replayed = BlockModelGenerator(config).regenerate(path)
        print(f"  Replay identical: {replayed.identical_to(model)}")

        # ========================================================================
        # STEP 7: Export
        # ========================================================================
        print("\nSTEP 7: Export")
        print("-" * 80)
        csv_path = write_block_model_csv(model, out / "porphyry.csv", include_indices=True)
        print(f"  CSV:   {csv_path.name} ({csv_path.stat().st_size / 1024:,.0f} KiB)")
        codes = export_block_model_gslib(model, out / "porphyry.dat")
        print(f"  GSLIB: rock type codes {codes['ROCKTYPE']}")

    print("\n✓ Workflow completed successfully!")


if __name__ == "__main__":
    main()
