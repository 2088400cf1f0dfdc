"""Layer 2: Primitives - Pure operations.

Grid indexing, the deterministic random stream, value noise, the pattern
synthesizer and schema standardization. Primitives hold no state between
calls; randomness enters only through an explicit RandomStream.
"""

from blocksmith.primitives.grid import (
    CellBatch,
    cell_batch,
    cell_coordinates,
    coordinate_of,
    depth_of,
    flat_to_ijk,
    grid_spec_from_bounds,
    ijk_to_flat,
    iter_chunks,
)
from blocksmith.primitives.noise import NoiseField, fractal_noise, value_noise
from blocksmith.primitives.patterns import (
    PATTERNS,
    PreparedPattern,
    get_pattern,
    parameter_specs,
    prepare_pattern,
    resolve_parameters,
    synthesize_cells,
)
from blocksmith.primitives.random_stream import RandomStream, draw_seed, pick_weighted
from blocksmith.primitives.standardize import (
    FIELD_MAPS,
    assemble_model,
    derive_econ_value,
    filter_air,
    standardize_chunk,
    summarize,
)

__all__ = [
    "CellBatch",
    "FIELD_MAPS",
    "NoiseField",
    "PATTERNS",
    "PreparedPattern",
    "RandomStream",
    "assemble_model",
    "cell_batch",
    "cell_coordinates",
    "coordinate_of",
    "depth_of",
    "derive_econ_value",
    "draw_seed",
    "filter_air",
    "flat_to_ijk",
    "fractal_noise",
    "get_pattern",
    "grid_spec_from_bounds",
    "ijk_to_flat",
    "iter_chunks",
    "parameter_specs",
    "pick_weighted",
    "prepare_pattern",
    "resolve_parameters",
    "standardize_chunk",
    "summarize",
    "synthesize_cells",
    "value_noise",
]
