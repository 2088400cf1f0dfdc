"""CSV export in MiningMath layout.

Layer 4: Workflows - Public entry points.

Formatting rules:
- comma separated, header row of short uppercase names
- X, Y, Z first, then optional I, J, K and dX, dY, dZ
- ROCKTYPE, DENSITY, then ZONE, GRADE_CU, GRADE_AU, ECON_VALUE, each only
  when at least one exported block carries a value
- numbers with 4 decimal places, missing numbers as 0.0000, missing zones
  as an empty field
- air blocks dropped by default
"""

import logging
from pathlib import Path
from typing import Union

import pandas as pd

from blocksmith.objects.block import IS_AIR
from blocksmith.objects.blockmodel import BlockModel

logger = logging.getLogger(__name__)

OPTIONAL_COLUMNS = ("ZONE", "GRADE_CU", "GRADE_AU", "ECON_VALUE")


def blocks_to_frame(
    model: BlockModel,
    include_indices: bool = False,
    filter_air_blocks: bool = True,
    include_dimensions: bool = False,
) -> pd.DataFrame:
    """Export table for ``blocks_to_csv``, before text formatting."""
    table = model.table
    if filter_air_blocks:
        table = table[~table[IS_AIR]]

    columns = ["X", "Y", "Z"]
    if include_indices:
        columns += ["I", "J", "K"]
    columns += ["ROCKTYPE", "DENSITY"]
    columns += [col for col in OPTIONAL_COLUMNS if table[col].notna().any()]

    frame = table[columns].reset_index(drop=True)
    if include_dimensions:
        dx, dy, dz = model.grid.cell_size
        position = 6 if include_indices else 3
        for offset, (name, size) in enumerate((("dX", dx), ("dY", dy), ("dZ", dz))):
            frame.insert(position + offset, name, float(size))

    for col in ("GRADE_CU", "GRADE_AU", "ECON_VALUE"):
        if col in frame.columns:
            frame[col] = frame[col].fillna(0.0)
    if "ZONE" in frame.columns:
        frame["ZONE"] = frame["ZONE"].fillna("")
    return frame


def blocks_to_csv(
    model: BlockModel,
    include_indices: bool = False,
    filter_air_blocks: bool = True,
    include_dimensions: bool = False,
) -> str:
    """Format a block model as MiningMath CSV text.

    Args:
        model: Model to export.
        include_indices: Add I, J, K columns.
        filter_air_blocks: Drop air blocks.
        include_dimensions: Add dX, dY, dZ block size columns.

    Returns:
        CSV text without a trailing newline, or an empty string when no
        block is left to export.

    Example:
        >>> text = blocks_to_csv(model, include_indices=True)
        >>> text.splitlines()[0]
        'X,Y,Z,I,J,K,ROCKTYPE,DENSITY,GRADE_CU,GRADE_AU,ECON_VALUE'
    """
    frame = blocks_to_frame(model, include_indices, filter_air_blocks, include_dimensions)
    if frame.empty:
        return ""
    text = frame.to_csv(index=False, float_format="%.4f", lineterminator="\n")
    return text.rstrip("\n")


def write_block_model_csv(
    model: BlockModel,
    filename: Union[str, Path],
    include_indices: bool = False,
    filter_air_blocks: bool = True,
    include_dimensions: bool = False,
) -> Path:
    """Write ``blocks_to_csv`` output to a file.

    Returns:
        The path written.
    """
    filename = Path(filename)
    text = blocks_to_csv(model, include_indices, filter_air_blocks, include_dimensions)
    with open(filename, "w", newline="") as f:
        f.write(text)
        if text:
            f.write("\n")
    logger.info(f"Wrote {model.request.pattern.value} model CSV to {filename}")
    return filename
