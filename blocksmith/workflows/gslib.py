"""GSLIB format I/O for block models.

GSLIB (Geostatistical Software Library) is a standard format for geostatistics.
This module exports BlockSmith models to GSLIB for compatibility with
industry-standard software. GSLIB columns are numeric, so categorical
columns (ROCKTYPE, ZONE) are written as integer codes.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from blocksmith.objects.block import IS_AIR, STANDARD_FIELDS
from blocksmith.objects.blockmodel import BlockModel
from blocksmith.utils.errors import raise_validation_error

logger = logging.getLogger(__name__)

NODATA = -999.0

CATEGORICAL_COLUMNS = ("ROCKTYPE", "ZONE")


def write_gslib(
    data: Union[pd.DataFrame, np.ndarray],
    filename: Union[str, Path],
    variable_names: Optional[list[str]] = None,
    title: str = "BlockSmith Export",
) -> None:
    """Write data to GSLIB format.

    GSLIB format consists of:
    1. Title line
    2. Number of variables
    3. Variable names (one per line)
    4. Data (space-separated values, missing values as -999.0)

    Args:
        data: Numeric DataFrame or 2D array.
        filename: Output filename.
        variable_names: Optional column names (required names for arrays).
        title: Title for GSLIB file (default: "BlockSmith Export").

    Raises:
        DataValidationError: If a column is not numeric.
    """
    filename = Path(filename)

    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise_validation_error(
                "GSLIB export needs a 2D array",
                expected="2 dimensions",
                received=f"{data.ndim} dimensions",
            )
        df = pd.DataFrame(data)
        if variable_names:
            df.columns = variable_names[: data.shape[1]]
    elif isinstance(data, pd.DataFrame):
        df = data.copy()
        if variable_names:
            df.columns = variable_names[: len(df.columns)]
    else:
        raise ValueError(f"Unsupported data type: {type(data)}")

    for col in df.columns:
        if df[col].dtype == bool:
            df[col] = df[col].astype(np.int8)
        elif not pd.api.types.is_numeric_dtype(df[col]):
            raise_validation_error(
                f"GSLIB column '{col}' is not numeric",
                expected="numeric values",
                received=str(df[col].dtype),
                suggestion="Encode categorical columns as integer codes first",
            )

    values = df.to_numpy(dtype=np.float64)
    with open(filename, "w") as f:
        f.write(f"{title}\n")
        f.write(f"{len(df.columns)}\n")
        for col in df.columns:
            f.write(f"{col}\n")
        for row in values.tolist():
            f.write(
                " ".join("-999.0" if val != val else f"{val:.6f}" for val in row) + "\n"
            )

    logger.debug(f"Wrote {len(df):,} GSLIB rows to {filename}")


def read_gslib(
    filename: Union[str, Path],
) -> tuple[pd.DataFrame, str]:
    """Read data from GSLIB format.

    Args:
        filename: Input filename.

    Returns:
        Tuple of (DataFrame, title). Missing values become NaN.
    """
    filename = Path(filename)

    with open(filename, "r") as f:
        title = f.readline().strip()

        header = f.readline().strip()
        try:
            n_vars = int(header.split()[0])
        except (IndexError, ValueError):
            raise_validation_error(
                f"Invalid GSLIB header in {filename}",
                expected="number of variables on line 2",
                received=header,
            )

        variable_names = [f.readline().strip() for _ in range(n_vars)]

        data = []
        for line in f:
            line = line.strip()
            if not line:
                continue
            values = [float(x) for x in line.split()]
            if len(values) != n_vars:
                raise_validation_error(
                    f"GSLIB row has the wrong number of values in {filename}",
                    expected=str(n_vars),
                    received=str(len(values)),
                )
            data.append(values)

    df = pd.DataFrame(data, columns=variable_names, dtype=np.float64)
    df = df.mask(df == NODATA)
    return df, title


def category_codes(values: pd.Series) -> dict[str, int]:
    """Integer code per category, 1-based in sorted order. Missing stays NaN."""
    categories = sorted(str(v) for v in values.dropna().unique())
    return {name: code for code, name in enumerate(categories, start=1)}


def encode_categories(
    table: pd.DataFrame, columns: tuple = CATEGORICAL_COLUMNS
) -> tuple[pd.DataFrame, dict[str, dict[str, int]]]:
    """Replace categorical columns with integer codes.

    Returns:
        Tuple of (encoded copy, {column: {category: code}}).
    """
    encoded = table.copy()
    code_tables = {}
    for col in columns:
        if col not in encoded.columns:
            continue
        codes = category_codes(encoded[col])
        encoded[col] = encoded[col].map(codes).astype(np.float64)
        code_tables[col] = codes
    return encoded, code_tables


def export_block_model_gslib(
    block_model: Union[BlockModel, pd.DataFrame],
    filename: Union[str, Path],
    coordinate_cols: Optional[list[str]] = None,
    title: Optional[str] = None,
    include_air: bool = False,
) -> dict[str, dict[str, int]]:
    """Export a block model to GSLIB format.

    Coordinates come first, then the remaining canonical columns. ROCKTYPE
    and ZONE are written as integer codes.

    Args:
        block_model: BlockModel or a DataFrame with the canonical columns.
        filename: Output filename.
        coordinate_cols: Coordinate column names (default: ["X", "Y", "Z"]).
        title: Title for GSLIB file. Defaults to a title naming the pattern
            and its code tables.
        include_air: Keep air blocks (only for a BlockModel).

    Returns:
        The code tables, {column: {category: code}}.

    Example:
        >>> codes = export_block_model_gslib(model, "porphyry.dat")
        >>> codes["ROCKTYPE"]
        {'Ore_High': 1, 'Ore_Low': 2, 'Ore_Med': 3, 'Waste': 4}
    """
    if isinstance(block_model, BlockModel):
        if include_air:
            table = block_model.to_dataframe(include_air=True)
            table = table[list(STANDARD_FIELDS) + [IS_AIR]]
        else:
            table = block_model.standardized()
        default_title = f"BlockSmith {block_model.request.pattern.value} model"
    else:
        table = block_model
        default_title = "Block Model Export"

    if coordinate_cols is None:
        coordinate_cols = ["X", "Y", "Z"]
    for col in coordinate_cols:
        if col not in table.columns:
            raise_validation_error(
                f"Coordinate column '{col}' not found in block model",
                expected=", ".join(coordinate_cols),
                received=", ".join(map(str, table.columns)),
            )

    other_cols = [col for col in table.columns if col not in coordinate_cols]
    ordered_cols = list(coordinate_cols) + other_cols
    encoded, code_tables = encode_categories(table[ordered_cols])

    if title is None:
        legend = "; ".join(
            f"{col} " + ",".join(f"{code}={name}" for name, code in codes.items())
            for col, codes in code_tables.items()
        )
        title = f"{default_title} ({legend})" if legend else default_title

    write_gslib(encoded, filename, variable_names=ordered_cols, title=title)
    logger.info(f"Exported {len(encoded):,} blocks to GSLIB file {filename}")
    return code_tables
