"""Layer 1: Objects - Immutable data representations.

This layer contains only data structures. No I/O, no generation logic.
Only standard library + numpy + pandas.
"""

from blocksmith.objects.block import (
    AIR_ROCK_TYPE,
    IS_AIR,
    STANDARD_FIELDS,
    TABLE_COLUMNS,
    Block,
    FieldSemantics,
)
from blocksmith.objects.blockmodel import BlockModel, ModelStatistics, ValueRange
from blocksmith.objects.gridspec import GridSpec
from blocksmith.objects.request import GenerationRequest, PatternType

__all__ = [
    "AIR_ROCK_TYPE",
    "Block",
    "BlockModel",
    "FieldSemantics",
    "GenerationRequest",
    "GridSpec",
    "IS_AIR",
    "ModelStatistics",
    "PatternType",
    "STANDARD_FIELDS",
    "TABLE_COLUMNS",
    "ValueRange",
]
