"""Layer 4: Workflows - Public entry points.

Workflows provide the public entry points users call. Workflows own the
model cache and do all file loading and saving: request persistence and
GSLIB / CSV export.
"""

from blocksmith.workflows.cache import CacheStats, ModelCache
from blocksmith.workflows.generation import BlockModelGenerator, generate_block_model
from blocksmith.workflows.gslib import (
    export_block_model_gslib,
    read_gslib,
    write_gslib,
)
from blocksmith.workflows.persistence import load_request, save_request
from blocksmith.workflows.tabular import blocks_to_csv, write_block_model_csv

__all__ = [
    "BlockModelGenerator",
    "CacheStats",
    "ModelCache",
    "blocks_to_csv",
    "export_block_model_gslib",
    "generate_block_model",
    "load_request",
    "read_gslib",
    "save_request",
    "write_block_model_csv",
    "write_gslib",
]
