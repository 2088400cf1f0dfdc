"""Shared fixtures for BlockSmith tests."""

import pytest

from blocksmith.config import GeneratorConfig
from blocksmith.objects import GenerationRequest, GridSpec
from blocksmith.workflows.cache import ModelCache


@pytest.fixture
def small_grid():
    """4×4×2 grid of 10 m cells with the surface at z = 0."""
    return GridSpec(origin=(0.0, 0.0, 0.0), cell_size=(10.0, 10.0, 10.0), counts=(4, 4, 2))


@pytest.fixture
def medium_grid():
    """20×20×10 grid of 10 m cells."""
    return GridSpec(origin=(1000.0, 2000.0, 500.0), cell_size=(10.0, 10.0, 10.0), counts=(20, 20, 10))


@pytest.fixture
def chunked_config():
    """Config that chunks anything from 100 cells in chunks of 64."""
    return GeneratorConfig(chunk_threshold=100, chunk_size=64)


@pytest.fixture
def cache():
    """Fresh model cache per test."""
    return ModelCache(capacity=4)


@pytest.fixture
def porphyry_request(medium_grid):
    """Porphyry request on the medium grid."""
    return GenerationRequest(medium_grid, "porphyry_ore", seed=42)
