"""Deterministic smooth value noise.

Layer 2: Primitives - Pure operations.

Lattice value noise with smoothstep trilinear interpolation. The lattice
seed is drawn from the request's RandomStream so noise-driven features
replay exactly.
"""

from dataclasses import dataclass

import numpy as np

from blocksmith.primitives.random_stream import RandomStream

_MASK = np.uint64(0xFFFFFFFF)
_PRIME_X = np.uint64(374761393)
_PRIME_Y = np.uint64(668265263)
_PRIME_Z = np.uint64(2147483647)
_MIX = np.uint64(1274126177)


@dataclass(frozen=True)
class NoiseField:
    """Seeded noise lattice.

    Attributes:
        seed: Lattice seed, 0 <= seed < 2**32.
        frequency: Lattice cells per unit of input coordinate.
    """

    seed: int
    frequency: float = 1.0

    @classmethod
    def from_stream(cls, stream: RandomStream, frequency: float = 1.0) -> "NoiseField":
        """Draw a lattice seed from ``stream`` (one draw)."""
        return cls(seed=stream.next_int(2**32), frequency=frequency)

    def sample(self, x, y, z) -> np.ndarray:
        """Noise values in [0, 1] at the given points."""
        return value_noise(self, x, y, z)


# -- Hash helpers ---------------------------------------------------------

def _hash3(seed: int, ix: np.ndarray, iy: np.ndarray, iz: np.ndarray) -> np.ndarray:
    value = (
        np.uint64(seed)
        ^ (ix.astype(np.uint64) * _PRIME_X)
        ^ (iy.astype(np.uint64) * _PRIME_Y)
        ^ (iz.astype(np.uint64) * _PRIME_Z)
    ) & _MASK
    value = ((value ^ (value >> np.uint64(13))) * _MIX) & _MASK
    value = value ^ (value >> np.uint64(16))
    return value & _MASK


def _lattice(seed: int, ix: np.ndarray, iy: np.ndarray, iz: np.ndarray) -> np.ndarray:
    return _hash3(seed, ix, iy, iz).astype(np.float64) / float(_MASK)


def _smooth(t: np.ndarray) -> np.ndarray:
    return t * t * (3.0 - 2.0 * t)


def _lerp(a: np.ndarray, b: np.ndarray, t: np.ndarray) -> np.ndarray:
    return a + (b - a) * t


# -- Noise evaluators -----------------------------------------------------

def value_noise(field: NoiseField, x, y, z) -> np.ndarray:
    """Smooth value noise in [0, 1].

    Args:
        field: Noise lattice.
        x, y, z: Sample coordinates (scalars or arrays of equal shape).

    Returns:
        Array of noise values.
    """
    sx = np.asarray(x, dtype=np.float64) * field.frequency
    sy = np.asarray(y, dtype=np.float64) * field.frequency
    sz = np.asarray(z, dtype=np.float64) * field.frequency
    sx, sy, sz = np.broadcast_arrays(sx, sy, sz)

    fx, fy, fz = np.floor(sx), np.floor(sy), np.floor(sz)
    tx, ty, tz = _smooth(sx - fx), _smooth(sy - fy), _smooth(sz - fz)
    ix, iy, iz = fx.astype(np.int64), fy.astype(np.int64), fz.astype(np.int64)

    seed = field.seed
    n000 = _lattice(seed, ix, iy, iz)
    n100 = _lattice(seed, ix + 1, iy, iz)
    n010 = _lattice(seed, ix, iy + 1, iz)
    n110 = _lattice(seed, ix + 1, iy + 1, iz)
    n001 = _lattice(seed, ix, iy, iz + 1)
    n101 = _lattice(seed, ix + 1, iy, iz + 1)
    n011 = _lattice(seed, ix, iy + 1, iz + 1)
    n111 = _lattice(seed, ix + 1, iy + 1, iz + 1)

    x00 = _lerp(n000, n100, tx)
    x10 = _lerp(n010, n110, tx)
    x01 = _lerp(n001, n101, tx)
    x11 = _lerp(n011, n111, tx)
    y0 = _lerp(x00, x10, ty)
    y1 = _lerp(x01, x11, ty)
    return _lerp(y0, y1, tz)


def fractal_noise(
    field: NoiseField,
    x,
    y,
    z,
    octaves: int = 3,
    persistence: float = 0.5,
    lacunarity: float = 2.0,
) -> np.ndarray:
    """Sum of noise octaves, rescaled to [0, 1]."""
    total = np.zeros(np.broadcast(np.asarray(x), np.asarray(y), np.asarray(z)).shape)
    amplitude = 1.0
    norm = 0.0
    for octave in range(octaves):
        layer = NoiseField(
            seed=(field.seed + 7919 * octave) % 2**32,
            frequency=field.frequency * lacunarity**octave,
        )
        total = total + amplitude * value_noise(layer, x, y, z)
        norm += amplitude
        amplitude *= persistence
    return total / norm
