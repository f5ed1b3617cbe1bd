"""Seeded 2D Perlin gradient noise.

Used to synthesize placeholder terrain heights and wind fields. Output is
smooth, deterministic for a given seed, and lies roughly in [-1, 1].

Example:
    >>> noise = PerlinNoise(seed=42)
    >>> noise.noise(0.5, 1.25)
    >>> noise.noise(np.linspace(0, 4, 50), np.zeros(50))  # vectorized
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray


def _fade(t: NDArray[np.float64]) -> NDArray[np.float64]:
    """Smoothstep 6t^5 - 15t^4 + 10t^3."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _lerp(t: NDArray[np.float64], a: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
    return a + t * (b - a)


def _grad(h: NDArray[np.int64], x: NDArray[np.float64], y: NDArray[np.float64]) -> NDArray[np.float64]:
    """Dot product of the hashed corner gradient with the offset (x, y)."""
    h = h % 8
    u = np.where(h < 4, x, y)
    v = np.where(h < 4, y, x)
    u = np.where((h & 1) == 0, u, -u)
    v = np.where((h & 2) == 0, v, -v)
    return u + v


@beartype
class PerlinNoise:
    """Perlin noise generator with a seeded permutation table.

    Args:
        seed: Seed for the permutation shuffle
    """

    def __init__(self, seed: int = 0) -> None:
        self.seed = seed
        rng = np.random.default_rng(seed)
        p = rng.permutation(256).astype(np.int64)
        # Doubled so corner hashes never need wrapping
        self._perm = np.concatenate([p, p])

    def noise(
        self,
        x: float | NDArray[np.float64],
        y: float | NDArray[np.float64],
    ) -> float | NDArray[np.float64]:
        """Evaluate noise at (x, y). Scalars in, scalar out."""
        scalar = np.ndim(x) == 0 and np.ndim(y) == 0
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        x_floor = np.floor(x)
        y_floor = np.floor(y)
        xi = x_floor.astype(np.int64) & 255
        yi = y_floor.astype(np.int64) & 255
        xf = x - x_floor
        yf = y - y_floor

        u = _fade(xf)
        v = _fade(yf)

        perm = self._perm
        aa = perm[perm[xi] + yi]
        ab = perm[perm[xi] + yi + 1]
        ba = perm[perm[xi + 1] + yi]
        bb = perm[perm[xi + 1] + yi + 1]

        x1 = _lerp(u, _grad(aa, xf, yf), _grad(ba, xf - 1.0, yf))
        x2 = _lerp(u, _grad(ab, xf, yf - 1.0), _grad(bb, xf - 1.0, yf - 1.0))
        result = _lerp(v, x1, x2)

        if scalar:
            return float(result)
        return result
