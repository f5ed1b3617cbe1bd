"""Environment provider: altitude and wind lookups.

Dynamics and drag models depend only on the narrow :class:`Environment`
protocol. :class:`SurfaceEnvironment` composes a height field and a wind field
into one provider.

Positions are planet-local 3D points [km] with y pointing up.

Example:
    >>> env = constant_wind(1e-4)
    >>> env.altitude(np.array([0.0, 2.5, 0.0]))
    2.5
    >>> env.wind(np.array([0.0, 2.5, 0.0]))
    array([0.0001, 0.    , 0.    ])
"""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.environment.terrain import (
    ConstantWindField,
    FlatHeightField,
    PerlinHeightField,
    PerlinWindField,
    SurfaceGrid,
)

# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class HeightField(Protocol):
    """Terrain height lookup [km]."""

    def height(self, position: NDArray[np.float64]) -> float: ...


@runtime_checkable
class WindField(Protocol):
    """Wind velocity lookup [km/s]."""

    def wind(self, position: NDArray[np.float64]) -> NDArray[np.float64]: ...


@runtime_checkable
class Environment(Protocol):
    """What the dynamics need from the world around the vehicle."""

    def altitude(self, position: NDArray[np.float64]) -> float:
        """Height of ``position`` above the terrain below it."""
        ...

    def wind(self, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Wind velocity (3-vector) at ``position``."""
        ...


# =============================================================================
# Surface Environment
# =============================================================================


@beartype
@dataclass
class SurfaceEnvironment:
    """Environment built from a terrain height field and a wind field.

    Read-only after construction, so one instance can be shared between
    concurrent simulations.

    Attributes:
        heights: Terrain height field
        winds: Wind field
    """
    heights: HeightField = field(default_factory=FlatHeightField)
    winds: WindField = field(default_factory=ConstantWindField)

    def altitude(self, position: NDArray[np.float64]) -> float:
        return float(position[1]) - self.heights.height(position)

    def wind(self, position: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.winds.wind(position)


# =============================================================================
# Convenience Constructors
# =============================================================================


@beartype
def flat_calm() -> SurfaceEnvironment:
    """Flat terrain at height 0 with no wind."""
    return SurfaceEnvironment(FlatHeightField(), ConstantWindField())


@beartype
def constant_wind(speed: float, elevation: float = 0.0) -> SurfaceEnvironment:
    """Terrain at a fixed elevation with a uniform wind of ``speed`` km/s along +x."""
    return SurfaceEnvironment(
        FlatHeightField(elevation),
        ConstantWindField(velocity=(speed, 0.0, 0.0)),
    )


@beartype
def perlin_terrain(
    seed: int = 0,
    amplitude: float = 0.1,
    max_wind: float = 1e-4,
    scale: float = 0.05,
    grid: SurfaceGrid | None = None,
) -> SurfaceEnvironment:
    """Noise-based terrain and wind sharing one grid and seed."""
    grid = grid or SurfaceGrid()
    return SurfaceEnvironment(
        PerlinHeightField(grid, scale=scale, amplitude=amplitude, seed=seed),
        PerlinWindField(grid, scale=scale, max_speed=max_wind, seed=seed),
    )
