"""Synthetic terrain height and wind fields over a planet surface grid.

The surface around a reference origin is divided into square cells. A position
is mapped to a (row, col) cell from its horizontal coordinates (x and z, with y
pointing up). Noise fields are tabulated for rows and columns in
[-extent, extent]; outside that patch the height is 0 and the wind is calm.
Flat and constant fields are uniform everywhere.

These are placeholders, not real datasets: flat/constant fields for nominal
runs and Perlin-noise fields for robustness studies.

Example:
    >>> grid = SurfaceGrid(cell_size=1.0)
    >>> heights = PerlinHeightField(grid, scale=0.05, amplitude=0.2, seed=7)
    >>> heights.height(np.array([3.2, 10.0, -1.5]))
"""

from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.environment.noise import PerlinNoise
from spacesim.integrators.base import ConfigurationError

# Rows and columns tabulated on each side of the origin
GRID_EXTENT: int = 100

# Seed offset for the second wind component
WIND_Z_SEED_OFFSET: int = 999


# =============================================================================
# Surface Grid
# =============================================================================


@beartype
@dataclass(frozen=True)
class SurfaceGrid:
    """Maps planet-local positions to integer surface cells.

    Attributes:
        cell_size: Edge length of a cell [km]
        origin: Planet reference point subtracted before binning [km]
        extent: Number of tabulated cells on each side of the origin
    """
    cell_size: float = 1.0
    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    extent: int = GRID_EXTENT

    def __post_init__(self) -> None:
        if self.cell_size <= 0.0:
            raise ConfigurationError(f"cell_size must be positive, got {self.cell_size}")
        if self.extent < 0:
            raise ConfigurationError(f"extent must be non-negative, got {self.extent}")

    @property
    def shape(self) -> tuple[int, int]:
        n = 2 * self.extent + 1
        return (n, n)

    def cell(self, position: NDArray[np.float64]) -> tuple[int, int]:
        """(row, col) of the cell containing ``position``."""
        col = int(np.floor((position[0] - self.origin[0]) / self.cell_size))
        row = int(np.floor((position[2] - self.origin[2]) / self.cell_size))
        return row, col

    def index(self, position: NDArray[np.float64]) -> tuple[int, int] | None:
        """Array index of the cell, or None if it lies outside the tabulated patch."""
        row, col = self.cell(position)
        if abs(row) > self.extent or abs(col) > self.extent:
            return None
        return row + self.extent, col + self.extent

    def coordinates(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Row and column numbers of every tabulated cell, as 2D arrays."""
        k = np.arange(-self.extent, self.extent + 1, dtype=np.float64)
        rows, cols = np.meshgrid(k, k, indexing="ij")
        return rows, cols


# =============================================================================
# Height Fields
# =============================================================================


@beartype
@dataclass
class FlatHeightField:
    """Uniform terrain height everywhere.

    Attributes:
        elevation: Terrain height [km]
    """
    elevation: float = 0.0

    def height(self, position: NDArray[np.float64]) -> float:
        return self.elevation


@beartype
@dataclass
class PerlinHeightField:
    """Rolling terrain sampled from Perlin noise at each cell.

    Attributes:
        grid: Surface grid
        scale: Noise frequency per cell
        amplitude: Peak height [km]
        seed: Noise seed
    """
    grid: SurfaceGrid = field(default_factory=SurfaceGrid)
    scale: float = 0.05
    amplitude: float = 0.1
    seed: int = 0

    _heights: NDArray[np.float64] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        rows, cols = self.grid.coordinates()
        noise = PerlinNoise(self.seed)
        self._heights = noise.noise(rows * self.scale, cols * self.scale) * self.amplitude

    @property
    def heights(self) -> NDArray[np.float64]:
        return self._heights

    def height(self, position: NDArray[np.float64]) -> float:
        idx = self.grid.index(position)
        if idx is None:
            return 0.0
        return float(self._heights[idx])


# =============================================================================
# Wind Fields
# =============================================================================


@beartype
@dataclass
class ConstantWindField:
    """The same wind vector everywhere.

    Attributes:
        velocity: Wind velocity (x, y, z) [km/s]
    """
    velocity: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def wind(self, position: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.array(self.velocity, dtype=np.float64)


@beartype
@dataclass
class PerlinWindField:
    """Horizontal wind with independent Perlin noise on the x and z components.

    Attributes:
        grid: Surface grid
        scale: Noise frequency per cell
        max_speed: Peak speed per component [km/s]
        seed: Noise seed for x; z uses ``seed + 999``
    """
    grid: SurfaceGrid = field(default_factory=SurfaceGrid)
    scale: float = 0.05
    max_speed: float = 1e-4
    seed: int = 0

    _winds: NDArray[np.float64] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        rows, cols = self.grid.coordinates()
        nx, nz = rows * self.scale, cols * self.scale
        wind_x = PerlinNoise(self.seed).noise(nx, nz) * self.max_speed
        wind_z = PerlinNoise(self.seed + WIND_Z_SEED_OFFSET).noise(nx, nz) * self.max_speed
        self._winds = np.stack([wind_x, np.zeros_like(wind_x), wind_z], axis=-1)

    def wind(self, position: NDArray[np.float64]) -> NDArray[np.float64]:
        idx = self.grid.index(position)
        if idx is None:
            return np.zeros(3)
        return self._winds[idx].copy()
