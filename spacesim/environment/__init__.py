"""Environment models: terrain, wind, drag and celestial bodies."""

from spacesim.environment.bodies import (
    BODY_RADII,
    EARTH_RADIUS,
    GRAVITATIONAL_CONSTANT,
    PROBE_MASS,
    SOLAR_SYSTEM,
    CelestialBody,
    find_body,
    index_of,
    load_solar_system,
)
from spacesim.environment.drag import ATMOSPHERE_CEILING, DRAG_COEFFICIENT, AtmosphericDrag
from spacesim.environment.environment import (
    Environment,
    HeightField,
    SurfaceEnvironment,
    WindField,
    constant_wind,
    flat_calm,
    perlin_terrain,
)
from spacesim.environment.noise import PerlinNoise
from spacesim.environment.terrain import (
    ConstantWindField,
    FlatHeightField,
    PerlinHeightField,
    PerlinWindField,
    SurfaceGrid,
)

__all__ = [
    "ATMOSPHERE_CEILING",
    "AtmosphericDrag",
    "BODY_RADII",
    "CelestialBody",
    "ConstantWindField",
    "DRAG_COEFFICIENT",
    "EARTH_RADIUS",
    "Environment",
    "FlatHeightField",
    "GRAVITATIONAL_CONSTANT",
    "HeightField",
    "PROBE_MASS",
    "PerlinHeightField",
    "PerlinNoise",
    "PerlinWindField",
    "SOLAR_SYSTEM",
    "SurfaceEnvironment",
    "SurfaceGrid",
    "WindField",
    "constant_wind",
    "find_body",
    "flat_calm",
    "index_of",
    "load_solar_system",
    "perlin_terrain",
]
