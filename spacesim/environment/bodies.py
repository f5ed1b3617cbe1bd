"""Celestial bodies and the reference solar-system state table.

Units: mass [kg], position [km], velocity [km/s], heliocentric frame.
The table is a snapshot for studies, not an ephemeris.

Example:
    >>> bodies = load_solar_system()
    >>> earth = find_body(bodies, "Earth")
    >>> earth.position
    array([-1.47e+08, -2.97e+07,  2.75e+04])
"""

from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.integrators.base import ConfigurationError

# =============================================================================
# Constants
# =============================================================================

GRAVITATIONAL_CONSTANT: float = 6.6743e-20  # [km^3/(kg s^2)]
EARTH_RADIUS: float = 6371.0  # [km]
PROBE_MASS: float = 50000.0  # [kg]

# Mean radius [km]
BODY_RADII: dict[str, float] = {
    "Sun": 695700.0,
    "Mercury": 2439.7,
    "Venus": 6051.8,
    "Earth": EARTH_RADIUS,
    "Moon": 1737.4,
    "Mars": 3389.5,
    "Jupiter": 69911.0,
    "Saturn": 58232.0,
    "Titan": 2574.7,
    "Uranus": 25362.0,
    "Neptune": 24622.0,
}

# name: (mass, position, velocity)
SOLAR_SYSTEM: dict[str, tuple[float, tuple[float, float, float], tuple[float, float, float]]] = {
    "Sun": (1.99e30, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)),
    "Mercury": (3.30e23, (-5.67e7, -3.23e7, 2.58e6), (13.9, -40.3, -4.57)),
    "Venus": (4.87e24, (-1.04e8, -3.19e7, 5.55e6), (9.89, -33.7, -1.03)),
    "Earth": (5.97e24, (-1.47e8, -2.97e7, 2.75e4), (5.31, -29.3, 6.69e-4)),
    "Moon": (7.35e22, (-1.47e8, -2.95e7, 5.29e4), (4.53, -28.6, 6.73e-2)),
    "Mars": (6.42e23, (-2.15e8, 1.27e8, 7.94e6), (-11.5, -18.7, -0.111)),
    "Jupiter": (1.90e27, (5.54e7, 7.62e8, -4.40e6), (-13.2, 12.9, 5.22e-2)),
    "Saturn": (5.68e26, (1.42e9, -1.91e8, -5.33e7), (0.748, 9.55, -0.196)),
    "Titan": (1.35e23, (1.42e9, -1.92e8, -5.28e7), (5.95, 7.68, 0.254)),
    "Uranus": (8.68e25, (1.62e9, 2.43e9, -1.19e7), (-5.72, 3.45, 8.7e-2)),
    "Neptune": (1.02e26, (4.47e9, -5.31e7, -1.02e8), (2.87e-2, 5.47, -0.113)),
}


# =============================================================================
# Celestial Body
# =============================================================================


@beartype
@dataclass
class CelestialBody:
    """Point mass with a position and velocity.

    Attributes:
        name: Body name
        mass: Mass [kg]
        position: Position [km]
        velocity: Velocity [km/s]
        radius: Mean surface radius [km], used for launch sites only
    """
    name: str
    mass: float
    position: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    velocity: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    radius: float = 0.0

    def __post_init__(self) -> None:
        if self.mass < 0.0:
            raise ConfigurationError(f"{self.name}: mass must be non-negative, got {self.mass}")
        if self.radius < 0.0:
            raise ConfigurationError(f"{self.name}: radius must be non-negative, got {self.radius}")
        self.position = np.array(self.position, dtype=np.float64)
        self.velocity = np.array(self.velocity, dtype=np.float64)
        if self.position.shape != (3,) or self.velocity.shape != (3,):
            raise ConfigurationError(
                f"{self.name}: position and velocity must be 3-vectors, "
                f"got {self.position.shape} and {self.velocity.shape}"
            )

    def copy(self) -> "CelestialBody":
        return CelestialBody(
            self.name, self.mass, self.position.copy(), self.velocity.copy(), self.radius
        )

    def state(self) -> NDArray[np.float64]:
        """[x, y, z, vx, vy, vz]."""
        return np.concatenate([self.position, self.velocity])

    def distance_to(self, other: "CelestialBody") -> float:
        return float(np.linalg.norm(self.position - other.position))


@beartype
def load_solar_system(names: list[str] | None = None) -> list[CelestialBody]:
    """Fresh copies of the reference bodies, in table order.

    Args:
        names: Optional subset of body names to load

    Raises:
        ConfigurationError: If a requested name is not in the table
    """
    if names is None:
        names = list(SOLAR_SYSTEM)
    unknown = [n for n in names if n not in SOLAR_SYSTEM]
    if unknown:
        raise ConfigurationError(f"Unknown bodies {unknown}. Available: {list(SOLAR_SYSTEM)}")

    bodies = []
    for name in SOLAR_SYSTEM:
        if name in names:
            mass, position, velocity = SOLAR_SYSTEM[name]
            bodies.append(
                CelestialBody(
                    name, mass, np.array(position), np.array(velocity), BODY_RADII[name]
                )
            )
    return bodies


@beartype
def find_body(bodies: list[CelestialBody], name: str) -> CelestialBody:
    """Look up a body by name (case-insensitive)."""
    return bodies[index_of(bodies, name)]


@beartype
def index_of(bodies: list[CelestialBody], name: str) -> int:
    for i, body in enumerate(bodies):
        if body.name.lower() == name.lower():
            return i
    raise ConfigurationError(f"Body '{name}' not found among {[b.name for b in bodies]}")
