"""Quadratic atmospheric drag.

F = -k * |v_rel| * v_rel, with v_rel = v - wind(position). Drag acts only
while the altitude above terrain is at or below the atmosphere ceiling.

Example:
    >>> drag = AtmosphericDrag(coefficient=0.001, ceiling=70.0)
    >>> env = constant_wind(1e-4)
    >>> drag.force(np.array([0.0, 10.0, 0.0]), np.array([0.5, -0.2, 0.0]), env)
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.environment.environment import Environment
from spacesim.integrators.base import ConfigurationError

# Titan-like defaults
DRAG_COEFFICIENT: float = 0.001
ATMOSPHERE_CEILING: float = 70.0  # [km]

# Below this relative speed the drag direction is undefined
MIN_RELATIVE_SPEED: float = 1e-8


@beartype
@dataclass(frozen=True)
class AtmosphericDrag:
    """Drag model with a hard atmosphere ceiling.

    Attributes:
        coefficient: Quadratic drag constant k [kg/km]
        ceiling: Altitude above terrain where the atmosphere ends [km]
    """
    coefficient: float = DRAG_COEFFICIENT
    ceiling: float = ATMOSPHERE_CEILING

    def __post_init__(self) -> None:
        if self.coefficient < 0.0:
            raise ConfigurationError(f"coefficient must be non-negative, got {self.coefficient}")
        if self.ceiling < 0.0:
            raise ConfigurationError(f"ceiling must be non-negative, got {self.ceiling}")

    def in_atmosphere(self, altitude: float) -> bool:
        return altitude <= self.ceiling

    def force(
        self,
        position: NDArray[np.float64],
        velocity: NDArray[np.float64],
        environment: Environment,
    ) -> NDArray[np.float64]:
        """Drag force on a body [kg km/s^2].

        Args:
            position: Planet-local position (3-vector) [km]
            velocity: Body velocity (3-vector) [km/s]
            environment: Altitude and wind provider

        Returns:
            Force vector; zero above the ceiling or when the body moves with
            the wind
        """
        altitude = environment.altitude(position)
        if not self.in_atmosphere(altitude):
            return np.zeros(3)
        return self.force_relative(velocity - environment.wind(position))

    def force_relative(self, relative_velocity: NDArray[np.float64]) -> NDArray[np.float64]:
        """Drag force for a velocity already expressed relative to the air."""
        speed = float(np.linalg.norm(relative_velocity))
        if speed <= MIN_RELATIVE_SPEED:
            return np.zeros_like(relative_velocity)
        return -self.coefficient * speed * relative_velocity
