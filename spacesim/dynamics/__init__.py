"""Dynamics models: planar lander and N-body gravitation."""

from spacesim.dynamics.lander import (
    G_TITAN,
    GROUND_EPSILON,
    LANDER_MASS,
    U_MAX,
    V_MAX,
    ControlLaw,
    LanderConfig,
    LanderDiagnostics,
    LanderDynamics,
)
from spacesim.dynamics.nbody import (
    SOFTENING,
    FrozenBodies,
    NBodyConfig,
    energy_drift,
    nbody_accelerations,
    nbody_derivatives,
    probe_derivatives,
    total_energy,
)
from spacesim.dynamics.state import (
    LANDER_COLUMNS,
    LANDER_STATE_SIZE,
    OMEGA,
    THETA,
    VX,
    VY,
    X,
    Y,
    LanderState,
    lander_altitude,
    lander_position,
    normalize_angle,
)

__all__ = [
    "ControlLaw",
    "FrozenBodies",
    "G_TITAN",
    "GROUND_EPSILON",
    "LANDER_COLUMNS",
    "LANDER_MASS",
    "LANDER_STATE_SIZE",
    "LanderConfig",
    "LanderDiagnostics",
    "LanderDynamics",
    "LanderState",
    "NBodyConfig",
    "OMEGA",
    "SOFTENING",
    "THETA",
    "U_MAX",
    "V_MAX",
    "VX",
    "VY",
    "X",
    "Y",
    "energy_drift",
    "lander_altitude",
    "lander_position",
    "nbody_accelerations",
    "nbody_derivatives",
    "normalize_angle",
    "probe_derivatives",
    "total_energy",
]
