"""N-body point-mass gravitation.

State layout for n bodies: 6 values per body, concatenated,
``[x, y, z, vx, vy, vz]_0 ... [x, y, z, vx, vy, vz]_{n-1}``.

Acceleration of body i:

    a_i = sum_{j != i} G m_j (r_j - r_i) / (|r_j - r_i| + eps)^3

The softening eps keeps the field finite at near-zero separation. The inner
loop is numba-compiled.

Two helpers support stepping a probe against bodies advanced by an external
engine: :class:`FrozenBodies` holds body positions captured before and after
the external step and interpolates linearly between them, and
:func:`probe_derivatives` builds the probe's derivative function from it.

Example:
    >>> bodies = load_solar_system()
    >>> masses = np.array([b.mass for b in bodies])
    >>> f = nbody_derivatives(masses)
    >>> y0 = np.concatenate([b.state() for b in bodies])
    >>> traj = RKF45Solver().solve(f, 0.0, y0, 3600.0, 1000)
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

from spacesim.environment.bodies import GRAVITATIONAL_CONSTANT
from spacesim.integrators.base import ConfigurationError, DerivativeFunction

SOFTENING: float = 1e-9  # [km]
BODY_STATE_SIZE: int = 6


# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class NBodyConfig:
    """Gravity model settings.

    Attributes:
        gravitational_constant: G [km^3/(kg s^2)]
        softening: Added to every separation before cubing [km]
        fixed_index: Body held at rest (zero derivative), or None
    """
    gravitational_constant: float = GRAVITATIONAL_CONSTANT
    softening: float = SOFTENING
    fixed_index: int | None = None

    def __post_init__(self) -> None:
        if self.softening < 0.0:
            raise ConfigurationError(f"softening must be non-negative, got {self.softening}")


# =============================================================================
# Numba-Optimized Core Functions
# =============================================================================


@njit(cache=True, fastmath=True)
def _accelerations(
    positions: NDArray[np.float64],
    masses: NDArray[np.float64],
    g: float,
    softening: float,
    fixed_index: int,
) -> NDArray[np.float64]:
    """Pairwise softened gravity on every body. fixed_index < 0 pins nothing."""
    n = positions.shape[0]
    acc = np.zeros((n, 3))
    for i in range(n):
        if i == fixed_index:
            continue
        for j in range(n):
            if i == j:
                continue
            dx = positions[j, 0] - positions[i, 0]
            dy = positions[j, 1] - positions[i, 1]
            dz = positions[j, 2] - positions[i, 2]
            dist = np.sqrt(dx*dx + dy*dy + dz*dz) + softening
            scale = g * masses[j] / (dist * dist * dist)
            acc[i, 0] += scale * dx
            acc[i, 1] += scale * dy
            acc[i, 2] += scale * dz
    return acc


@njit(cache=True, fastmath=True)
def _acceleration_at(
    point: NDArray[np.float64],
    positions: NDArray[np.float64],
    masses: NDArray[np.float64],
    g: float,
    softening: float,
) -> NDArray[np.float64]:
    """Softened gravity at a massless test point."""
    acc = np.zeros(3)
    for j in range(positions.shape[0]):
        dx = positions[j, 0] - point[0]
        dy = positions[j, 1] - point[1]
        dz = positions[j, 2] - point[2]
        dist = np.sqrt(dx*dx + dy*dy + dz*dz) + softening
        scale = g * masses[j] / (dist * dist * dist)
        acc[0] += scale * dx
        acc[1] += scale * dy
        acc[2] += scale * dz
    return acc


# =============================================================================
# Derivative Functions
# =============================================================================


@beartype
def nbody_accelerations(
    positions: NDArray[np.float64],
    masses: NDArray[np.float64],
    config: NBodyConfig | None = None,
) -> NDArray[np.float64]:
    """Accelerations (n, 3) of n bodies at the given positions (n, 3)."""
    config = config or NBodyConfig()
    if positions.shape != (masses.shape[0], 3):
        raise ConfigurationError(
            f"positions must have shape ({masses.shape[0]}, 3), got {positions.shape}"
        )
    fixed = -1 if config.fixed_index is None else config.fixed_index
    return _accelerations(
        np.ascontiguousarray(positions),
        masses,
        config.gravitational_constant,
        config.softening,
        fixed,
    )


@beartype
def nbody_derivatives(
    masses: NDArray[np.float64],
    config: NBodyConfig | None = None,
) -> DerivativeFunction:
    """Build ``f(t, y)`` for the concatenated state of all bodies.

    Args:
        masses: Body masses [kg], shape (n,)
        config: Gravity settings

    Returns:
        Derivative function for states of length 6n

    Raises:
        ConfigurationError: If masses is empty or fixed_index is out of range
    """
    config = config or NBodyConfig()
    masses = np.array(masses, dtype=np.float64)
    n = masses.shape[0]
    if masses.ndim != 1 or n == 0:
        raise ConfigurationError(f"masses must be a non-empty 1-D array, got shape {masses.shape}")
    if config.fixed_index is not None and not 0 <= config.fixed_index < n:
        raise ConfigurationError(f"fixed_index {config.fixed_index} out of range for {n} bodies")

    def f(t: float, y: NDArray[np.float64]) -> NDArray[np.float64]:
        if y.shape != (BODY_STATE_SIZE * n,):
            raise ConfigurationError(
                f"State of length {y.shape} does not match {n} bodies "
                f"({BODY_STATE_SIZE * n} values expected)"
            )
        bodies = y.reshape(n, BODY_STATE_SIZE)
        dydt = np.empty_like(bodies)
        dydt[:, :3] = bodies[:, 3:]
        dydt[:, 3:] = nbody_accelerations(bodies[:, :3], masses, config)
        if config.fixed_index is not None:
            dydt[config.fixed_index] = 0.0
        return dydt.reshape(-1)

    return f


@beartype
@dataclass(frozen=True)
class FrozenBodies:
    """Externally propagated bodies over one step, linearly interpolated.

    Attributes:
        before: Positions (m, 3) at ``t0``
        after: Positions (m, 3) at ``t0 + dt``
        masses: Masses (m,)
        t0: Start time of the external step
        dt: Length of the external step
    """
    before: NDArray[np.float64]
    after: NDArray[np.float64]
    masses: NDArray[np.float64]
    t0: float
    dt: float

    def __post_init__(self) -> None:
        m = self.masses.shape[0]
        if self.before.shape != (m, 3) or self.after.shape != (m, 3):
            raise ConfigurationError(
                f"before/after must have shape ({m}, 3), "
                f"got {self.before.shape} and {self.after.shape}"
            )
        if self.dt <= 0.0:
            raise ConfigurationError(f"dt must be positive, got {self.dt}")

    def positions_at(self, t: float) -> NDArray[np.float64]:
        """Interpolated positions, clamped to the captured interval."""
        alpha = min(max((t - self.t0) / self.dt, 0.0), 1.0)
        return (1.0 - alpha) * self.before + alpha * self.after


@beartype
def probe_derivatives(
    frozen: FrozenBodies,
    config: NBodyConfig | None = None,
) -> DerivativeFunction:
    """``f(t, y)`` for a massless probe ``[r, v]`` in the frozen bodies' field."""
    config = config or NBodyConfig()

    def f(t: float, y: NDArray[np.float64]) -> NDArray[np.float64]:
        positions = frozen.positions_at(t)
        acc = _acceleration_at(
            np.ascontiguousarray(y[:3]),
            np.ascontiguousarray(positions),
            frozen.masses,
            config.gravitational_constant,
            config.softening,
        )
        return np.concatenate([y[3:], acc])

    return f


# =============================================================================
# Energy Diagnostics
# =============================================================================


@beartype
def total_energy(
    state: NDArray[np.float64],
    masses: NDArray[np.float64],
    config: NBodyConfig | None = None,
) -> float:
    """Kinetic plus softened potential energy [kg km^2/s^2]."""
    config = config or NBodyConfig()
    bodies = state.reshape(masses.shape[0], BODY_STATE_SIZE)
    positions, velocities = bodies[:, :3], bodies[:, 3:]

    kinetic = 0.5 * float(np.sum(masses * np.sum(velocities**2, axis=1)))

    diff = positions[None, :, :] - positions[:, None, :]
    dist = np.linalg.norm(diff, axis=-1) + config.softening
    i, j = np.triu_indices(masses.shape[0], k=1)
    potential = -config.gravitational_constant * float(np.sum(masses[i] * masses[j] / dist[i, j]))

    return kinetic + potential


@beartype
def energy_drift(
    states: NDArray[np.float64],
    masses: NDArray[np.float64],
    config: NBodyConfig | None = None,
) -> NDArray[np.float64]:
    """Relative energy error |E(t) - E(0)| / |E(0)| for every row of ``states``."""
    energies = np.array([total_energy(s, masses, config) for s in states])
    e0 = energies[0]
    if e0 == 0.0:
        return np.abs(energies - e0)
    return np.abs(energies - e0) / abs(e0)
