"""Finite-difference gradients and an Adam optimizer over a bounded box.

Parameters are usually normalized to [0, 1] (see
:class:`~spacesim.optimization.objectives.UnitBoxObjective`); the difference
stencils switch from central to one-sided near the box edges so the objective
is never evaluated outside it.

Example:
    >>> opt = GradientDescentOptimizer(UnitBoxObjective(LanderObjective(y0), bounds))
    >>> result = opt.optimize(np.array([0.5, 0.5]))
    >>> result.parameters, result.value, result.converged
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np
from beartype import beartype
from numpy.typing import NDArray
from tqdm import tqdm

from spacesim.integrators.base import ConfigurationError

logger = logging.getLogger(__name__)

Objective = Callable[[NDArray[np.float64]], float]


# =============================================================================
# Gradient Calculator
# =============================================================================


@beartype
@dataclass
class GradientCalculator:
    """Bounded finite differences.

    Attributes:
        step: Difference step
        lower: Lower parameter bound
        upper: Upper parameter bound
    """
    step: float = 0.01
    lower: float = 0.0
    upper: float = 1.0

    def __post_init__(self) -> None:
        if self.step <= 0.0:
            raise ConfigurationError(f"step must be positive, got {self.step}")
        if self.upper - self.lower < self.step:
            raise ConfigurationError(
                f"Bounds [{self.lower}, {self.upper}] are narrower than the step {self.step}"
            )

    def gradient(self, f: Objective, x: NDArray[np.float64]) -> NDArray[np.float64]:
        """Central differences, one-sided within ``step`` of a bound."""
        h = self.step
        grad = np.empty_like(x, dtype=np.float64)
        f0: float | None = None

        for i in range(x.size):
            forward = x.copy()
            backward = x.copy()
            forward[i] += h
            backward[i] -= h

            if backward[i] < self.lower:
                if f0 is None:
                    f0 = float(f(x))
                grad[i] = (float(f(forward)) - f0) / h
            elif forward[i] > self.upper:
                if f0 is None:
                    f0 = float(f(x))
                grad[i] = (f0 - float(f(backward))) / h
            else:
                grad[i] = (float(f(forward)) - float(f(backward))) / (2.0 * h)
        return grad

    def sensitivity(self, f: Objective, x: NDArray[np.float64]) -> NDArray[np.float64]:
        """Normalized sensitivities |df/dx_i| * |x_i| / |f(x)|.

        Falls back to |df/dx_i| * |x_i| when f(x) is zero.
        """
        grad = self.gradient(f, x)
        value = abs(float(f(x)))
        scaled = np.abs(grad) * np.abs(x)
        return scaled / value if value > 0.0 else scaled


# =============================================================================
# Adam Optimizer
# =============================================================================


@beartype
@dataclass
class GradientDescentConfig:
    """Adam settings.

    Attributes:
        learning_rate: Initial step size
        max_iterations: Iteration cap
        tolerance: Relative objective change that counts as converged
        window: Iterations spanned by the convergence check
        beta1: First-moment decay
        beta2: Second-moment decay
        epsilon: Denominator guard
        decay: Learning-rate factor after an iteration without improvement
        lower: Lower parameter bound
        upper: Upper parameter bound
        gradient_step: Finite-difference step
    """
    learning_rate: float = 0.05
    max_iterations: int = 200
    tolerance: float = 1e-6
    window: int = 10
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8
    decay: float = 0.95
    lower: float = 0.0
    upper: float = 1.0
    gradient_step: float = 0.01

    def __post_init__(self) -> None:
        if self.learning_rate <= 0.0:
            raise ConfigurationError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.window < 1:
            raise ConfigurationError(f"window must be >= 1, got {self.window}")
        if not (0.0 <= self.beta1 < 1.0 and 0.0 <= self.beta2 < 1.0):
            raise ConfigurationError("beta1 and beta2 must be in [0, 1)")
        if self.upper <= self.lower:
            raise ConfigurationError(f"upper must exceed lower, got [{self.lower}, {self.upper}]")


@dataclass(frozen=True)
class OptimizationResult:
    """Outcome of a gradient descent run.

    Attributes:
        parameters: Best parameters found
        value: Objective at ``parameters``
        iterations: Iterations performed
        converged: True if the convergence test passed before the cap
        history: Objective value after each iteration (index 0 is the start)
    """
    parameters: NDArray[np.float64]
    value: float
    iterations: int
    converged: bool
    history: NDArray[np.float64]


@beartype
class GradientDescentOptimizer:
    """Adam on a box-constrained objective with learning-rate decay."""

    def __init__(
        self,
        objective: Objective,
        config: GradientDescentConfig | None = None,
    ) -> None:
        self.objective = objective
        self.config = config or GradientDescentConfig()
        self.calculator = GradientCalculator(
            self.config.gradient_step, self.config.lower, self.config.upper
        )
        self._params: NDArray[np.float64] | None = None
        self._m = np.zeros(0)
        self._v = np.zeros(0)
        self._t = 0
        self._lr = self.config.learning_rate
        self._best_params = np.zeros(0)
        self._best_value = np.inf
        self._history: list[float] = []

    def start(self, x0: NDArray[np.float64]) -> float:
        """Reset the optimizer state at ``x0`` and return the objective there."""
        cfg = self.config
        self._params = np.clip(np.array(x0, dtype=np.float64), cfg.lower, cfg.upper)
        self._m = np.zeros_like(self._params)
        self._v = np.zeros_like(self._params)
        self._t = 0
        self._lr = cfg.learning_rate
        value = float(self.objective(self._params))
        self._best_params = self._params.copy()
        self._best_value = value
        self._history = [value]
        return value

    @property
    def parameters(self) -> NDArray[np.float64]:
        if self._params is None:
            raise ConfigurationError("Call start() before reading parameters")
        return self._params.copy()

    @property
    def learning_rate(self) -> float:
        return self._lr

    def optimize_step(self) -> float:
        """One Adam update; returns the objective at the new parameters."""
        if self._params is None:
            raise ConfigurationError("Call start() before optimize_step()")
        cfg = self.config

        grad = self.calculator.gradient(self.objective, self._params)
        self._t += 1
        self._m = cfg.beta1 * self._m + (1.0 - cfg.beta1) * grad
        self._v = cfg.beta2 * self._v + (1.0 - cfg.beta2) * grad * grad
        m_hat = self._m / (1.0 - cfg.beta1**self._t)
        v_hat = self._v / (1.0 - cfg.beta2**self._t)

        step = self._lr * m_hat / (np.sqrt(v_hat) + cfg.epsilon)
        self._params = np.clip(self._params - step, cfg.lower, cfg.upper)

        value = float(self.objective(self._params))
        if value < self._best_value:
            self._best_value = value
            self._best_params = self._params.copy()
        else:
            self._lr *= cfg.decay
        self._history.append(value)
        return value

    def converged(self) -> bool:
        """Relative change over the last ``window`` iterations below tolerance."""
        w = self.config.window
        if len(self._history) <= w:
            return False
        old, new = self._history[-1 - w], self._history[-1]
        scale = max(abs(old), 1e-12)
        return abs(new - old) / scale < self.config.tolerance

    def optimize(self, x0: NDArray[np.float64], progress: bool = False) -> OptimizationResult:
        """Iterate from ``x0`` until converged or ``max_iterations``.

        Args:
            x0: Starting parameters (clamped to the bounds)
            progress: Show a progress bar

        Returns:
            OptimizationResult with the best parameters seen
        """
        cfg = self.config
        self.start(x0)

        bar: Any = tqdm(desc="Gradient descent", total=cfg.max_iterations) if progress else None

        converged = False
        iterations = 0
        for iterations in range(1, cfg.max_iterations + 1):
            value = self.optimize_step()
            if bar is not None:
                bar.update(1)
                bar.set_postfix(value=f"{value:.4g}")
            logger.debug("Iteration %d: value=%.6g lr=%.3g", iterations, value, self._lr)
            if self.converged():
                converged = True
                break

        if bar is not None:
            bar.close()
        logger.info(
            "Gradient descent %s after %d iterations: best=%.6g",
            "converged" if converged else "stopped",
            iterations,
            self._best_value,
        )
        return OptimizationResult(
            parameters=self._best_params.copy(),
            value=self._best_value,
            iterations=iterations,
            converged=converged,
            history=np.array(self._history),
        )
