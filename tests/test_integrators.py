"""Unit tests for the fixed-step integrators and the shared trajectory type."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from spacesim.integrators import (
    ConfigurationError,
    EulerSolver,
    FixedStepSolver,
    RK4Solver,
    Trajectory,
    TrajectoryBuilder,
    euler_step,
    rk4_step,
    validate_problem,
)


def decay(t, y):
    return -y


def fall(t, y):
    return np.array([-1.0])


def final_error(solver, h):
    n = int(round(1.0 / h))
    traj = solver.solve(decay, 0.0, np.array([1.0]), h, n)
    return abs(traj.final_state[0] - np.exp(-1.0))


def growth(t, y):
    return y


def max_growth_error(h):
    n = int(round(1.0 / h))
    traj = RK4Solver().solve(growth, 0.0, np.array([1.0]), h, n)
    return float(np.max(np.abs(traj.states[:, 0] - np.exp(traj.times))))


# =============================================================================
# Single Step Tests
# =============================================================================


class TestSingleStep:
    """Test the one-step helpers."""

    def test_euler_step(self):
        """Euler step is y + h f(t, y)."""
        y = euler_step(decay, 0.0, np.array([2.0]), 0.5)
        assert_allclose(y, [1.0])

    def test_rk4_step_matches_taylor_series(self):
        """One RK4 step of y' = -y reproduces exp(-h) to fourth order."""
        h = 0.1
        y = rk4_step(decay, 0.0, np.array([1.0]), h)
        taylor = 1.0 - h + h**2 / 2 - h**3 / 6 + h**4 / 24
        assert_allclose(y, [taylor], rtol=1e-14)

    def test_step_does_not_modify_input(self):
        """The input state is left untouched."""
        y0 = np.array([1.0, 2.0])
        rk4_step(decay, 0.0, y0, 0.1)
        assert_allclose(y0, [1.0, 2.0])


# =============================================================================
# Convergence Tests
# =============================================================================


class TestConvergence:
    """Test observed order of accuracy."""

    def test_rk4_accuracy(self):
        """RK4 with h = 0.1 tracks exp(-t) closely."""
        traj = RK4Solver().solve(decay, 0.0, np.array([1.0]), 0.1, 10)
        assert_allclose(traj.final_state, [np.exp(-1.0)], rtol=1e-5)

    def test_rk4_fourth_order(self):
        """Halving h cuts the RK4 error by about 16."""
        ratio = final_error(RK4Solver(), 0.1) / final_error(RK4Solver(), 0.05)
        assert 12.0 < ratio < 20.0

    @pytest.mark.parametrize("h, rel", [(1.0, 0.4), (0.5, 0.25), (0.1, 0.1), (0.01, 0.03)])
    def test_rk4_halving_on_growth(self, h, rel):
        """On y' = y over [0, 1], halving h cuts the max error by about 16."""
        ratio = max_growth_error(h) / max_growth_error(h / 2.0)
        assert ratio == pytest.approx(16.0, rel=rel)

    def test_rk4_decade_on_growth(self):
        """Going from h = 0.1 to h = 0.01 cuts the error by about 10^4."""
        ratio = max_growth_error(0.1) / max_growth_error(0.01)
        assert ratio == pytest.approx(1e4, rel=0.2)

    def test_euler_first_order(self):
        """Halving h cuts the Euler error by about 2."""
        ratio = final_error(EulerSolver(), 0.1) / final_error(EulerSolver(), 0.05)
        assert 1.7 < ratio < 2.3


# =============================================================================
# Driver Loop Tests
# =============================================================================


class TestFixedStepSolver:
    """Test the shared solve() loop."""

    def test_base_class_is_abstract(self):
        """The driver loop cannot run without a step method."""
        with pytest.raises(TypeError):
            FixedStepSolver()

    def test_subclass_supplies_step(self):
        """A subclass only has to implement solve_step."""

        class Hold(FixedStepSolver):
            def solve_step(self, f, t, y, h):
                return y.copy()

        traj = Hold().solve(decay, 0.0, np.array([2.0]), 0.5, 3)
        assert len(traj) == 4
        assert_allclose(traj.states[:, 0], 2.0)

    def test_first_row_is_initial_condition(self):
        """Row 0 is (t0, y0)."""
        y0 = np.array([3.0, -1.0])
        traj = RK4Solver().solve(decay, 2.0, y0, 0.5, 4)
        assert traj.times[0] == 2.0
        assert_allclose(traj.states[0], y0)

    def test_initial_state_not_modified(self):
        """The caller's y0 array is never written."""
        y0 = np.array([3.0, -1.0])
        RK4Solver().solve(decay, 0.0, y0, 0.5, 4)
        assert_allclose(y0, [3.0, -1.0])

    def test_times_follow_grid(self):
        """Row times are t0 + n h."""
        traj = RK4Solver().solve(decay, 1.0, np.array([1.0]), 0.1, 50)
        assert_allclose(traj.times, 1.0 + 0.1 * np.arange(51), rtol=0, atol=1e-12)

    def test_max_steps_cap(self):
        """Without a stop predicate the run has max_steps + 1 rows."""
        traj = RK4Solver().solve(decay, 0.0, np.array([1.0]), 0.1, 7)
        assert len(traj) == 8
        assert traj.n_steps == 7
        assert not traj.stopped
        assert traj.timed_out

    def test_stop_predicate_ends_run(self):
        """The run ends at the first step where the predicate holds."""
        traj = RK4Solver().solve(
            fall, 0.0, np.array([10.0]), 1.0, 100, stop=lambda t, y: y[0] <= 0.5
        )
        assert traj.stopped
        assert len(traj) == 11
        assert traj.final_state[0] <= 0.5
        assert traj.states[-2, 0] > 0.5

    def test_stop_not_checked_at_initial_row(self):
        """A predicate that already holds at t0 still lets one step run."""
        traj = RK4Solver().solve(fall, 0.0, np.array([-1.0]), 1.0, 100, stop=lambda t, y: True)
        assert len(traj) == 2
        assert traj.stopped

    def test_fixed_step_errors_are_zero(self):
        """Fixed-step integrators report zero local error."""
        traj = EulerSolver().solve(decay, 0.0, np.array([1.0]), 0.1, 5)
        assert_allclose(traj.errors, 0.0)
        assert traj.forced == ()
        assert traj.rejected == ()


# =============================================================================
# Validation Tests
# =============================================================================


class TestValidation:
    """Test rejection of malformed problems."""

    def test_non_positive_step(self):
        """Zero and negative step sizes are rejected."""
        with pytest.raises(ConfigurationError, match="step_size must be positive"):
            RK4Solver().solve(decay, 0.0, np.array([1.0]), 0.0, 10)
        with pytest.raises(ConfigurationError, match="step_size must be positive"):
            RK4Solver().solve(decay, 0.0, np.array([1.0]), -0.1, 10)

    def test_max_steps_must_be_positive(self):
        """max_steps < 1 is rejected."""
        with pytest.raises(ConfigurationError, match="max_steps"):
            RK4Solver().solve(decay, 0.0, np.array([1.0]), 0.1, 0)

    def test_non_finite_state(self):
        """NaN or inf in y0 is rejected."""
        with pytest.raises(ConfigurationError, match="finite"):
            RK4Solver().solve(decay, 0.0, np.array([np.nan]), 0.1, 10)

    def test_empty_and_matrix_states(self):
        """y0 must be a non-empty vector."""
        with pytest.raises(ConfigurationError, match="1-D"):
            validate_problem(decay, 0.0, np.zeros(0), 0.1, 10)
        with pytest.raises(ConfigurationError, match="1-D"):
            validate_problem(decay, 0.0, np.zeros((2, 2)), 0.1, 10)

    def test_derivative_shape_mismatch(self):
        """A derivative of the wrong length is caught before stepping."""
        with pytest.raises(ConfigurationError, match="shape"):
            RK4Solver().solve(lambda t, y: np.zeros(3), 0.0, np.array([1.0, 2.0]), 0.1, 10)

    def test_returns_copy(self):
        """validate_problem hands back a private copy."""
        y0 = np.array([1.0, 2.0])
        y = validate_problem(decay, 0.0, y0, 0.1, 10)
        y[0] = 99.0
        assert y0[0] == 1.0


# =============================================================================
# Trajectory Tests
# =============================================================================


class TestTrajectory:
    """Test the immutable result type."""

    @pytest.fixture
    def traj(self):
        return RK4Solver().solve(decay, 0.0, np.array([1.0, 2.0]), 0.5, 4)

    def test_arrays_are_read_only(self, traj):
        """Rows cannot be edited after the run."""
        with pytest.raises(ValueError):
            traj.states[0, 0] = 5.0
        with pytest.raises(ValueError):
            traj.times[0] = 5.0

    def test_final_state_is_copy(self, traj):
        """final_state may be modified freely."""
        final = traj.final_state
        final[0] = 123.0
        assert traj.states[-1, 0] != 123.0

    def test_rows(self, traj):
        """rows stacks time in front of the state."""
        assert traj.rows.shape == (5, 3)
        assert_allclose(traj.rows[:, 0], traj.times)
        assert traj.dimension == 2
        assert traj.final_time == 2.0

    def test_to_dataframe(self, traj):
        """DataFrame has a time column and one column per component."""
        df = traj.to_dataframe(["a", "b"])
        assert df.columns == ["time", "a", "b"]
        assert df.height == 5

        default = traj.to_dataframe()
        assert default.columns == ["time", "y0", "y1"]

    def test_to_dataframe_wrong_names(self, traj):
        """Column names must match the state dimension."""
        with pytest.raises(ConfigurationError, match="column names"):
            traj.to_dataframe(["only_one"])

    def test_mismatched_shapes(self):
        """States must have one row per time."""
        with pytest.raises(ConfigurationError):
            Trajectory(times=np.zeros(3), states=np.zeros((2, 1)), errors=np.zeros(3))

    def test_builder_records_forced_rows(self):
        """Forced rows are recorded by index."""
        builder = TrajectoryBuilder(0.0, np.array([1.0]))
        builder.append(1.0, np.array([0.5]), error=0.1)
        builder.append(2.0, np.array([0.25]), error=0.2, forced=True)
        traj = builder.build(stopped=True)
        assert traj.forced == (2,)
        assert_allclose(traj.errors, [0.0, 0.1, 0.2])
        assert traj.stopped
