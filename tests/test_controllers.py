"""Unit tests for the open-loop, feedback and combined controllers."""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from spacesim.dynamics import G_TITAN, U_MAX, V_MAX, LanderConfig, LanderState
from spacesim.gnc.control import (
    CombinedController,
    ControlCommand,
    FeedbackController,
    FeedbackGains,
    OpenLoopController,
    clamp,
    saturate,
)
from spacesim.integrators import ConfigurationError
from spacesim.simulation import simulate


def random_states(n, seed=0):
    rng = np.random.default_rng(seed)
    scale = np.array([50.0, 200.0, 3.0, 2.0, 2.0, 1.0])
    return rng.uniform(-1.0, 1.0, size=(n, 6)) * scale


# =============================================================================
# Command Tests
# =============================================================================


class TestControlCommand:
    """Test the command tuple and saturation."""

    def test_unpacks(self):
        """A command unpacks as (u, v)."""
        u, v = ControlCommand(1.0, 2.0)
        assert (u, v) == (1.0, 2.0)

    def test_addition_is_componentwise(self):
        """Adding commands sums thrust and torque."""
        total = ControlCommand(1.0, -0.5) + ControlCommand(0.25, 0.75)
        assert total == ControlCommand(1.25, 0.25)

    def test_saturate(self):
        """Saturation clamps each channel to its range."""
        cfg = LanderConfig()
        assert saturate(ControlCommand(1.0, -9.0), cfg) == ControlCommand(cfg.u_max, -cfg.v_max)
        assert saturate(ControlCommand(-1.0, 0.5), cfg) == ControlCommand(0.0, 0.5)

    def test_clamp(self):
        """clamp keeps values inside [lower, upper]."""
        assert clamp(5.0, 0.0, 1.0) == 1.0
        assert clamp(-5.0, 0.0, 1.0) == 0.0
        assert clamp(0.5, 0.0, 1.0) == 0.5


# =============================================================================
# Open-Loop Tests
# =============================================================================


class TestOpenLoopLookup:
    """Test table lookups."""

    @pytest.fixture
    def ctrl(self):
        rows = ((0.0, 1e-3, 0.5), (10.0, 2e-3, -0.5), (20.0, 0.0, 0.0))
        return OpenLoopController(rows=rows, end_time=30.0)

    def test_last_row_at_or_before(self, ctrl):
        """A query returns the last row starting at or before t."""
        assert ctrl.lookup_u(0.0) == 1e-3
        assert ctrl.lookup_v(9.999) == 0.5
        assert ctrl.lookup_u(10.0) == 2e-3
        assert ctrl.lookup_v(15.0) == -0.5
        assert ctrl.lookup_u(25.0) == 0.0

    def test_zero_outside_profile(self, ctrl):
        """Before t = 0 and from end_time on the commands are zero."""
        assert ctrl.lookup_u(-1.0) == 0.0
        assert ctrl.lookup_v(-1.0) == 0.0
        assert ctrl.lookup_u(30.0) == 0.0
        assert ctrl.lookup_v(1e6) == 0.0

    def test_empty_table(self):
        """An empty table commands nothing."""
        ctrl = OpenLoopController(rows=(), end_time=0.0)
        assert ctrl.evaluate(0.0, np.zeros(6)) == ControlCommand(0.0, 0.0)

    def test_evaluate_saturates(self):
        """Tabulated values beyond the actuator range are clamped."""
        ctrl = OpenLoopController(rows=((0.0, 1.0, 3.0),), end_time=5.0)
        assert ctrl.raw(1.0, np.zeros(6)) == ControlCommand(1.0, 3.0)
        assert ctrl.evaluate(1.0, np.zeros(6)) == ControlCommand(U_MAX, V_MAX)

    def test_rows_must_be_ordered(self):
        """Decreasing times are rejected."""
        with pytest.raises(ConfigurationError, match="non-decreasing"):
            OpenLoopController(rows=((5.0, 0.0, 0.0), (1.0, 0.0, 0.0)), end_time=10.0)

    def test_end_after_last_row(self):
        """end_time may not precede the last row."""
        with pytest.raises(ConfigurationError, match="end_time"):
            OpenLoopController(rows=((5.0, 0.0, 0.0),), end_time=1.0)

    def test_negative_start(self):
        """Profiles start at t >= 0."""
        with pytest.raises(ConfigurationError, match="t >= 0"):
            OpenLoopController(rows=((-1.0, 0.0, 0.0),), end_time=1.0)


class TestOpenLoopPlan:
    """Test the four-phase profile."""

    def test_rotation_opposes_drift(self):
        """With vx > 0 the lander first rotates toward negative tilt."""
        y0 = LanderState(y=100.0, vx=0.5).to_array()
        ctrl = OpenLoopController.plan(y0, 0.3, 100.0)
        half = math.sqrt(0.3 / V_MAX)

        assert ctrl.lookup_v(0.1) == -V_MAX
        assert ctrl.lookup_v(half + 0.1) == V_MAX
        assert ctrl.lookup_u(0.1) == pytest.approx(G_TITAN)
        assert ctrl.lookup_u(2.0 * half + 0.1) == pytest.approx(G_TITAN / math.cos(0.3))
        assert ctrl.lookup_v(2.0 * half + 0.1) == 0.0

    def test_burn_time_cancels_vx(self):
        """The tilted burn lasts |vx| / (u sin(tilt))."""
        y0 = LanderState(y=100.0, vx=-0.2).to_array()
        ctrl = OpenLoopController.plan(y0, 0.5, 100.0)
        rows = np.array(ctrl.rows)
        burn_start, burn_end = rows[2, 0], rows[3, 0]
        ax = G_TITAN / math.cos(0.5) * math.sin(0.5)
        assert_allclose(burn_end - burn_start, 0.2 / ax)

    def test_vertical_drop_ends_at_rest(self):
        """Without drift the plan coasts then brakes to rest at the ground."""
        y0 = LanderState(y=10.0).to_array()
        ctrl = OpenLoopController.plan(y0, 0.3, 100.0)
        coast_end = ctrl.rows[-1][0]
        u_brake = ctrl.rows[-1][1]

        vy = -G_TITAN * coast_end
        y = 10.0 - 0.5 * G_TITAN * coast_end**2
        a = u_brake - G_TITAN
        assert_allclose(vy + a * 100.0, 0.0, atol=1e-12)
        assert_allclose(y + vy * 100.0 + 0.5 * a * 100.0**2, 0.0, atol=1e-9)
        assert ctrl.duration == pytest.approx(coast_end + 100.0)

    def test_vertical_drop_simulated(self):
        """Flying the plan open loop touches down slowly near the planned time."""
        y0 = LanderState(y=10.0).to_array()
        ctrl = OpenLoopController.plan(y0, 0.3, 100.0)
        traj = simulate(ctrl, y0, step_size=0.1, max_steps=5000)

        assert traj.stopped
        assert abs(traj.final_state[4]) < 0.05
        assert abs(traj.final_time - ctrl.end_time) < 20.0

    @pytest.mark.parametrize("tilt", [0.0, -0.1, math.pi / 2])
    def test_invalid_tilt(self, tilt):
        """Tilt must be inside (0, pi/2)."""
        with pytest.raises(ConfigurationError, match="tilt_angle"):
            OpenLoopController.plan(LanderState(y=10.0).to_array(), tilt, 100.0)

    def test_invalid_descent_time(self):
        """The braking burn must have positive length."""
        with pytest.raises(ConfigurationError, match="descent_time"):
            OpenLoopController.plan(LanderState(y=10.0).to_array(), 0.3, 0.0)


# =============================================================================
# Feedback Tests
# =============================================================================


class TestFeedbackController:
    """Test the PD cascade."""

    def test_hover_at_target(self):
        """At the landing site and at rest the law commands hover."""
        ctrl = FeedbackController()
        assert ctrl.evaluate(0.0, np.zeros(6)) == pytest.approx((G_TITAN, 0.0))

    def test_high_altitude_cuts_thrust(self):
        """Far above the surface the vertical loop clamps to zero."""
        ctrl = FeedbackController()
        u, v = ctrl.evaluate(0.0, LanderState(y=1500.0).to_array())
        assert u == 0.0
        assert ctrl.desired_tilt(LanderState(x=-5.0, y=1500.0).to_array(), u) == 0.0

    def test_fast_descent_saturates(self):
        """A fast descent near the ground saturates the engine."""
        u, _ = FeedbackController().evaluate(0.0, LanderState(y=0.5, vy=-1000.0).to_array())
        assert u == U_MAX

    def test_tilt_toward_site(self):
        """Left of the site the lander tilts toward +x."""
        ctrl = FeedbackController()
        state = LanderState(x=-1.0).to_array()
        u = ctrl.vertical_thrust(state)
        theta_des = ctrl.desired_tilt(state, u)
        assert theta_des == pytest.approx(math.asin(5e-4 / G_TITAN))
        assert ctrl.evaluate(0.0, state).torque > 0.0

    def test_tilt_ratio_clamped(self):
        """A horizontal demand beyond the thrust gives a 90 degree tilt."""
        ctrl = FeedbackController()
        assert ctrl.desired_tilt(LanderState(x=-1000.0).to_array(), G_TITAN) == pytest.approx(
            math.pi / 2
        )

    def test_attitude_error_wraps(self):
        """Attitude error is wrapped, so 2 pi is the same as 0."""
        ctrl = FeedbackController()
        a = ctrl.raw(0.0, LanderState(theta=0.05).to_array())
        b = ctrl.raw(0.0, LanderState(theta=0.05 + 2.0 * math.pi).to_array())
        assert a.torque == pytest.approx(b.torque)

    def test_custom_gains(self):
        """Gains feed straight into the vertical law."""
        ctrl = FeedbackController(FeedbackGains(kp_y=0.0, kd_y=1e-3))
        u, _ = ctrl.evaluate(0.0, LanderState(y=50.0, vy=-1.0).to_array())
        assert u == pytest.approx(G_TITAN + 1e-3)

    def test_commands_within_limits(self):
        """Every command respects the actuator ranges."""
        ctrl = FeedbackController()
        for state in random_states(500):
            u, v = ctrl.evaluate(0.0, state)
            assert 0.0 <= u <= U_MAX
            assert -V_MAX <= v <= V_MAX


# =============================================================================
# Combined Tests
# =============================================================================


class TestCombinedController:
    """Test feed-forward plus feedback."""

    @pytest.fixture
    def ctrl(self):
        y0 = LanderState(x=-20.0, y=100.0, vx=0.3, vy=-0.05).to_array()
        return CombinedController(OpenLoopController.plan(y0, 0.4, 150.0))

    def test_sum_then_saturate(self, ctrl):
        """The output is the saturated sum of both contributions."""
        for t, state in zip(np.linspace(0.0, 400.0, 200), random_states(200, seed=3)):
            ff = ctrl.feedforward.raw(float(t), state)
            fb = ctrl.feedback.raw(float(t), state)
            expected = saturate(ff + fb, ctrl.config)
            assert ctrl.evaluate(float(t), state) == pytest.approx(expected)

    def test_commands_within_limits(self, ctrl):
        """Every combined command respects the actuator ranges."""
        for t, state in zip(np.linspace(0.0, 400.0, 300), random_states(300, seed=4)):
            u, v = ctrl.evaluate(float(t), state)
            assert 0.0 <= u <= U_MAX
            assert -V_MAX <= v <= V_MAX

    def test_feedback_only_after_profile(self, ctrl):
        """After the profile ends only the feedback acts."""
        state = LanderState(x=1.0, y=2.0, vy=-0.01).to_array()
        t = ctrl.feedforward.end_time + 1.0
        assert ctrl.evaluate(t, state) == pytest.approx(ctrl.feedback.evaluate(t, state))
