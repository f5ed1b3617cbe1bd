"""Lander controllers: open-loop profile, PD feedback and their combination.

Every controller exposes ``evaluate(t, state) -> ControlCommand`` with the
command saturated to the actuator range, and ``raw(t, state)`` before the
final saturation.

Example:
    >>> from spacesim.gnc.control import CombinedController, OpenLoopController
    >>> ff = OpenLoopController.plan(y0, tilt_angle=0.3, descent_time=120.0)
    >>> ctrl = CombinedController(ff)
    >>> thrust, torque = ctrl.evaluate(0.0, y0)
"""

from spacesim.gnc.control.base import ControlCommand, clamp, saturate
from spacesim.gnc.control.combined import CombinedController, Controller
from spacesim.gnc.control.feedback import FeedbackController, FeedbackGains
from spacesim.gnc.control.open_loop import OpenLoopController

__all__ = [
    "CombinedController",
    "ControlCommand",
    "Controller",
    "FeedbackController",
    "FeedbackGains",
    "OpenLoopController",
    "clamp",
    "saturate",
]
