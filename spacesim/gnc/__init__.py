"""Guidance, navigation and control for the lander."""

from spacesim.gnc.control import (
    CombinedController,
    ControlCommand,
    Controller,
    FeedbackController,
    FeedbackGains,
    OpenLoopController,
)
from spacesim.gnc.landing import (
    LandingOutcome,
    LandingTolerances,
    classify_landing,
    classify_trajectory,
)

__all__ = [
    "CombinedController",
    "ControlCommand",
    "Controller",
    "FeedbackController",
    "FeedbackGains",
    "LandingOutcome",
    "LandingTolerances",
    "OpenLoopController",
    "classify_landing",
    "classify_trajectory",
]
