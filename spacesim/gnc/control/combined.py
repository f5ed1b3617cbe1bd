"""Feed-forward plus feedback, saturated once.

The actuator sees clamp(ff.u + fb.u, 0, u_max) and
clamp(ff.v + fb.v, -v_max, v_max). The feedback thrust is limited by its own
vertical law; everything else is summed raw and saturated once.
"""

from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacesim.dynamics.lander import LanderConfig
from spacesim.gnc.control.base import ControlCommand, saturate
from spacesim.gnc.control.feedback import FeedbackController
from spacesim.gnc.control.open_loop import OpenLoopController


@beartype
@dataclass
class CombinedController:
    """Open-loop profile corrected by the feedback cascade.

    Attributes:
        feedforward: Precomputed profile
        feedback: State-error law
        config: Lander parameters used for the final saturation
    """
    feedforward: OpenLoopController
    feedback: FeedbackController = field(default_factory=FeedbackController)
    config: LanderConfig = field(default_factory=LanderConfig)

    def raw(self, t: float, state: NDArray[np.float64]) -> ControlCommand:
        return self.feedforward.raw(t, state) + self.feedback.raw(t, state)

    def evaluate(self, t: float, state: NDArray[np.float64]) -> ControlCommand:
        return saturate(self.raw(t, state), self.config)


Controller = OpenLoopController | FeedbackController | CombinedController
