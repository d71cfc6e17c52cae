"""
Exponential smoothing of the globe pose toward the arbitrated target.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from jarvis_globe.core.types import ControlSource, OrientationState, Vec2
from jarvis_globe.utils.config import read_float

logger = logging.getLogger(__name__)


def lerp(start: float, end: float, t: float) -> float:
    return start * (1.0 - t) + end * t


@dataclass
class SmootherConfig:
    """Interpolation factors per frame."""
    voice_alpha: float = 0.05     # Slow sweep after a spoken command
    gesture_alpha: float = 0.1
    scale_beta: float = 0.1
    min_scale: float = 0.5
    max_scale: float = 2.5

    @classmethod
    def from_dict(cls, config: dict) -> "SmootherConfig":
        """Create config from dictionary."""
        return cls(
            voice_alpha=read_float(config, "voice_alpha", 0.05),
            gesture_alpha=read_float(config, "gesture_alpha", 0.1),
            scale_beta=read_float(config, "scale_beta", 0.1),
            min_scale=read_float(config, "min_scale", 0.5),
            max_scale=read_float(config, "max_scale", 2.5),
        )


class OrientationSmoother:
    """Owns the OrientationState and advances it once per frame."""

    def __init__(self, config: Optional[SmootherConfig] = None,
                 state: Optional[OrientationState] = None):
        self.config = config or SmootherConfig()
        self._state = state or OrientationState()

    @property
    def state(self) -> OrientationState:
        return self._state

    def alpha_for(self, source: ControlSource) -> float:
        if source is ControlSource.VOICE:
            return self.config.voice_alpha
        return self.config.gesture_alpha

    def step(self, rotation: Vec2, scale: float, source: ControlSource) -> OrientationState:
        """Advance one frame toward the target and return the state."""
        alpha = self.alpha_for(source)
        state = self._state
        state.rotation_x = lerp(state.rotation_x, rotation.x, alpha)
        state.rotation_y = lerp(state.rotation_y, rotation.y, alpha)

        # Target is already clamped; this only guards bad config values
        scale = max(self.config.min_scale, min(self.config.max_scale, scale))
        state.scale = lerp(state.scale, scale, self.config.scale_beta)
        return state

    def reset(self, state: Optional[OrientationState] = None):
        self._state = state or OrientationState()
