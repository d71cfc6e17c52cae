"""
Per-frame hand interpretation.

Each detected hand is assigned a role from its wrist position and turned
into a raw control signal:

    wrist.x > 0.5   -> ORIENTATION: middle-MCP offset drives rotation,
                       thumb/index pinch drives scale
    wrist.x <= 0.5  -> POINTER: a pinch drags the sector panel

No temporal smoothing happens here; the interpreter is stateless.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from jarvis_globe.core.types import (
    ControlRole,
    ControlSignal,
    HandSample,
    LandmarkIndex,
    Vec2,
)
from jarvis_globe.utils.config import read_float

logger = logging.getLogger(__name__)


@dataclass
class GestureInterpreterConfig:
    """Gesture mapping constants."""
    role_split_x: float = 0.5        # Wrist x above this -> orientation hand
    yaw_gain: float = 8.0            # Radians per unit of horizontal offset
    pitch_gain: float = 4.0          # Radians per unit of vertical offset
    scale_gain: float = 8.0          # Scale per unit of pinch distance
    min_scale: float = 0.5
    max_scale: float = 2.5
    pinch_threshold: float = 0.05    # Pointer pinch distance

    @classmethod
    def from_dict(cls, config: dict) -> "GestureInterpreterConfig":
        """Create config from dictionary."""
        return cls(
            role_split_x=read_float(config, "role_split_x", 0.5),
            yaw_gain=read_float(config, "yaw_gain", 8.0),
            pitch_gain=read_float(config, "pitch_gain", 4.0),
            scale_gain=read_float(config, "scale_gain", 8.0),
            min_scale=read_float(config, "min_scale", 0.5),
            max_scale=read_float(config, "max_scale", 2.5),
            pinch_threshold=read_float(config, "pinch_threshold", 0.05),
        )


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class GestureInterpreter:
    """Maps HandSamples to ControlSignals."""

    def __init__(self, config: Optional[GestureInterpreterConfig] = None):
        self.config = config or GestureInterpreterConfig()

    def classify_role(self, sample: HandSample) -> ControlRole:
        """Role depends only on the wrist x coordinate."""
        if sample.wrist.x > self.config.role_split_x:
            return ControlRole.ORIENTATION
        return ControlRole.POINTER

    def pinch_distance(self, sample: HandSample) -> float:
        return sample.distance(LandmarkIndex.THUMB_TIP, LandmarkIndex.INDEX_TIP)

    def scale_from_pinch(self, pinch: float) -> float:
        cfg = self.config
        return clamp(pinch * cfg.scale_gain, cfg.min_scale, cfg.max_scale)

    def interpret(self, sample: HandSample,
                  viewport: Tuple[int, int]) -> Optional[ControlSignal]:
        """Interpret one hand.

        Args:
            sample: Detected hand landmarks
            viewport: (width, height) of the screen in pixels

        Returns:
            ControlSignal, or None for a pointer hand that is not pinching
        """
        role = self.classify_role(sample)
        pinch = self.pinch_distance(sample)

        if role is ControlRole.ORIENTATION:
            middle = sample.get(LandmarkIndex.MIDDLE_MCP)
            rotation = Vec2(
                x=(middle.y - 0.5) * self.config.pitch_gain,
                y=(middle.x - 0.5) * self.config.yaw_gain,
            )
            return ControlSignal(
                role=role,
                rotation=rotation,
                scale=self.scale_from_pinch(pinch),
            )

        if pinch < self.config.pinch_threshold:
            width, height = viewport
            index_tip = sample.get(LandmarkIndex.INDEX_TIP)
            # Camera image is mirrored on screen
            pointer = Vec2(x=(1.0 - index_tip.x) * width, y=index_tip.y * height)
            return ControlSignal(role=role, pointer=pointer)

        return None

    def interpret_frame(self, samples: Sequence[HandSample],
                        viewport: Tuple[int, int]) -> List[ControlSignal]:
        """Interpret every hand of a frame, in detection order."""
        signals = []
        for sample in samples or ():
            signal = self.interpret(sample, viewport)
            if signal is not None:
                signals.append(signal)
        return signals
