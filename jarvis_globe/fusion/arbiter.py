"""
Voice-over-gesture arbitration.

A matched voice command owns the rotation target for a fixed suppression
window. Inside the window the orientation hand's rotation is dropped (not
blended); outside it the hand steers, and with no hand the previous target
is held. Scale is never voice-controlled, and pointer updates are never
suppressed.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from jarvis_globe.core.types import (
    ControlRole,
    ControlSignal,
    ControlSource,
    Vec2,
    VoiceTarget,
)
from jarvis_globe.utils.config import read_float

logger = logging.getLogger(__name__)


@dataclass
class ArbiterConfig:
    """Arbitration configuration."""
    suppression_window_ms: float = 3000.0
    initial_scale: float = 1.0

    @classmethod
    def from_dict(cls, config: dict) -> "ArbiterConfig":
        """Create config from dictionary."""
        return cls(
            suppression_window_ms=read_float(config, "suppression_window_ms", 3000.0),
            initial_scale=read_float(config, "initial_scale", 1.0),
        )


@dataclass(frozen=True)
class ArbitrationResult:
    """Authoritative targets for one frame."""
    rotation: Vec2
    scale: float
    source: ControlSource
    pointer: Optional[Vec2] = None
    suppressed: bool = False  # An orientation hand was present but ignored


class InputArbiter:
    """Chooses the rotation/scale target for each frame.

    Holds the last target so that frames without input keep steering
    toward it.
    """

    def __init__(self, config: Optional[ArbiterConfig] = None):
        self.config = config or ArbiterConfig()
        self._rotation = Vec2(0.0, 0.0)
        self._scale = self.config.initial_scale

    def is_voice_active(self, voice: Optional[VoiceTarget], now_ms: float) -> bool:
        """True while a voice target is inside its suppression window."""
        if voice is None:
            return False
        return (now_ms - voice.received_at_ms) < self.config.suppression_window_ms

    def decide(self, signals: Sequence[ControlSignal],
               voice: Optional[VoiceTarget], now_ms: float) -> ArbitrationResult:
        """Produce the authoritative targets for this frame.

        Args:
            signals: Interpreted gesture signals, in detection order
            voice: Latest voice target, if any
            now_ms: Current time in milliseconds (same clock as the voice target)
        """
        orientation = None
        pointer = None
        for signal in signals:
            # Last processed hand wins for each role
            if signal.role is ControlRole.ORIENTATION:
                orientation = signal
            elif signal.pointer is not None:
                pointer = signal.pointer

        if orientation is not None and orientation.scale is not None:
            self._scale = orientation.scale

        suppressed = False
        if self.is_voice_active(voice, now_ms):
            self._rotation = voice.rotation
            source = ControlSource.VOICE
            suppressed = orientation is not None
            if suppressed:
                logger.debug("Gesture rotation suppressed by voice command %s",
                             voice.command.value)
        elif orientation is not None and orientation.rotation is not None:
            self._rotation = orientation.rotation
            source = ControlSource.GESTURE
        else:
            source = ControlSource.HOLD

        return ArbitrationResult(
            rotation=self._rotation,
            scale=self._scale,
            source=source,
            pointer=pointer,
            suppressed=suppressed,
        )

    def reset(self):
        self._rotation = Vec2(0.0, 0.0)
        self._scale = self.config.initial_scale
