"""
Shared domain types for the Jarvis Globe control system.

Centralizes enums, data classes, and type definitions used across the
fusion layer, the external adapters, and the HUD so that every module
speaks the same vocabulary.
"""

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

TAU = 2.0 * math.pi

NUM_LANDMARKS = 21


# =============================================================================
# Hand Geometry
# =============================================================================

class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float = 0.0  # Depth relative to wrist, unused by the fusion layer

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Convert normalized coordinates to pixel coordinates."""
        return (int(self.x * width), int(self.y * height))


@dataclass
class HandSample:
    """One detected hand for one frame: 21 landmarks in detector order."""
    landmarks: List[Landmark]
    handedness: str = "unknown"
    confidence: float = 0.0

    def __post_init__(self):
        if len(self.landmarks) != NUM_LANDMARKS:
            raise ValueError(
                f"HandSample needs {NUM_LANDMARKS} landmarks, got {len(self.landmarks)}"
            )

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]],
                    handedness: str = "unknown", confidence: float = 0.0) -> "HandSample":
        """Build a sample from (x, y) or (x, y, z) sequences or an (21, 2|3) array."""
        landmarks = [Landmark(float(p[0]), float(p[1]), float(p[2]) if len(p) > 2 else 0.0)
                     for p in points]
        return cls(landmarks=landmarks, handedness=handedness, confidence=confidence)

    def get(self, index: LandmarkIndex) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    @property
    def wrist(self) -> Landmark:
        return self.landmarks[LandmarkIndex.WRIST]

    def distance(self, idx1: LandmarkIndex, idx2: LandmarkIndex) -> float:
        """Planar Euclidean distance between two landmarks (z ignored)."""
        lm1 = self.get(idx1)
        lm2 = self.get(idx2)
        return float(np.hypot(lm1.x - lm2.x, lm1.y - lm2.y))

    def to_numpy(self) -> np.ndarray:
        """Convert landmarks to numpy array of shape (21, 3)."""
        return np.array([[lm.x, lm.y, lm.z] for lm in self.landmarks], dtype=np.float32)


# =============================================================================
# Control Signals
# =============================================================================

class Vec2(NamedTuple):
    x: float
    y: float


class ControlRole(Enum):
    """Which part of the HUD a hand is steering this frame."""
    ORIENTATION = "orientation"
    POINTER = "pointer"


class ControlSource(Enum):
    """Where the rotation target of a frame came from."""
    VOICE = "voice"
    GESTURE = "gesture"
    HOLD = "hold"


@dataclass(frozen=True)
class ControlSignal:
    """Raw per-hand output of the gesture interpreter.

    Orientation signals carry rotation and scale; pointer signals carry a
    pointer position in screen pixels. Unused fields stay None.
    """
    role: ControlRole
    rotation: Optional[Vec2] = None
    scale: Optional[float] = None
    pointer: Optional[Vec2] = None


class VoiceCommand(Enum):
    """Spoken commands that map onto a fixed globe orientation."""
    AFRICA = "africa"
    ASIA = "asia"
    AMERICAS = "americas"
    EUROPE = "europe"
    RESET = "reset"

    @classmethod
    def from_string(cls, name: str) -> Optional["VoiceCommand"]:
        """Convert a config key to a VoiceCommand, None when unknown."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class VoiceTarget:
    """Latest matched voice command. Replaced whole, never mutated."""
    command: VoiceCommand
    rotation: Vec2
    received_at_ms: float


# =============================================================================
# Controller State
# =============================================================================

class OrientationState:
    """Smoothed globe pose read by the renderer every frame.

    rotation_y is kept continuous so interpolation never jumps across the
    0/2π seam; use ``heading`` for the wrapped angle.
    """

    __slots__ = ("rotation_x", "rotation_y", "scale")

    def __init__(self, rotation_x: float = 0.0, rotation_y: float = 0.0, scale: float = 1.0):
        self.rotation_x = rotation_x
        self.rotation_y = rotation_y
        self.scale = scale

    @property
    def rotation(self) -> Vec2:
        return Vec2(self.rotation_x, self.rotation_y)

    @property
    def heading(self) -> float:
        """rotation_y wrapped into [0, 2π)."""
        return wrap_angle(self.rotation_y)

    def copy(self) -> "OrientationState":
        return OrientationState(self.rotation_x, self.rotation_y, self.scale)

    def __repr__(self):
        return (f"OrientationState(x={self.rotation_x:.3f}, y={self.rotation_y:.3f}, "
                f"scale={self.scale:.3f})")


@dataclass
class PanelPosition:
    """Top-left corner of the sector panel, in screen pixels."""
    x: float
    y: float


class Sector(Enum):
    """Named angular regions of the globe heading."""
    AFRICA = "AFRICA"
    ASIA = "ASIA"
    PACIFIC = "PACIFIC"
    AMERICAS = "AMERICAS"
    EUROPE = "EUROPE"

    @classmethod
    def from_string(cls, name: str) -> "Sector":
        return cls(name.strip().upper())


def wrap_angle(angle: float) -> float:
    """Wrap any angle into [0, 2π)."""
    return ((angle % TAU) + TAU) % TAU
