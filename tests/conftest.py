"""
Shared fixtures: synthetic hands, a controllable clock, a clean event bus.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jarvis_globe.core.events import EventBus
from jarvis_globe.core.types import HandSample, Landmark, LandmarkIndex


def make_hand(
    wrist=(0.7, 0.8),
    middle_mcp=(0.5, 0.5),
    thumb_tip=(0.45, 0.45),
    index_tip=(0.55, 0.45),
    handedness="Right",
) -> HandSample:
    """
    Create a synthetic hand.

    Only the landmarks the fusion layer reads can be placed; the others sit
    on a plausible hand shape above the wrist.
    """
    wx, wy = wrist
    landmarks = []
    for i in range(21):
        finger = max(i - 1, 0) // 4
        joint = max(i - 1, 0) % 4
        landmarks.append(Landmark(x=wx - 0.06 + finger * 0.03, y=wy - 0.05 - joint * 0.04))

    landmarks[LandmarkIndex.WRIST] = Landmark(*wrist)
    landmarks[LandmarkIndex.MIDDLE_MCP] = Landmark(*middle_mcp)
    landmarks[LandmarkIndex.THUMB_TIP] = Landmark(*thumb_tip)
    landmarks[LandmarkIndex.INDEX_TIP] = Landmark(*index_tip)
    return HandSample(landmarks=landmarks, handedness=handedness, confidence=0.9)


class FakeClock:
    """Millisecond clock driven by the test."""

    def __init__(self, start_ms: float = 0.0):
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    """Fresh event bus state for every test."""
    event_bus = EventBus()
    event_bus.reset()
    yield event_bus
    event_bus.reset()
