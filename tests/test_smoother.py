"""
Tests for Orientation Smoother
===============================
"""

import pytest

from jarvis_globe.core.types import ControlSource, OrientationState, Vec2
from jarvis_globe.fusion.smoother import OrientationSmoother, SmootherConfig, lerp


class TestLerp:

    def test_endpoints(self):
        assert lerp(2.0, 4.0, 0.0) == 2.0
        assert lerp(2.0, 4.0, 1.0) == 4.0
        assert lerp(2.0, 4.0, 0.5) == 3.0

    @pytest.mark.parametrize("start,target", [
        (0.0, 5.8),
        (5.8, 0.0),
        (-3.0, 2.0),
        (2.5, 0.5),
    ])
    def test_monotonic_convergence_without_overshoot(self, start, target):
        """Each step closes the gap from the same side and never arrives."""
        value = start
        gap = abs(target - start)
        side = 1 if target > start else -1
        for _ in range(50):
            value = lerp(value, target, 0.1)
            new_gap = abs(target - value)
            assert new_gap < gap
            assert (target - value) * side > 0
            gap = new_gap


class TestOrientationSmoother:

    def test_gesture_alpha(self):
        smoother = OrientationSmoother()
        state = smoother.step(Vec2(1.0, 2.0), 1.0, ControlSource.GESTURE)
        assert state.rotation_x == pytest.approx(0.1)
        assert state.rotation_y == pytest.approx(0.2)

    def test_voice_alpha_is_slower(self):
        smoother = OrientationSmoother()
        state = smoother.step(Vec2(1.0, 2.0), 1.0, ControlSource.VOICE)
        assert state.rotation_x == pytest.approx(0.05)
        assert state.rotation_y == pytest.approx(0.1)

    def test_hold_uses_gesture_alpha(self):
        smoother = OrientationSmoother()
        state = smoother.step(Vec2(0.0, 1.0), 1.0, ControlSource.HOLD)
        assert state.rotation_y == pytest.approx(0.1)

    def test_scale_beta(self):
        smoother = OrientationSmoother()
        state = smoother.step(Vec2(0.0, 0.0), 2.0, ControlSource.VOICE)
        assert state.scale == pytest.approx(1.1)

    def test_scale_stays_in_range(self):
        smoother = OrientationSmoother(SmootherConfig(scale_beta=1.0))
        assert smoother.step(Vec2(0.0, 0.0), 10.0, ControlSource.GESTURE).scale == 2.5
        assert smoother.step(Vec2(0.0, 0.0), -3.0, ControlSource.GESTURE).scale == 0.5

    def test_hundred_idle_frames_approach_target(self):
        """Prior target (0.3, 5.8), no input: state closes in every frame."""
        smoother = OrientationSmoother()
        target = Vec2(0.3, 5.8)
        previous_gap = (0.3, 5.8)
        for _ in range(100):
            state = smoother.step(target, 1.0, ControlSource.HOLD)
            gap = (target.x - state.rotation_x, target.y - state.rotation_y)
            assert 0 < gap[0] < previous_gap[0]
            assert 0 < gap[1] < previous_gap[1]
            previous_gap = gap
        assert state.rotation_y == pytest.approx(5.8, abs=1e-3)
        assert state.rotation_y < 5.8

    def test_state_is_owned_and_reset(self):
        initial = OrientationState(0.0, 3.0, 2.0)
        smoother = OrientationSmoother(state=initial)
        assert smoother.state is initial
        smoother.reset()
        assert smoother.state.rotation == Vec2(0.0, 0.0)
        assert smoother.state.scale == 1.0


class TestOrientationState:

    def test_heading_wraps(self):
        import math
        assert OrientationState(rotation_y=-0.5).heading == pytest.approx(2 * math.pi - 0.5)
        assert OrientationState(rotation_y=7.0).heading == pytest.approx(7.0 - 2 * math.pi)
        assert OrientationState(rotation_y=0.0).heading == 0.0

    def test_copy_is_independent(self):
        state = OrientationState(1.0, 2.0, 1.5)
        clone = state.copy()
        state.rotation_y = 9.0
        assert clone.rotation_y == 2.0
